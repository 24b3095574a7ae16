"""SQLite schema and pragmas for the taxon catalog."""

from __future__ import annotations

import sqlite3


PRAGMA_BUSY_TIMEOUT_MS = 5000

TAXON_RANKS = (
    "KINGDOM",
    "PHYLUM",
    "DIVISION",
    "CLASS",
    "ORDER",
    "FAMILY",
    "GENUS",
    "SPECIES",
    "SUBSPECIES",
    "VARIETY",
    "FORM",
)


def apply_runtime_pragmas(connection: sqlite3.Connection) -> None:
    """Apply runtime pragmas for a local single-writer catalog."""

    connection.execute("PRAGMA journal_mode=WAL;")
    connection.execute(f"PRAGMA busy_timeout={PRAGMA_BUSY_TIMEOUT_MS};")
    connection.execute("PRAGMA synchronous=NORMAL;")
    connection.execute("PRAGMA foreign_keys=ON;")


def _add_column_if_missing(
    connection: sqlite3.Connection,
    table: str,
    column: str,
    column_def: str,
) -> None:
    """Add a column to a table if it does not yet exist (idempotent)."""
    try:
        connection.execute(f"ALTER TABLE {table} ADD COLUMN {column} {column_def}")
    except sqlite3.OperationalError as exc:
        if "duplicate column name" not in str(exc).lower():
            raise


def ensure_schema(connection: sqlite3.Connection) -> None:
    """Create catalog tables and indexes if missing."""

    ranks = ", ".join(f"'{rank}'" for rank in TAXON_RANKS)
    connection.executescript(
        f"""
        CREATE TABLE IF NOT EXISTS collections (
            id INTEGER PRIMARY KEY,
            title TEXT NOT NULL UNIQUE,
            domain TEXT,
            created_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP
        );

        CREATE TABLE IF NOT EXISTS taxa (
            id INTEGER PRIMARY KEY,
            collection_id INTEGER NOT NULL REFERENCES collections(id) ON DELETE CASCADE,
            scientific_name TEXT NOT NULL,
            rank TEXT NOT NULL CONSTRAINT taxa_rank_enum CHECK(rank IN ({ranks})),
            content_html TEXT,
            created_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP
        );

        CREATE TABLE IF NOT EXISTS taxon_entries (
            id INTEGER PRIMARY KEY,
            taxon_id INTEGER NOT NULL REFERENCES taxa(id) ON DELETE CASCADE,
            title TEXT NOT NULL,
            slug TEXT NOT NULL,
            content_html TEXT,
            content_text TEXT,
            short_description TEXT,
            order_index INTEGER NOT NULL DEFAULT 0,
            official_name_th TEXT,
            scientific_name TEXT,
            genus TEXT,
            species TEXT,
            authors_display TEXT,
            authors_period TEXT,
            other_names TEXT,
            author TEXT,
            synonyms TEXT,
            family TEXT,
            created_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP
        );

        CREATE INDEX IF NOT EXISTS idx_taxa_collection_id ON taxa(collection_id);
        CREATE INDEX IF NOT EXISTS idx_taxon_entries_taxon_id ON taxon_entries(taxon_id);
        CREATE INDEX IF NOT EXISTS idx_taxon_entries_slug ON taxon_entries(slug);
        """
    )

    # Additive migrations: add columns to existing tables without breaking old DBs
    _add_column_if_missing(connection, "collections", "kingdom", "TEXT")
    _add_column_if_missing(connection, "taxon_entries", "meta", "TEXT")
