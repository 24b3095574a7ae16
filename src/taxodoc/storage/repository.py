"""Repository primitives for the SQLite-backed taxon catalog."""

from __future__ import annotations

from dataclasses import dataclass, field
import json
from pathlib import Path
import re
import sqlite3

from taxodoc.storage.errors import CollectionNotFoundError, StoreRejection
from taxodoc.storage.schema import apply_runtime_pragmas, ensure_schema

_IDENTIFIER_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")
_NO_COLUMN_RE = re.compile(r"has no column named (\w+)|no such column: (\w+)", re.IGNORECASE)
_CHECK_IN_RE = re.compile(r"(\w+)\s+TEXT[^,]*?CHECK\s*\(\s*\1\s+IN\s*\(([^)]*)\)\s*\)", re.IGNORECASE)
_QUOTED_RE = re.compile(r"'((?:[^']|'')*)'")


@dataclass(frozen=True, slots=True)
class TableShape:
    """Columns a table accepts, the ones an insert must supply, and enum domains."""

    columns: frozenset[str]
    required: frozenset[str]
    enums: dict[str, tuple[str, ...]] = field(default_factory=dict)


@dataclass(slots=True)
class CollectionRow:
    id: int
    title: str
    domain: str | None
    kingdom: str | None


@dataclass(slots=True)
class EntryRow:
    id: int
    taxon_id: int
    title: str
    slug: str
    order_index: int
    scientific_name: str | None
    family: str | None
    synonyms: str | None
    short_description: str | None
    meta: dict[str, object]


class CatalogRepository:
    """Thin transactional layer over the SQLite catalog schema."""

    def __init__(self, db_path: str | Path) -> None:
        self._db_path = Path(db_path)
        self._connection = sqlite3.connect(str(self._db_path))
        self._connection.row_factory = sqlite3.Row
        apply_runtime_pragmas(self._connection)
        ensure_schema(self._connection)

    @property
    def connection(self) -> sqlite3.Connection:
        return self._connection

    def close(self) -> None:
        self._connection.close()

    def __enter__(self) -> "CatalogRepository":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def describe(self, table: str) -> TableShape | None:
        """Introspect ``table``; None when it does not exist."""

        if not _IDENTIFIER_RE.match(table):
            return None
        rows = self._connection.execute(f"PRAGMA table_info({table})").fetchall()
        if not rows:
            return None
        columns = frozenset(row["name"] for row in rows)
        required = frozenset(
            row["name"] for row in rows if row["notnull"] and row["dflt_value"] is None and not row["pk"]
        )
        sql_row = self._connection.execute(
            "SELECT sql FROM sqlite_master WHERE type = 'table' AND name = ?",
            (table,),
        ).fetchone()
        enums: dict[str, tuple[str, ...]] = {}
        if sql_row is not None and sql_row["sql"]:
            for match in _CHECK_IN_RE.finditer(sql_row["sql"]):
                values = tuple(value.replace("''", "'") for value in _QUOTED_RE.findall(match.group(2)))
                if values:
                    enums[match.group(1)] = values
        return TableShape(columns=columns, required=required, enums=enums)

    def insert(self, table: str, values: dict[str, object]) -> int:
        """Insert one row and return its id, translating SQLite refusals."""

        if not _IDENTIFIER_RE.match(table):
            raise StoreRejection(f"Unknown table {table}", table=table)
        for column in values:
            if not _IDENTIFIER_RE.match(column):
                raise StoreRejection(f"Unknown field {column}", table=table)

        columns = list(values)
        if columns:
            placeholders = ", ".join("?" for _ in columns)
            sql = f"INSERT INTO {table}({', '.join(columns)}) VALUES({placeholders})"
        else:
            sql = f"INSERT INTO {table} DEFAULT VALUES"
        params = [_to_sql(values[column]) for column in columns]

        try:
            with self._connection:
                cursor = self._connection.execute(sql, params)
        except sqlite3.OperationalError as exc:
            match = _NO_COLUMN_RE.search(str(exc))
            if match is not None:
                raise StoreRejection(f"Unknown field {match.group(1) or match.group(2)}", table=table) from exc
            raise StoreRejection(str(exc), table=table) from exc
        except sqlite3.IntegrityError as exc:
            raise StoreRejection(str(exc), table=table) from exc
        except sqlite3.Error as exc:
            raise StoreRejection(str(exc), table=table) from exc
        return int(cursor.lastrowid)

    def get_collection(self, collection_id: int) -> CollectionRow | None:
        row = self._connection.execute(
            "SELECT id, title, domain, kingdom FROM collections WHERE id = ?",
            (collection_id,),
        ).fetchone()
        return _collection(row)

    def find_collection_by_title(self, title: str) -> CollectionRow | None:
        row = self._connection.execute(
            "SELECT id, title, domain, kingdom FROM collections WHERE title = ?",
            (title,),
        ).fetchone()
        return _collection(row)

    def create_collection(self, title: str, domain: str | None = None, kingdom: str | None = None) -> CollectionRow:
        collection_id = self.insert("collections", {"title": title, "domain": domain, "kingdom": kingdom})
        return CollectionRow(id=collection_id, title=title, domain=domain, kingdom=kingdom)

    def resolve_collection(
        self,
        identifier: str | int | None,
        default_title: str,
        domain: str | None = None,
        kingdom: str | None = None,
    ) -> CollectionRow:
        """Numeric identifiers must exist; titles are looked up and created when missing."""

        if isinstance(identifier, int) or (isinstance(identifier, str) and identifier.strip().isdigit()):
            collection_id = int(identifier)
            collection = self.get_collection(collection_id)
            if collection is None:
                raise CollectionNotFoundError(f"Collection {collection_id} not found", collection_id=collection_id)
            return collection

        title = (identifier or "").strip() or default_title
        existing = self.find_collection_by_title(title)
        if existing is not None:
            return existing
        return self.create_collection(title, domain=domain, kingdom=kingdom)

    def count_taxa(self, collection_id: int) -> int:
        row = self._connection.execute(
            "SELECT COUNT(*) AS total FROM taxa WHERE collection_id = ?",
            (collection_id,),
        ).fetchone()
        return int(row["total"])

    def list_entries(self, taxon_id: int) -> list[EntryRow]:
        rows = self._connection.execute(
            """
            SELECT id, taxon_id, title, slug, order_index, scientific_name,
                   family, synonyms, short_description, meta
            FROM taxon_entries
            WHERE taxon_id = ?
            ORDER BY order_index, id
            """,
            (taxon_id,),
        ).fetchall()
        return [
            EntryRow(
                id=row["id"],
                taxon_id=row["taxon_id"],
                title=row["title"],
                slug=row["slug"],
                order_index=row["order_index"],
                scientific_name=row["scientific_name"],
                family=row["family"],
                synonyms=row["synonyms"],
                short_description=row["short_description"],
                meta=json.loads(row["meta"]) if row["meta"] else {},
            )
            for row in rows
        ]


def _to_sql(value: object) -> object:
    if isinstance(value, (dict, list)):
        return json.dumps(value, ensure_ascii=False)
    return value


def _collection(row: sqlite3.Row | None) -> CollectionRow | None:
    if row is None:
        return None
    return CollectionRow(id=row["id"], title=row["title"], domain=row["domain"], kingdom=row["kingdom"])
