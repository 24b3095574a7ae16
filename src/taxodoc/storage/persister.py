"""Insert parsed entries into stores whose column names drift between deployments.

The column holding the HTML body and the presence of a required ``rank``
enum are not fixed.  Stores that can be introspected are asked once per
table and the known-good choice is tried first; otherwise (or when the
introspection turns out wrong) the persister walks an ordered candidate
list, reacting only to rejections it recognises.
"""

from __future__ import annotations

from dataclasses import dataclass, field
import logging
import re
from typing import Protocol

from taxodoc.ingestion.models import Entry, Metadata, SanitizedContent
from taxodoc.ingestion.sanitize import slugify
from taxodoc.storage.errors import SchemaMismatch, StoreRejection
from taxodoc.storage.repository import TableShape

logger = logging.getLogger(__name__)

DEFAULT_HTML_FIELDS = ("contentHtml", "descriptionHtml", "content_html", "html")
DEFAULT_RANK_GUESSES = (
    "SPECIES",
    "GENUS",
    "FAMILY",
    "ORDER",
    "CLASS",
    "PHYLUM",
    "KINGDOM",
    "DIVISION",
    "SUBSPECIES",
    "VARIETY",
    "FORM",
    "UNKNOWN",
    "UNSPECIFIED",
)

ENTRY_TABLE = "taxon_entries"
RANK_FIELD = "rank"

_UNKNOWN_FIELD_RE = re.compile(
    r"Unknown (?:arg|argument|field)|has no column named|no such column",
    re.IGNORECASE,
)
_RANK_RE = re.compile(r"(?<![a-z])rank(?![a-z])", re.IGNORECASE)

_ENTRY_COLUMNS = {
    "official": "official_name_th",
    "scientific": "scientific_name",
    "genus": "genus",
    "species": "species",
    "authors_display": "authors_display",
    "authors_period": "authors_period",
    "other_names": "other_names",
    "author": "author",
    "synonyms": "synonyms",
    "family": "family",
}


class RecordStore(Protocol):
    """Relational store the persister writes through."""

    def insert(self, table: str, values: dict[str, object]) -> int:
        """Insert one row and return its id; raise StoreRejection when refused."""

    def describe(self, table: str) -> TableShape | None:
        """Return the table's shape, or None when it cannot be introspected."""


@dataclass(frozen=True, slots=True)
class PersistedRecord:
    id: int
    table: str
    html_field: str | None
    values: dict[str, object] = field(default_factory=dict)


class SchemaAdaptivePersister:
    """Try HTML-field and rank candidates until the store accepts a row."""

    def __init__(
        self,
        store: RecordStore,
        html_field_candidates: tuple[str, ...] | list[str] | None = None,
        rank_guesses: tuple[str, ...] | list[str] | None = None,
    ) -> None:
        self._store = store
        self._html_fields = tuple(html_field_candidates or DEFAULT_HTML_FIELDS)
        self._rank_guesses = tuple(rank_guesses or DEFAULT_RANK_GUESSES)
        self._shapes: dict[str, TableShape | None] = {}

    @property
    def html_field_candidates(self) -> tuple[str, ...]:
        return self._html_fields

    @property
    def rank_guesses(self) -> tuple[str, ...]:
        return self._rank_guesses

    def shape(self, table: str) -> TableShape | None:
        """Introspect ``table`` once; stores without ``describe`` yield None."""

        if table not in self._shapes:
            describe = getattr(self._store, "describe", None)
            self._shapes[table] = describe(table) if callable(describe) else None
        return self._shapes[table]

    def _ordered_candidates(self, shape: TableShape | None) -> list[str]:
        if shape is None:
            return list(self._html_fields)
        known = [name for name in self._html_fields if name in shape.columns]
        return known + [name for name in self._html_fields if name not in shape.columns]

    def _initial_rank(self, shape: TableShape | None) -> str | None:
        if shape is None or RANK_FIELD not in shape.required:
            return None
        allowed = shape.enums.get(RANK_FIELD)
        if allowed:
            return next((guess for guess in self._rank_guesses if guess in allowed), allowed[0])
        return self._rank_guesses[0]

    def persist_record(self, table: str, base: dict[str, object], html: str | None) -> PersistedRecord:
        """Insert ``base`` plus ``html`` under the first HTML column the store accepts."""

        shape = self.shape(table)
        values = dict(base)
        rank = self._initial_rank(shape)
        if rank is not None and RANK_FIELD not in values:
            values[RANK_FIELD] = rank

        attempts: list[str] = []
        for html_field in [*self._ordered_candidates(shape), None]:
            candidate = dict(values)
            if html_field is not None:
                candidate[html_field] = html
            try:
                return self._insert_with_rank(table, candidate, html_field, attempts)
            except StoreRejection as exc:
                if not _UNKNOWN_FIELD_RE.search(exc.message):
                    raise
                attempts.append(f"{html_field or '<bare>'}: {exc.message}")
                logger.debug("Store rejected %s.%s: %s", table, html_field, exc.message)

        raise SchemaMismatch(f"No HTML field candidate accepted by {table}", table=table, attempts=attempts)

    def _insert_with_rank(
        self,
        table: str,
        values: dict[str, object],
        html_field: str | None,
        attempts: list[str],
    ) -> PersistedRecord:
        try:
            return self._insert(table, values, html_field)
        except StoreRejection as exc:
            if _UNKNOWN_FIELD_RE.search(exc.message) or not _RANK_RE.search(exc.message):
                raise
            attempts.append(f"{RANK_FIELD}={values.get(RANK_FIELD)}: {exc.message}")

        for guess in self._rank_guesses:
            if values.get(RANK_FIELD) == guess:
                continue
            candidate = {**values, RANK_FIELD: guess}
            try:
                return self._insert(table, candidate, html_field)
            except StoreRejection as exc:
                if _UNKNOWN_FIELD_RE.search(exc.message) or not _RANK_RE.search(exc.message):
                    raise
                attempts.append(f"{RANK_FIELD}={guess}: {exc.message}")

        raise SchemaMismatch(f"No rank guess accepted by {table}", table=table, attempts=attempts)

    def _insert(self, table: str, values: dict[str, object], html_field: str | None) -> PersistedRecord:
        record_id = self._store.insert(table, values)
        return PersistedRecord(id=record_id, table=table, html_field=html_field, values=values)

    def persist(
        self,
        entry: Entry,
        metadata: Metadata,
        *,
        parent_id: int,
        order_index: int,
        content: SanitizedContent | None = None,
    ) -> PersistedRecord:
        """Store one entry under the document's parent taxon record."""

        body = content or SanitizedContent(html=entry.html, text=entry.text)
        base: dict[str, object] = {
            "taxon_id": parent_id,
            "title": entry.title,
            "slug": slugify(entry.title),
            "content_text": body.text,
            "short_description": body.short_description,
            "order_index": order_index,
            "meta": metadata.to_dict(),
        }
        for attribute, column in _ENTRY_COLUMNS.items():
            base[column] = getattr(metadata, attribute)
        return self.persist_record(ENTRY_TABLE, base, body.html)
