"""Persistence errors shared by the repository and the schema-adaptive persister."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(slots=True)
class PersistenceError(Exception):
    """Base error for catalog writes."""

    message: str

    def __str__(self) -> str:
        return self.message


@dataclass(slots=True)
class StoreRejection(PersistenceError):
    """The store refused one insert; ``message`` carries the store's reason."""

    table: str = ""


@dataclass(slots=True)
class SchemaMismatch(PersistenceError):
    """Every HTML-field and rank candidate was rejected."""

    table: str = ""
    attempts: list[str] = field(default_factory=list)


@dataclass(slots=True)
class CollectionNotFoundError(PersistenceError):
    collection_id: int = 0
