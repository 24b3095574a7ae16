"""Catalog storage and schema-adaptive persistence."""

from .errors import CollectionNotFoundError, PersistenceError, SchemaMismatch, StoreRejection
from .persister import PersistedRecord, RecordStore, SchemaAdaptivePersister
from .repository import CatalogRepository, CollectionRow, EntryRow, TableShape

__all__ = [
    "CatalogRepository",
    "CollectionNotFoundError",
    "CollectionRow",
    "EntryRow",
    "PersistedRecord",
    "PersistenceError",
    "RecordStore",
    "SchemaAdaptivePersister",
    "SchemaMismatch",
    "StoreRejection",
    "TableShape",
]
