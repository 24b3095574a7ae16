from __future__ import annotations

from pathlib import Path

import pytest

from taxodoc.storage.errors import CollectionNotFoundError, StoreRejection
from taxodoc.storage.repository import CatalogRepository
from taxodoc.storage.schema import TAXON_RANKS


def test_describe_reports_required_columns_and_rank_enum(tmp_path: Path) -> None:
    with CatalogRepository(tmp_path / "catalog.db") as repository:
        shape = repository.describe("taxa")

        assert shape is not None
        assert {"collection_id", "scientific_name", "rank", "content_html"} <= shape.columns
        assert shape.required == {"collection_id", "scientific_name", "rank"}
        assert shape.enums == {"rank": TAXON_RANKS}
        assert repository.describe("missing_table") is None


def test_schema_creation_is_idempotent(tmp_path: Path) -> None:
    db_path = tmp_path / "catalog.db"
    with CatalogRepository(db_path) as repository:
        repository.create_collection("พืชสมุนไพร")

    with CatalogRepository(db_path) as repository:
        assert repository.find_collection_by_title("พืชสมุนไพร") is not None
        assert "meta" in repository.describe("taxon_entries").columns


def test_insert_translates_sqlite_refusals(tmp_path: Path) -> None:
    with CatalogRepository(tmp_path / "catalog.db") as repository:
        collection = repository.create_collection("Herbs")

        with pytest.raises(StoreRejection, match="Unknown field contentHtml"):
            repository.insert(
                "taxa",
                {"collection_id": collection.id, "scientific_name": "x", "rank": "SPECIES", "contentHtml": "<p/>"},
            )
        with pytest.raises(StoreRejection, match="taxa_rank_enum"):
            repository.insert("taxa", {"collection_id": collection.id, "scientific_name": "x", "rank": "CLADE"})
        with pytest.raises(StoreRejection, match="rank"):
            repository.insert("taxa", {"collection_id": collection.id, "scientific_name": "x"})
        with pytest.raises(StoreRejection, match="binding"):
            repository.insert("taxa", {"collection_id": collection.id, "scientific_name": object(), "rank": "SPECIES"})


def test_resolve_collection_by_title_and_id(tmp_path: Path) -> None:
    with CatalogRepository(tmp_path / "catalog.db") as repository:
        created = repository.resolve_collection("Herbs", default_title="Default", domain="พืช")
        again = repository.resolve_collection("Herbs", default_title="Default")
        by_id = repository.resolve_collection(created.id, default_title="Default")
        fallback = repository.resolve_collection(None, default_title="Default")

        assert again.id == created.id == by_id.id
        assert created.domain == "พืช"
        assert fallback.title == "Default"
        with pytest.raises(CollectionNotFoundError):
            repository.resolve_collection("999", default_title="Default")


def test_list_entries_decodes_meta_json(tmp_path: Path) -> None:
    with CatalogRepository(tmp_path / "catalog.db") as repository:
        collection = repository.create_collection("Herbs")
        taxon_id = repository.insert(
            "taxa",
            {"collection_id": collection.id, "scientific_name": "flora", "rank": "SPECIES"},
        )
        for order_index, title in ((1, "second"), (0, "first")):
            repository.insert(
                "taxon_entries",
                {
                    "taxon_id": taxon_id,
                    "title": title,
                    "slug": title,
                    "order_index": order_index,
                    "meta": {"synonymsLabelPresent": True},
                },
            )

        entries = repository.list_entries(taxon_id)

        assert [entry.title for entry in entries] == ["first", "second"]
        assert entries[0].meta == {"synonymsLabelPresent": True}
        assert repository.count_taxa(collection.id) == 1
