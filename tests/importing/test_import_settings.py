from __future__ import annotations

from pathlib import Path

import pytest

from taxodoc.config import DEFAULT_COLLECTION_TITLE, ImportSettings
from taxodoc.storage.persister import DEFAULT_HTML_FIELDS


def test_defaults_apply_for_empty_environment() -> None:
    settings = ImportSettings.from_env({})

    assert settings.db_path == Path(".taxodoc-catalog.db")
    assert settings.max_upload_bytes == 200 * 1024 * 1024
    assert settings.preview_chars == 4000
    assert settings.html_fields == DEFAULT_HTML_FIELDS
    assert settings.default_collection == DEFAULT_COLLECTION_TITLE
    assert settings.garble_repairs_path is None


def test_lists_and_paths_are_parsed(tmp_path: Path) -> None:
    labels = tmp_path / "labels.json"
    labels.write_text('{"labels": []}', encoding="utf-8")

    settings = ImportSettings.from_env(
        {
            "TAXODOC_DB_PATH": str(tmp_path / "catalog.db"),
            "TAXODOC_HTML_FIELDS": "body_html, content_html",
            "TAXODOC_RANK_GUESSES": "GENUS,SPECIES",
            "TAXODOC_LABELS": str(labels),
            "TAXODOC_MAX_UPLOAD_MB": "5",
        }
    )

    assert settings.html_fields == ("body_html", "content_html")
    assert settings.rank_guesses == ("GENUS", "SPECIES")
    assert settings.labels_path == labels
    assert settings.max_upload_bytes == 5 * 1024 * 1024


@pytest.mark.parametrize(
    ("environ", "variable"),
    [
        ({"TAXODOC_MAX_UPLOAD_MB": "abc"}, "TAXODOC_MAX_UPLOAD_MB"),
        ({"TAXODOC_MAX_UPLOAD_MB": "0"}, "TAXODOC_MAX_UPLOAD_MB"),
        ({"TAXODOC_PREVIEW_CHARS": "50"}, "TAXODOC_PREVIEW_CHARS"),
        ({"TAXODOC_DB_PATH": "  "}, "TAXODOC_DB_PATH"),
        ({"TAXODOC_HTML_FIELDS": " , "}, "TAXODOC_HTML_FIELDS"),
        ({"TAXODOC_GARBLE_REPAIRS": "/nonexistent/repairs.json"}, "TAXODOC_GARBLE_REPAIRS"),
    ],
)
def test_invalid_values_name_the_variable(environ: dict[str, str], variable: str) -> None:
    with pytest.raises(ValueError, match=variable):
        ImportSettings.from_env(environ)
