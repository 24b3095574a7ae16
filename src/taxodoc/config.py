"""Runtime configuration for document imports."""

from __future__ import annotations

from dataclasses import dataclass
import os
from pathlib import Path
from typing import Mapping

from taxodoc.storage.persister import DEFAULT_HTML_FIELDS, DEFAULT_RANK_GUESSES


DEFAULT_DB_PATH = ".taxodoc-catalog.db"
DEFAULT_MAX_UPLOAD_MB = 200
DEFAULT_PREVIEW_CHARS = 4000
DEFAULT_COLLECTION_TITLE = "อนุกรมวิธานพืช (อัปโหลดจาก DOCX)"
DEFAULT_DOMAIN = "พืช"


def _parse_positive_int(*, name: str, raw_value: str, minimum: int = 1) -> int:
    try:
        value = int(raw_value)
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer") from exc
    if value < minimum:
        raise ValueError(f"{name} must be >= {minimum}")
    return value


def _parse_list(*, name: str, raw_value: str) -> tuple[str, ...]:
    items = tuple(part.strip() for part in raw_value.split(",") if part.strip())
    if not items:
        raise ValueError(f"{name} must list at least one value")
    return items


def _parse_optional_path(*, name: str, raw_value: str) -> Path | None:
    if not raw_value:
        return None
    path = Path(raw_value)
    if not path.is_file():
        raise ValueError(f"{name} points to a missing file: {raw_value}")
    return path


@dataclass(frozen=True, slots=True)
class ImportSettings:
    """Validated settings shared by the CLI and the upload bot."""

    db_path: Path
    max_upload_bytes: int = DEFAULT_MAX_UPLOAD_MB * 1024 * 1024
    preview_chars: int = DEFAULT_PREVIEW_CHARS
    garble_repairs_path: Path | None = None
    labels_path: Path | None = None
    html_fields: tuple[str, ...] = DEFAULT_HTML_FIELDS
    rank_guesses: tuple[str, ...] = DEFAULT_RANK_GUESSES
    default_collection: str = DEFAULT_COLLECTION_TITLE
    default_domain: str = DEFAULT_DOMAIN

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "ImportSettings":
        source: Mapping[str, str] = os.environ if environ is None else environ

        db_path_raw = source.get("TAXODOC_DB_PATH", DEFAULT_DB_PATH).strip()
        if not db_path_raw:
            raise ValueError("TAXODOC_DB_PATH cannot be empty")

        max_upload_raw = source.get("TAXODOC_MAX_UPLOAD_MB", str(DEFAULT_MAX_UPLOAD_MB)).strip()
        preview_raw = source.get("TAXODOC_PREVIEW_CHARS", str(DEFAULT_PREVIEW_CHARS)).strip()
        if not max_upload_raw:
            raise ValueError("TAXODOC_MAX_UPLOAD_MB cannot be empty")
        if not preview_raw:
            raise ValueError("TAXODOC_PREVIEW_CHARS cannot be empty")

        max_upload_mb = _parse_positive_int(name="TAXODOC_MAX_UPLOAD_MB", raw_value=max_upload_raw, minimum=1)
        preview_chars = _parse_positive_int(name="TAXODOC_PREVIEW_CHARS", raw_value=preview_raw, minimum=100)

        html_fields_raw = source.get("TAXODOC_HTML_FIELDS", "").strip()
        rank_guesses_raw = source.get("TAXODOC_RANK_GUESSES", "").strip()
        html_fields = (
            _parse_list(name="TAXODOC_HTML_FIELDS", raw_value=html_fields_raw) if html_fields_raw else DEFAULT_HTML_FIELDS
        )
        rank_guesses = (
            _parse_list(name="TAXODOC_RANK_GUESSES", raw_value=rank_guesses_raw)
            if rank_guesses_raw
            else DEFAULT_RANK_GUESSES
        )

        default_collection = source.get("TAXODOC_DEFAULT_COLLECTION", DEFAULT_COLLECTION_TITLE).strip()
        if not default_collection:
            raise ValueError("TAXODOC_DEFAULT_COLLECTION cannot be empty")
        default_domain = source.get("TAXODOC_DEFAULT_DOMAIN", DEFAULT_DOMAIN).strip()

        return cls(
            db_path=Path(db_path_raw),
            max_upload_bytes=max_upload_mb * 1024 * 1024,
            preview_chars=preview_chars,
            garble_repairs_path=_parse_optional_path(
                name="TAXODOC_GARBLE_REPAIRS",
                raw_value=source.get("TAXODOC_GARBLE_REPAIRS", "").strip(),
            ),
            labels_path=_parse_optional_path(
                name="TAXODOC_LABELS",
                raw_value=source.get("TAXODOC_LABELS", "").strip(),
            ),
            html_fields=html_fields,
            rank_guesses=rank_guesses,
            default_collection=default_collection,
            default_domain=default_domain,
        )
