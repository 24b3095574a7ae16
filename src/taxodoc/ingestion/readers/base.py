"""Shared reader contract for per-format document parsers."""

from __future__ import annotations

from pathlib import PurePath
from typing import Protocol, runtime_checkable

from taxodoc.ingestion.models import RawDocument, ReaderOutput


@runtime_checkable
class FormatReader(Protocol):
    """Protocol that every format reader must implement."""

    format_name: str

    def supports(self, file_name: str, sniffed_bytes: bytes | None = None, mime_type: str = "") -> bool:
        """Return True when this reader can parse the given upload."""

    def read(self, document: RawDocument) -> ReaderOutput:
        """Recover markup and/or plain text from the uploaded bytes."""


def suffix_of(file_name: str) -> str:
    return PurePath(file_name or "").suffix.lower()


def base_mime(mime_type: str | None) -> str:
    return (mime_type or "").split(";", 1)[0].strip().lower()
