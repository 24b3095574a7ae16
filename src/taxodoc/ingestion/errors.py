"""Domain errors raised while reading and parsing uploaded documents."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(slots=True)
class IngestionError(Exception):
    """Base error for reader routing and extraction failures."""

    file_name: str
    message: str

    def __str__(self) -> str:
        return f"{self.message} (file={self.file_name})"


@dataclass(slots=True)
class UnsupportedFormatError(IngestionError):
    """No reader recognises the upload's extension, MIME type or magic bytes."""


@dataclass(slots=True)
class ReaderUnavailableError(IngestionError):
    """The format is known but its optional dependency is not installed."""

    module: str = ""
    hint: str = ""


@dataclass(slots=True)
class ExtractionError(IngestionError):
    """A reader recognised the document but could not extract it."""
