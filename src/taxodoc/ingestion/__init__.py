"""Document-to-record extraction interfaces."""

from .errors import ExtractionError, IngestionError, ReaderUnavailableError, UnsupportedFormatError
from .models import ParsedDocument, ParsedEntry, RawDocument, ReaderOutput
from .pipeline import DocumentPipeline

__all__ = [
    "DocumentPipeline",
    "ExtractionError",
    "IngestionError",
    "ParsedDocument",
    "ParsedEntry",
    "RawDocument",
    "ReaderOutput",
    "ReaderUnavailableError",
    "UnsupportedFormatError",
]
