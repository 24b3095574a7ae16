"""Format reader implementations and contracts."""

import logging

from .base import FormatReader

logger = logging.getLogger(__name__)

# format name -> (file suffixes, pip requirement)
READER_REQUIREMENTS: dict[str, tuple[tuple[str, ...], str]] = {
    "pdf": ((".pdf",), "pymupdf"),
    "docx": ((".docx",), "mammoth"),
    "html": ((".html", ".htm", ".xhtml"), "charset-normalizer"),
}

try:
    from .pdf_reader import PDFReader
except ImportError:
    PDFReader = None
    logger.warning("PDF support unavailable: install 'pymupdf'")

try:
    from .docx_reader import DOCXReader
except ImportError:
    DOCXReader = None
    logger.warning("DOCX support unavailable: install 'mammoth'")

try:
    from .html_reader import HTMLReader
except ImportError:
    HTMLReader = None
    logger.warning("HTML support unavailable: install 'charset-normalizer'")


def build_default_readers() -> dict[str, FormatReader]:
    """Return the installed format readers keyed by format name."""
    readers: dict[str, FormatReader] = {}
    if PDFReader is not None:
        readers["pdf"] = PDFReader()
    if DOCXReader is not None:
        readers["docx"] = DOCXReader()
    if HTMLReader is not None:
        readers["html"] = HTMLReader()
    return readers


def requirement_for(file_name: str) -> tuple[str, str] | None:
    """Return ``(format_name, pip requirement)`` for a known document suffix."""
    suffix = file_name.rsplit(".", 1)[-1].lower() if "." in file_name else ""
    for format_name, (suffixes, requirement) in READER_REQUIREMENTS.items():
        if f".{suffix}" in suffixes:
            return format_name, requirement
    return None


__all__ = [
    "FormatReader",
    "PDFReader",
    "DOCXReader",
    "HTMLReader",
    "READER_REQUIREMENTS",
    "build_default_readers",
    "requirement_for",
]
