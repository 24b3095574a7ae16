"""PDF reader returning page text in reading order."""

from __future__ import annotations

import logging

import pymupdf

from taxodoc.ingestion.models import RawDocument, ReaderOutput
from taxodoc.ingestion.readers.base import base_mime, suffix_of

logger = logging.getLogger(__name__)

_PDF_MAGIC = b"%PDF-"
_PDF_MIME = "application/pdf"
_TEXT_BLOCK = 0


class PDFReader:
    """Extract text blocks from PDF pages; PDFs carry no recoverable markup."""

    format_name = "pdf"

    def supports(self, file_name: str, sniffed_bytes: bytes | None = None, mime_type: str = "") -> bool:
        if suffix_of(file_name) == ".pdf" or base_mime(mime_type) == _PDF_MIME:
            return True
        if sniffed_bytes is None:
            return False
        return sniffed_bytes.lstrip().startswith(_PDF_MAGIC)

    def read(self, document: RawDocument) -> ReaderOutput:
        messages: list[str] = []
        pages: list[str] = []
        with pymupdf.open(stream=document.payload, filetype="pdf") as doc:
            for page_index, page in enumerate(doc, start=1):
                page_blocks = [row for row in page.get_text("blocks") if row[6] == _TEXT_BLOCK]
                ordered_blocks = sorted(page_blocks, key=lambda row: (row[1], row[0], row[5]))
                texts = [row[4].strip() for row in ordered_blocks if row[4].strip()]
                if not texts:
                    logger.debug("PDF page %d of %s has no text layer", page_index, document.file_name)
                    continue
                pages.append("\n\n".join(texts))

        if not pages:
            messages.append("PDF has no extractable text layer")
        return ReaderOutput(html="", text="\n\n".join(pages), format_name=self.format_name, messages=messages)
