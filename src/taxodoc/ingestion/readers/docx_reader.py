"""DOCX reader converting Word paragraphs and runs to HTML with mammoth."""

from __future__ import annotations

import io
import logging

import mammoth

from taxodoc.ingestion.models import RawDocument, ReaderOutput
from taxodoc.ingestion.readers.base import base_mime, suffix_of

logger = logging.getLogger(__name__)

_ZIP_MAGIC = b"PK\x03\x04"
_DOCX_MIME = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"

# Word title/heading styles shift down one level so h1 stays reserved for the document title
STYLE_MAP = "\n".join(
    [
        "p[style-name='Title'] => h1:fresh",
        "p[style-name='Heading 1'] => h2:fresh",
        "p[style-name='Heading 2'] => h3:fresh",
        "p[style-name='Heading 3'] => h4:fresh",
    ]
)


class DOCXReader:
    """Keep bold/italic runs and headings so metadata captions survive."""

    format_name = "docx"

    def supports(self, file_name: str, sniffed_bytes: bytes | None = None, mime_type: str = "") -> bool:
        if suffix_of(file_name) == ".docx" or base_mime(mime_type) == _DOCX_MIME:
            return True
        if not sniffed_bytes or not sniffed_bytes.startswith(_ZIP_MAGIC):
            return False
        return b"word/" in sniffed_bytes

    def read(self, document: RawDocument) -> ReaderOutput:
        result = mammoth.convert_to_html(io.BytesIO(document.payload), style_map=STYLE_MAP)
        messages = [str(message.message) for message in result.messages]
        for message in messages:
            logger.debug("mammoth: %s (%s)", message, document.file_name)
        text = mammoth.extract_raw_text(io.BytesIO(document.payload)).value
        return ReaderOutput(html=result.value, text=text, format_name=self.format_name, messages=messages)
