"""HTML reader with charset detection for exported web pages."""

from __future__ import annotations

from bs4 import BeautifulSoup
from charset_normalizer import from_bytes

from taxodoc.ingestion.models import RawDocument, ReaderOutput
from taxodoc.ingestion.readers.base import base_mime, suffix_of

_HTML_SUFFIXES = {".html", ".htm", ".xhtml"}
_HTML_MIMES = {"text/html", "application/xhtml+xml"}
_HTML_PREFIXES = (b"<!doctype html", b"<html")


class HTMLReader:
    """Decode uploaded HTML and hand its body markup to the segmenter."""

    format_name = "html"

    def supports(self, file_name: str, sniffed_bytes: bytes | None = None, mime_type: str = "") -> bool:
        if suffix_of(file_name) in _HTML_SUFFIXES or base_mime(mime_type) in _HTML_MIMES:
            return True
        if sniffed_bytes is None:
            return False
        return sniffed_bytes.lstrip(b"\xef\xbb\xbf \t\r\n").lower().startswith(_HTML_PREFIXES)

    def read(self, document: RawDocument) -> ReaderOutput:
        markup = self._decode(document.payload)
        soup = BeautifulSoup(markup, "lxml")
        for tag in soup(["script", "style", "noscript"]):
            tag.decompose()
        root = soup.body or soup
        html = "".join(str(child) for child in root.contents)
        return ReaderOutput(html=html, text=root.get_text("\n"), format_name=self.format_name)

    def _decode(self, raw: bytes) -> str:
        best = from_bytes(raw).best()
        if best is not None and best.encoding:
            return str(best)
        return raw.decode("utf-8", errors="replace")
