"""Routing entrypoint tying readers to the parsing stages."""

from __future__ import annotations

import logging

from taxodoc.ingestion.errors import (
    ExtractionError,
    IngestionError,
    ReaderUnavailableError,
    UnsupportedFormatError,
)
from taxodoc.ingestion.metadata import extract
from taxodoc.ingestion.models import (
    DocumentStats,
    Entry,
    ParsedDocument,
    ParsedEntry,
    RawDocument,
    ReaderOutput,
)
from taxodoc.ingestion.normalization import TextNormalizer, default_normalizer
from taxodoc.ingestion.readers import FormatReader, build_default_readers, requirement_for
from taxodoc.ingestion.sanitize import sanitize
from taxodoc.ingestion.segmentation import (
    drop_layout_noise,
    fallback_block,
    render_blocks,
    segment,
    segment_markup,
)
from taxodoc.ingestion.splitting import split
from taxodoc.ingestion.vocabulary import LabelVocabulary, default_vocabulary

logger = logging.getLogger(__name__)

LOW_CONFIDENCE_WARNING = "Document structure was not recognised; its text was kept as one unparsed block"


class DocumentPipeline:
    """Resolve the right reader and turn an upload into parsed entries."""

    def __init__(
        self,
        sniff_bytes: int = 4096,
        *,
        normalizer: TextNormalizer | None = None,
        vocabulary: LabelVocabulary | None = None,
        readers: dict[str, FormatReader] | None = None,
    ) -> None:
        self._sniff_bytes = sniff_bytes
        self._normalizer = normalizer or default_normalizer()
        self._vocabulary = vocabulary or default_vocabulary()
        self._reader_map: dict[str, FormatReader] = dict(readers) if readers is not None else build_default_readers()

    @property
    def reader_map(self) -> dict[str, FormatReader]:
        """Registered readers keyed by format name."""

        return dict(self._reader_map)

    @property
    def vocabulary(self) -> LabelVocabulary:
        return self._vocabulary

    def register_reader(self, name: str, reader: FormatReader) -> None:
        """Register a reader implementation by format name."""

        if not name:
            raise ValueError("Reader name cannot be empty")
        self._reader_map[name] = reader

    def resolve_reader(self, document: RawDocument) -> FormatReader:
        sniffed = document.payload[: self._sniff_bytes]
        for reader in self._reader_map.values():
            if reader.supports(document.file_name, sniffed, document.mime_type):
                return reader

        requirement = requirement_for(document.file_name)
        if requirement is not None and requirement[0] not in self._reader_map:
            format_name, package = requirement
            raise ReaderUnavailableError(
                document.file_name,
                f"{format_name.upper()} support is not installed",
                module=package,
                hint=f"pip install {package}",
            )
        raise UnsupportedFormatError(document.file_name, "No reader registered for file content")

    def read(self, document: RawDocument) -> ReaderOutput:
        reader = self.resolve_reader(document)
        try:
            output = reader.read(document)
        except IngestionError:
            raise
        except Exception as exc:
            raise ExtractionError(document.file_name, f"Reader extraction failed: {exc}") from exc

        if not isinstance(output, ReaderOutput):
            raise ExtractionError(document.file_name, "Reader returned non-canonical output")
        return output

    def parse(self, document: RawDocument) -> ParsedDocument:
        """Read, segment, split and extract metadata for every entry."""

        return self.parse_output(document.file_name, self.read(document))

    def parse_output(self, file_name: str, output: ReaderOutput) -> ParsedDocument:
        text = self._normalizer.normalize_document(output.text)
        if output.html.strip():
            blocks = segment_markup(
                self._normalizer.normalize_markup(output.html),
                self._vocabulary,
                self._normalizer,
            )
        else:
            blocks = segment(text, self._vocabulary)

        blocks, dropped = drop_layout_noise(blocks)
        if dropped:
            logger.info("Dropped %d layout-noise blocks from %s", dropped, file_name)
        if not blocks:
            blocks = [fallback_block(text)]

        warnings = list(output.messages)
        parsed = ParsedDocument(
            file_name=file_name,
            format_name=output.format_name,
            html=render_blocks(blocks),
            text=text,
            blocks=blocks,
            entries=[],
            stats=DocumentStats(paragraphs=0, html_length=0, sections=0, dom_nodes=0),
            warnings=warnings,
        )
        if parsed.low_confidence:
            logger.warning("Low-confidence segmentation for %s", file_name)
            warnings.append(LOW_CONFIDENCE_WARNING)

        parsed.entries = [self._parse_entry(index, entry) for index, entry in enumerate(split(blocks, self._vocabulary))]
        parsed.stats = DocumentStats(
            paragraphs=text.count("\n") + 1 if text else 0,
            html_length=len(parsed.html),
            sections=len(parsed.entries),
            dom_nodes=len(blocks),
        )
        return parsed

    def _parse_entry(self, index: int, entry: Entry) -> ParsedEntry:
        metadata = extract(entry, self._vocabulary, self._normalizer)
        content = sanitize(entry.html, metadata, self._vocabulary, self._normalizer)
        warnings: list[str] = []
        if not metadata.scientific:
            warnings.append(f"Entry {index + 1} ({entry.title}): no scientific name found")
        return ParsedEntry(index=index, entry=entry, metadata=metadata, content=content, warnings=warnings)
