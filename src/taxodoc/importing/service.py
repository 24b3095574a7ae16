"""Upload handling: validate, parse, optionally persist and build the response envelope."""

from __future__ import annotations

from dataclasses import dataclass, field
import logging
from pathlib import Path, PurePath
import re
from typing import Callable

from taxodoc.config import ImportSettings
from taxodoc.ingestion.errors import ExtractionError, ReaderUnavailableError, UnsupportedFormatError
from taxodoc.ingestion.models import DocumentStats, ParsedDocument, ParsedEntry, RawDocument
from taxodoc.ingestion.normalization import TextNormalizer
from taxodoc.ingestion.pipeline import DocumentPipeline
from taxodoc.ingestion.vocabulary import load_label_vocabulary
from taxodoc.storage.errors import CollectionNotFoundError, PersistenceError
from taxodoc.storage.persister import SchemaAdaptivePersister
from taxodoc.storage.repository import CatalogRepository

logger = logging.getLogger(__name__)

PARENT_TABLE = "taxa"
TRUNCATION_MARKER = "\n<!-- …truncated… -->"
MAX_COLLECTION_TITLE = 200

_INTEGER_RE = re.compile(r"^[+-]?\d+$")


@dataclass(slots=True)
class UploadRequest:
    file_name: str
    payload: bytes
    collection: str | int | None = None
    commit: bool = False
    mime_type: str = ""
    domain: str | None = None
    kingdom: str | None = None


@dataclass(slots=True)
class CreatedRecord:
    id: int
    title: str
    entries: int
    warnings: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, object]:
        return {"id": self.id, "title": self.title, "entries": self.entries, "warnings": list(self.warnings)}


@dataclass(slots=True)
class UploadEnvelope:
    """Response for one upload; ``status_code`` maps onto the transport."""

    ok: bool
    message: str
    status_code: int = 200
    stats: DocumentStats = field(default_factory=lambda: DocumentStats(0, 0, 0, 0))
    preview_html: str = ""
    created: list[CreatedRecord] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    commit: bool = False
    file: dict[str, object] = field(default_factory=dict)
    collection_id: int | None = None
    error: str | None = None
    hint: str | None = None

    def to_dict(self) -> dict[str, object]:
        payload: dict[str, object] = {
            "ok": self.ok,
            "message": self.message,
            "stats": self.stats.to_dict(),
            "previewHtml": self.preview_html,
            "created": [record.to_dict() for record in self.created],
            "warnings": list(self.warnings),
            "commit": self.commit,
            "file": dict(self.file),
            "collectionId": self.collection_id,
        }
        if self.error is not None:
            payload["error"] = self.error
        if self.hint is not None:
            payload["hint"] = self.hint
        return payload


def parse_collection_identifier(raw: str | int | None) -> str | int | None:
    """Positive integers select an existing collection; other text is a title."""

    if raw is None:
        return None
    if isinstance(raw, int):
        value = raw
    else:
        text = raw.strip()
        if not text:
            return None
        if not _INTEGER_RE.match(text):
            if len(text) > MAX_COLLECTION_TITLE:
                raise ValueError(f"Collection title must be at most {MAX_COLLECTION_TITLE} characters")
            return text
        value = int(text)
    if value < 1:
        raise ValueError("Collection id must be a positive integer")
    return value


def preview_excerpt(html: str, limit: int) -> str:
    if len(html) <= limit:
        return html
    return html[:limit] + TRUNCATION_MARKER


def synonyms_warning(entry: ParsedEntry, record_id: int | None) -> str:
    reference = f"record id: {record_id}" if record_id is not None else "not saved"
    return (
        f"Entry {entry.index + 1} ({entry.entry.title}): synonyms caption found "
        f"but no synonyms value was extracted ({reference})"
    )


def needs_synonyms_warning(entry: ParsedEntry) -> bool:
    return entry.metadata.synonyms_label_present and not entry.metadata.synonyms


class CatalogImporter:
    """Run the parsing pipeline for an upload and persist it on commit."""

    def __init__(
        self,
        settings: ImportSettings,
        pipeline: DocumentPipeline | None = None,
        repository_factory: Callable[[Path], CatalogRepository] | None = None,
    ) -> None:
        self._settings = settings
        self._pipeline = pipeline or DocumentPipeline(
            normalizer=TextNormalizer.from_path(settings.garble_repairs_path),
            vocabulary=load_label_vocabulary(settings.labels_path),
        )
        self._repository_factory = repository_factory or CatalogRepository

    @property
    def settings(self) -> ImportSettings:
        return self._settings

    def handle(self, request: UploadRequest) -> UploadEnvelope:
        """Process one upload; errors become envelopes, never exceptions."""

        try:
            return self._handle(request)
        except Exception as exc:
            logger.exception("Unexpected error while importing %s", request.file_name)
            return self._failure(request, 500, "Unexpected error while importing the document", error=str(exc))

    def _failure(
        self,
        request: UploadRequest,
        status_code: int,
        message: str,
        *,
        error: str | None = None,
        hint: str | None = None,
    ) -> UploadEnvelope:
        return UploadEnvelope(
            ok=False,
            message=message,
            status_code=status_code,
            commit=request.commit,
            file=self._file_info(request),
            error=error or message,
            hint=hint,
        )

    def _file_info(self, request: UploadRequest) -> dict[str, object]:
        return {
            "name": request.file_name,
            "size": len(request.payload),
            "type": request.mime_type or "unknown",
        }

    def _handle(self, request: UploadRequest) -> UploadEnvelope:
        if not request.payload:
            return self._failure(request, 400, "No file content was uploaded")
        if len(request.payload) > self._settings.max_upload_bytes:
            limit_mb = self._settings.max_upload_bytes // (1024 * 1024)
            return self._failure(request, 400, f"File exceeds the {limit_mb} MB upload limit")
        try:
            identifier = parse_collection_identifier(request.collection)
        except ValueError as exc:
            return self._failure(request, 400, "Invalid collection identifier", error=str(exc))

        document = RawDocument(file_name=request.file_name, payload=request.payload, mime_type=request.mime_type)
        try:
            parsed = self._pipeline.parse(document)
        except ReaderUnavailableError as exc:
            return self._failure(request, 400, exc.message, error=str(exc), hint=exc.hint)
        except UnsupportedFormatError as exc:
            supported = ", ".join(sorted(name.upper() for name in self._pipeline.reader_map))
            return self._failure(request, 400, f"Unsupported file type; supported formats: {supported}", error=str(exc))
        except ExtractionError as exc:
            return self._failure(request, 422, "The document could not be read", error=str(exc))

        logger.info(
            "Parsed %s: %d blocks, %d entries", request.file_name, len(parsed.blocks), len(parsed.entries)
        )
        envelope = UploadEnvelope(
            ok=True,
            message="",
            stats=parsed.stats,
            preview_html=preview_excerpt(parsed.html, self._settings.preview_chars),
            warnings=list(parsed.warnings),
            commit=request.commit,
            file=self._file_info(request),
        )
        for entry in parsed.entries:
            envelope.warnings.extend(entry.warnings)

        if not request.commit:
            envelope.warnings.extend(
                synonyms_warning(entry, None) for entry in parsed.entries if needs_synonyms_warning(entry)
            )
            envelope.message = f"Parsed {len(parsed.entries)} entries (preview only; commit to save)"
            return envelope

        return self._commit(request, identifier, parsed, envelope)

    def _commit(
        self,
        request: UploadRequest,
        identifier: str | int | None,
        parsed: ParsedDocument,
        envelope: UploadEnvelope,
    ) -> UploadEnvelope:
        with self._repository_factory(self._settings.db_path) as repository:
            try:
                collection = repository.resolve_collection(
                    identifier,
                    default_title=self._settings.default_collection,
                    domain=request.domain or self._settings.default_domain or None,
                    kingdom=request.kingdom,
                )
            except CollectionNotFoundError as exc:
                return self._failure(request, 400, str(exc))
            envelope.collection_id = collection.id

            persister = SchemaAdaptivePersister(
                repository,
                html_field_candidates=self._settings.html_fields,
                rank_guesses=self._settings.rank_guesses,
            )
            title = PurePath(parsed.file_name).stem or parsed.file_name
            try:
                parent = persister.persist_record(
                    PARENT_TABLE,
                    {"collection_id": collection.id, "scientific_name": title},
                    parsed.html,
                )
            except PersistenceError as exc:
                logger.exception("Failed to save parent record for %s", parsed.file_name)
                envelope.ok = False
                envelope.status_code = 500
                envelope.error = str(exc)
                envelope.message = f"Document parsed but saving failed: {exc}"
                return envelope

            created = CreatedRecord(id=parent.id, title=title, entries=0)
            for entry in parsed.entries:
                record_id: int | None = None
                try:
                    record = persister.persist(
                        entry.entry,
                        entry.metadata,
                        parent_id=parent.id,
                        order_index=entry.index,
                        content=entry.content,
                    )
                    record_id = record.id
                    created.entries += 1
                except Exception as exc:
                    logger.exception("Failed to save entry %d of %s", entry.index + 1, parsed.file_name)
                    created.warnings.append(f"Entry {entry.index + 1} ({entry.entry.title}) was not saved: {exc}")
                if needs_synonyms_warning(entry):
                    envelope.warnings.append(synonyms_warning(entry, record_id))

        envelope.created.append(created)
        envelope.message = f"Saved {created.entries} of {len(parsed.entries)} entries"
        return envelope
