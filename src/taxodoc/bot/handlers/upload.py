"""Telegram document upload handler for catalog imports."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path

from telegram import Update
from telegram.error import NetworkError, TimedOut
from telegram.ext import ContextTypes, MessageHandler, filters

from taxodoc.importing.service import CatalogImporter, UploadEnvelope, UploadRequest


logger = logging.getLogger(__name__)

SUPPORTED_EXTENSIONS = {".docx", ".pdf", ".html", ".htm"}
COMMIT_WORDS = {"commit", "save", "บันทึก"}
MAX_LISTED_WARNINGS = 5
RETRY_DELAY_SECONDS = 2.0


def _is_supported_extension(file_name: str) -> bool:
    return Path(file_name).suffix.lower() in SUPPORTED_EXTENSIONS


def parse_caption(caption: str | None) -> tuple[str | None, bool]:
    """Split ``"<collection> [commit]"`` into the collection text and the commit flag."""
    tokens = (caption or "").split()
    commit = bool(tokens) and tokens[-1].lower() in COMMIT_WORDS
    if commit:
        tokens = tokens[:-1]
    collection = " ".join(tokens) or None
    return collection, commit


def render_envelope(envelope: UploadEnvelope) -> str:
    if not envelope.ok:
        lines = [f"Import failed: {envelope.message}"]
        if envelope.error and envelope.error != envelope.message:
            lines.append(envelope.error)
        if envelope.hint:
            lines.append(f"Hint: {envelope.hint}")
        return "\n".join(lines)

    lines = [envelope.message, "", f"Entries: {envelope.stats.sections}"]
    if envelope.collection_id is not None:
        lines.append(f"Collection: #{envelope.collection_id}")
    for record in envelope.created:
        lines.append(f"Record #{record.id}: {record.title} ({record.entries} entries)")

    warnings = [*envelope.warnings, *(warning for record in envelope.created for warning in record.warnings)]
    if warnings:
        lines.extend(["", "Warnings:"])
        lines.extend(f"• {warning}" for warning in warnings[:MAX_LISTED_WARNINGS])
        hidden = len(warnings) - MAX_LISTED_WARNINGS
        if hidden > 0:
            lines.append(f"… and {hidden} more")
    return "\n".join(lines)


async def handle_document_upload(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Validate, download and import a curator's document."""
    message = update.message
    if message is None or message.document is None:
        return

    document = message.document
    importer: CatalogImporter = context.bot_data["importer"]
    max_size = importer.settings.max_upload_bytes

    if document.file_size is not None and document.file_size > max_size:
        await message.reply_text(f"File is too large. Maximum size: {max_size // (1024 * 1024)} MB")
        return

    safe_name = Path(document.file_name or "").name
    if not _is_supported_extension(safe_name):
        await message.reply_text("Unsupported format. Supported: DOCX, PDF, HTML")
        return

    collection, commit = parse_caption(getattr(message, "caption", None))
    status_msg = await message.reply_text("Downloading and parsing the document...")

    try:
        payload = await _download_with_retry(document, safe_name)
    except (NetworkError, TimedOut):
        await status_msg.edit_text("Network error while downloading the file. Please try again later.")
        return
    except Exception:
        logger.exception("Unexpected error while downloading upload: %s", safe_name)
        await status_msg.edit_text("Could not process the file. Please try again later.")
        return

    request = UploadRequest(
        file_name=safe_name,
        payload=payload,
        collection=collection,
        commit=commit,
        mime_type=document.mime_type or "",
    )
    try:
        envelope = await asyncio.to_thread(importer.handle, request)
    except Exception:
        logger.exception("Unexpected error while handling upload: %s", safe_name)
        await status_msg.edit_text("Could not process the file. Please try again later.")
        return

    await _edit_with_retry(status_msg, render_envelope(envelope))


async def _download(document) -> bytes:
    telegram_file = await document.get_file()
    return bytes(await telegram_file.download_as_bytearray())


async def _download_with_retry(document, safe_name: str) -> bytes:
    try:
        return await _download(document)
    except (NetworkError, TimedOut) as error:
        logger.warning("Network error while downloading %s, retrying once: %s", safe_name, error)
    await asyncio.sleep(RETRY_DELAY_SECONDS)
    return await _download(document)


async def _edit_with_retry(status_msg, text: str) -> None:
    """Deliver the import summary; the import itself is never repeated."""
    try:
        await status_msg.edit_text(text)
        return
    except (NetworkError, TimedOut) as error:
        logger.warning("Network error while sending upload summary, retrying once: %s", error)
    await asyncio.sleep(RETRY_DELAY_SECONDS)
    try:
        await status_msg.edit_text(text)
    except (NetworkError, TimedOut):
        logger.exception("Upload summary could not be delivered")


def build_upload_handler() -> MessageHandler:
    """Build document upload message handler."""
    upload_filter = (
        filters.Document.PDF
        | filters.Document.FileExtension("docx")
        | filters.Document.FileExtension("html")
        | filters.Document.FileExtension("htm")
    )
    return MessageHandler(upload_filter, handle_document_upload)
