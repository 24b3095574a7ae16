"""Tests for Telegram upload handler validation and import flow."""

from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest
from telegram.error import NetworkError, TimedOut

from taxodoc.bot.handlers.upload import handle_document_upload, parse_caption, render_envelope
from taxodoc.config import ImportSettings
from taxodoc.importing.service import CreatedRecord, UploadEnvelope, UploadRequest


def _build_update_context(
    document: Any,
    envelope: UploadEnvelope | None = None,
    caption: str | None = None,
) -> tuple[SimpleNamespace, SimpleNamespace, SimpleNamespace, Any, SimpleNamespace]:
    status_message = SimpleNamespace(edit_text=AsyncMock())
    message = SimpleNamespace(
        document=document,
        caption=caption,
        reply_text=AsyncMock(return_value=status_message),
    )
    update = SimpleNamespace(message=message)
    importer = SimpleNamespace(
        settings=ImportSettings(db_path=Path("test.db")),
        handle=MagicMock(return_value=envelope or UploadEnvelope(ok=True, message="Parsed 0 entries")),
    )
    context = SimpleNamespace(bot_data={"importer": importer})
    return update, context, message, status_message, importer


def _document(file_name: str, *, file_size: int | None = 2048, telegram_file: Any = None) -> SimpleNamespace:
    return SimpleNamespace(
        file_size=file_size,
        file_name=file_name,
        mime_type="application/vnd.openxmlformats-officedocument.wordprocessingml.document",
        get_file=AsyncMock(return_value=telegram_file),
    )


@pytest.mark.asyncio
async def test_upload_rejects_large_file_without_download() -> None:
    document = _document("flora.docx", file_size=300 * 1024 * 1024)
    update, context, message, _, importer = _build_update_context(document)

    await handle_document_upload(update, context)

    message.reply_text.assert_awaited_once_with("File is too large. Maximum size: 200 MB")
    document.get_file.assert_not_called()
    importer.handle.assert_not_called()


@pytest.mark.asyncio
async def test_upload_rejects_unsupported_extension() -> None:
    document = _document("photo.jpg")
    update, context, message, _, _ = _build_update_context(document)

    await handle_document_upload(update, context)

    message.reply_text.assert_awaited_once_with("Unsupported format. Supported: DOCX, PDF, HTML")
    document.get_file.assert_not_called()


@pytest.mark.asyncio
async def test_upload_commit_caption_reaches_importer() -> None:
    telegram_file = SimpleNamespace(download_as_bytearray=AsyncMock(return_value=bytearray(b"PK\x03\x04docx")))
    document = _document("flora.docx", telegram_file=telegram_file)
    envelope = UploadEnvelope(
        ok=True,
        message="Saved 2 of 2 entries",
        created=[CreatedRecord(id=7, title="flora", entries=2)],
        collection_id=3,
    )
    update, context, message, status_message, importer = _build_update_context(
        document,
        envelope,
        caption="พืชสมุนไพร commit",
    )

    await handle_document_upload(update, context)

    message.reply_text.assert_awaited_once_with("Downloading and parsing the document...")
    request = importer.handle.call_args.args[0]
    assert isinstance(request, UploadRequest)
    assert request.file_name == "flora.docx"
    assert request.payload == b"PK\x03\x04docx"
    assert request.collection == "พืชสมุนไพร"
    assert request.commit is True

    sent_text = status_message.edit_text.await_args.args[0]
    assert "Saved 2 of 2 entries" in sent_text
    assert "Collection: #3" in sent_text
    assert "Record #7: flora (2 entries)" in sent_text


@pytest.mark.asyncio
async def test_upload_retries_once_after_network_error(monkeypatch: pytest.MonkeyPatch) -> None:
    telegram_file = SimpleNamespace(download_as_bytearray=AsyncMock(return_value=bytearray(b"<html></html>")))
    document = _document("flora.html", telegram_file=telegram_file)
    document.get_file = AsyncMock(side_effect=[NetworkError("connection reset"), telegram_file])
    update, context, _, status_message, importer = _build_update_context(document)
    monkeypatch.setattr("taxodoc.bot.handlers.upload.RETRY_DELAY_SECONDS", 0)

    await handle_document_upload(update, context)

    assert document.get_file.await_count == 2
    importer.handle.assert_called_once()
    status_message.edit_text.assert_awaited_once()


@pytest.mark.asyncio
async def test_upload_summary_timeout_does_not_repeat_import(monkeypatch: pytest.MonkeyPatch) -> None:
    telegram_file = SimpleNamespace(download_as_bytearray=AsyncMock(return_value=bytearray(b"<html></html>")))
    document = _document("flora.html", telegram_file=telegram_file)
    update, context, _, status_message, importer = _build_update_context(document, caption="Herbs commit")
    status_message.edit_text = AsyncMock(side_effect=[TimedOut(), None])
    monkeypatch.setattr("taxodoc.bot.handlers.upload.RETRY_DELAY_SECONDS", 0)

    await handle_document_upload(update, context)

    document.get_file.assert_awaited_once()
    importer.handle.assert_called_once()
    assert status_message.edit_text.await_count == 2
    first, second = status_message.edit_text.await_args_list
    assert first.args == second.args


@pytest.mark.asyncio
async def test_upload_gives_up_after_second_download_failure(monkeypatch: pytest.MonkeyPatch) -> None:
    document = _document("flora.html")
    document.get_file = AsyncMock(side_effect=[NetworkError("reset"), TimedOut()])
    update, context, _, status_message, importer = _build_update_context(document)
    monkeypatch.setattr("taxodoc.bot.handlers.upload.RETRY_DELAY_SECONDS", 0)

    await handle_document_upload(update, context)

    importer.handle.assert_not_called()
    status_message.edit_text.assert_awaited_once_with(
        "Network error while downloading the file. Please try again later."
    )


@pytest.mark.asyncio
async def test_upload_reports_importer_crash() -> None:
    telegram_file = SimpleNamespace(download_as_bytearray=AsyncMock(return_value=bytearray(b"%PDF-1.7")))
    document = _document("flora.pdf", file_size=None, telegram_file=telegram_file)
    update, context, _, status_message, importer = _build_update_context(document)
    importer.handle.side_effect = RuntimeError("boom")

    await handle_document_upload(update, context)

    status_message.edit_text.assert_awaited_once_with("Could not process the file. Please try again later.")


def test_parse_caption_splits_collection_and_commit_flag() -> None:
    assert parse_caption("พืช สมุนไพร บันทึก") == ("พืช สมุนไพร", True)
    assert parse_caption("12 COMMIT") == ("12", True)
    assert parse_caption("12") == ("12", False)
    assert parse_caption("commit") == (None, True)
    assert parse_caption(None) == (None, False)


def test_render_envelope_lists_limited_warnings() -> None:
    envelope = UploadEnvelope(ok=True, message="Parsed 9 entries", warnings=[f"warning {n}" for n in range(8)])

    text = render_envelope(envelope)

    assert "• warning 4" in text
    assert "• warning 5" not in text
    assert "… and 3 more" in text


def test_render_envelope_includes_record_warnings() -> None:
    envelope = UploadEnvelope(
        ok=True,
        message="Saved 1 of 2 entries",
        created=[CreatedRecord(id=4, title="flora", entries=1, warnings=["Entry 1 (สัก) was not saved: locked"])],
        warnings=["Entry 2 (ทองกวาว): synonyms caption found but no synonyms value was extracted (record id: 9)"],
    )

    text = render_envelope(envelope)

    assert "• Entry 1 (สัก) was not saved: locked" in text
    assert "• Entry 2 (ทองกวาว): synonyms caption found" in text


def test_render_envelope_shows_error_hint() -> None:
    envelope = UploadEnvelope(
        ok=False,
        message="PDF support is not installed",
        status_code=400,
        error="PDF support is not installed (file=a.pdf)",
        hint="pip install pymupdf",
    )

    assert render_envelope(envelope) == (
        "Import failed: PDF support is not installed\n"
        "PDF support is not installed (file=a.pdf)\n"
        "Hint: pip install pymupdf"
    )
