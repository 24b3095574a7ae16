"""Command handlers for /start and /help."""

from __future__ import annotations

from telegram import Update
from telegram.ext import CommandHandler, ContextTypes


async def start_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /start command with usage instructions."""
    del context
    if update.message is None:
        return

    text = (
        "Send a DOCX, PDF or HTML file with taxon descriptions.\n\n"
        "The caption selects the collection and whether to save:\n"
        "• no caption: preview only\n"
        "• <collection> commit: save into a collection id or title\n"
        "• commit: save into the default collection\n\n"
        "Use /help for details."
    )
    await update.message.reply_text(text)


async def help_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /help command with detailed usage guidance."""
    del context
    if update.message is None:
        return

    text = (
        "Upload help:\n\n"
        "Each entry ends at its author line (ผู้เขียนคำอธิบาย / Author of description).\n"
        "Preview replies list the parsed entry count and warnings.\n\n"
        "Caption examples:\n"
        "  12 commit  save into collection #12\n"
        "  พืชสมุนไพร commit  save into a collection by title\n"
        "  พืชสมุนไพร  preview against that collection\n\n"
        "Supported formats: DOCX, PDF, HTML."
    )
    await update.message.reply_text(text)


def build_command_handlers() -> list[CommandHandler]:
    """Build all command handlers."""
    return [
        CommandHandler("start", start_command),
        CommandHandler("help", help_command),
    ]
