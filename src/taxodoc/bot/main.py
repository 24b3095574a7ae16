"""Telegram bot entrypoint with handler registration and polling."""

from __future__ import annotations

import asyncio
import logging
import sys

from dotenv import load_dotenv
from telegram.ext import Application

load_dotenv()

from taxodoc.bot.config import BotSettings
from taxodoc.bot.handlers.commands import build_command_handlers
from taxodoc.bot.handlers.upload import build_upload_handler
from taxodoc.importing.service import CatalogImporter


logging.basicConfig(
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    level=logging.INFO,
)
logger = logging.getLogger(__name__)


def build_application(settings: BotSettings) -> Application:
    """Build PTB Application with all handlers registered."""
    application = Application.builder().token(settings.token).build()

    application.bot_data["importer"] = CatalogImporter(settings.imports)
    application.bot_data["db_path"] = str(settings.imports.db_path)

    for handler in build_command_handlers():
        application.add_handler(handler)
    application.add_handler(build_upload_handler())

    logger.info("Registered handlers: commands, upload")
    return application


async def run_bot(settings: BotSettings) -> None:
    """Run bot with polling and graceful shutdown."""
    application = build_application(settings)

    await application.initialize()
    logger.info("Bot initialized. Starting polling...")

    await application.start()
    updater = application.updater
    if updater is None:
        raise RuntimeError("Bot updater is not initialized")

    await updater.start_polling(allowed_updates=["message"])
    logger.info("Bot polling started. Press Ctrl+C to stop.")

    try:
        await asyncio.Event().wait()
    except (KeyboardInterrupt, SystemExit):
        logger.info("Received stop signal. Shutting down...")

    await updater.stop()
    await application.stop()
    await application.shutdown()
    logger.info("Bot stopped cleanly.")


def main() -> None:
    """Main entrypoint for Telegram bot."""
    try:
        settings = BotSettings.from_env()
        logger.info(f"Loaded bot config: db={settings.imports.db_path}")
    except ValueError as e:
        logger.error(f"Configuration error: {e}")
        sys.exit(1)

    try:
        asyncio.run(run_bot(settings))
    except KeyboardInterrupt:
        logger.info("Bot interrupted by user.")
        sys.exit(0)


if __name__ == "__main__":
    main()
