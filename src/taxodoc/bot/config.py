"""Runtime configuration for the Telegram upload bot."""

from __future__ import annotations

from dataclasses import dataclass
import os
from typing import Mapping

from taxodoc.config import ImportSettings


@dataclass(frozen=True, slots=True)
class BotSettings:
    """Validated Telegram bot runtime settings."""

    token: str
    imports: ImportSettings

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "BotSettings":
        source: Mapping[str, str] = os.environ if environ is None else environ

        token = source.get("TELEGRAM_BOT_TOKEN", "").strip()
        if not token:
            raise ValueError("Missing required bot environment variable: TELEGRAM_BOT_TOKEN")

        return cls(token=token, imports=ImportSettings.from_env(source))
