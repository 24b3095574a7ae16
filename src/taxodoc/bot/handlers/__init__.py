"""Telegram bot command and upload handler modules."""

from __future__ import annotations

from .commands import build_command_handlers
from .upload import build_upload_handler

__all__ = [
    "build_command_handlers",
    "build_upload_handler",
]
