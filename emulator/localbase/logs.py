"""
Logging setup for LocalBase.

Library modules only create ``logging.getLogger(__name__)`` loggers and
attach context through ``extra=``. Hosts that want the emulator's own
formatting call setup_logging() once at startup.
"""

from __future__ import annotations

import logging

import json_log_formatter

from .config import Settings


def setup_logging(settings: Settings) -> None:
    """Configure logging based on settings.

    Args:
        settings: Emulator settings
    """
    level = getattr(logging, settings.log_level.upper(), logging.INFO)

    if settings.log_format == "json":
        formatter: logging.Formatter = json_log_formatter.JSONFormatter()
    else:
        formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")

    handler = logging.StreamHandler()
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers = [handler]

    # Reduce noise from libraries
    logging.getLogger("asyncio").setLevel(logging.WARNING)
