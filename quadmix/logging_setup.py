"""Logging configuration helpers for quadmix."""

from __future__ import annotations

import logging
import os
import sys
from typing import Optional

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def _resolve_level(level_name: str, default_level: str) -> tuple[int, Optional[str]]:
    level = getattr(logging, level_name.upper(), None)
    if isinstance(level, int):
        return level, None
    return getattr(logging, default_level.upper(), logging.WARNING), level_name


def configure_logging(default_level: str = "WARNING",
                      log_file: Optional[str] = None) -> int:
    """Configure process-wide logging and return the resolved level.

    The level is read from ``LOG_LEVEL`` (falling back to ``default_level``).
    Records go to stderr so they don't interleave with the interactive
    prompt on stdout; ``log_file`` or ``LOG_FILE`` adds a file handler.
    """
    level, invalid_level = _resolve_level(
        os.environ.get("LOG_LEVEL", default_level), default_level)

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    log_file = log_file or os.environ.get("LOG_FILE")
    if log_file:
        handlers.append(logging.FileHandler(log_file, encoding="utf-8"))

    logging.basicConfig(
        level=level,
        format=LOG_FORMAT,
        datefmt=DATE_FORMAT,
        handlers=handlers,
        force=True,
    )

    if invalid_level is not None:
        logging.getLogger(__name__).warning(
            "Invalid LOG_LEVEL '%s'; using %s", invalid_level, logging.getLevelName(level)
        )

    return level
