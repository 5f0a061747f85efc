"""Structured logging for the FamilySearch SDK.

Library code logs through structlog only and never prints. Output goes to
stderr so GEDCOM or JSON written to stdout stays clean. The level comes
from ``FAMILYSEARCH_LOG_LEVEL`` (default WARNING).
"""
from __future__ import annotations

import logging
import os
import sys
from typing import Literal

import structlog

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]

LOG_LEVEL_ENV = "FAMILYSEARCH_LOG_LEVEL"


def configure_logging(level: LogLevel | None = None, json: bool = True) -> None:
    """Set the level filter and renderer for every SDK logger.

    Args:
        level: Minimum level; falls back to ``FAMILYSEARCH_LOG_LEVEL``
        json: JSON lines when True, coloured console output otherwise
    """
    name = (level or os.getenv(LOG_LEVEL_ENV) or "WARNING").upper()
    numeric = logging.getLevelNamesMapping().get(name, logging.WARNING)
    renderer = structlog.processors.JSONRenderer() if json else structlog.dev.ConsoleRenderer()
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="ISO"),
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(numeric),
        logger_factory=structlog.PrintLoggerFactory(sys.stderr),
        cache_logger_on_first_use=False,
    )


def get_logger(name: str = "familysearch_sdk"):
    return structlog.get_logger(name)


configure_logging()
