"""Logging configuration using structlog."""

import logging
import sys
from typing import Any

import structlog

from revtrail.config import settings


def configure_logging(
    log_level: str | None = None, log_format: str | None = None
) -> None:
    """Configure structlog for revtrail.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL);
            defaults to settings.logging.log_level
        log_format: Output format ("json" for JSON lines, "console" for
            human-readable); defaults to settings.logging.log_format
    """
    log_level = log_level or settings.logging.log_level
    log_format = log_format or settings.logging.log_format
    numeric_level = getattr(logging, log_level.upper(), logging.INFO)

    # Replaces existing root handlers so repeated calls take effect.
    # Keep stdout free for callers that pipe file contents through it.
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=numeric_level,
        force=True,
    )

    processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
    ]

    if log_format == "console":
        processors.extend([
            structlog.dev.ConsoleRenderer(),
        ])
    else:
        processors.extend([
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ])

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
