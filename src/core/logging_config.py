"""Structured logging configuration.

Log events go to stderr so CLI result lines on stdout stay machine-readable.
Every logger renders one JSON object per event.
"""

from __future__ import annotations

import sys
from typing import Any

import structlog

_STRUCTLOG_CONFIGURED = False


def get_logger(name: str) -> Any:
    """Return a module logger instance.

    Args:
        name: Logger name, usually __name__.

    Returns:
        A structlog logger accepting keyword event fields.
    """
    _configure_structlog()
    return structlog.get_logger(name)


def _configure_structlog() -> None:
    global _STRUCTLOG_CONFIGURED
    if _STRUCTLOG_CONFIGURED:
        return
    structlog.configure(
        processors=[
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.add_log_level,
            structlog.processors.JSONRenderer(sort_keys=True),
        ],
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )
    _STRUCTLOG_CONFIGURED = True
