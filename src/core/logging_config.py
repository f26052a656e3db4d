"""Structured logging configuration.

This module initializes structlog with a stable JSON event format.
Events go to stderr so CLI output on stdout stays machine-readable.
"""

from __future__ import annotations

import sys
from typing import Any

import structlog


def get_logger(name: str) -> Any:
    """Return a module logger instance.

    Args:
        name: Logger name, usually __name__.

    Returns:
        A structlog logger with structured output.
    """
    structlog.configure(
        processors=[
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.add_log_level,
            structlog.processors.JSONRenderer(),
        ],
        logger_factory=structlog.PrintLoggerFactory(file=_StderrWriter()),
        cache_logger_on_first_use=True,
    )
    return structlog.get_logger(name)


class _StderrWriter:
    """File-like target that resolves ``sys.stderr`` at write time."""

    def write(self, message: str) -> int:
        return sys.stderr.write(message)

    def flush(self) -> None:
        sys.stderr.flush()
