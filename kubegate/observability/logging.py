"""Structured logging configuration using structlog.

Every record is one JSON line on stderr.  Records emitted while a tool runs
carry ``tool`` and ``invocation_id`` through structlog contextvars, so the
guard, dispatcher and control-plane lines of one call can be correlated.
"""

from __future__ import annotations

import logging
import sys
import uuid
from contextlib import AbstractContextManager

import structlog

_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


def setup_logging(level: str = "info") -> None:
    """Configure structlog for JSON output to stderr.

    stdout carries the MCP stream, so nothing else may write there.
    """
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.dev.set_exc_info,
            structlog.processors.TimeStamper(fmt="iso", utc=True, key="ts"),
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(_LEVELS.get(level.lower(), logging.INFO)),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )


def get_logger(component: str) -> structlog.stdlib.BoundLogger:
    """Get a logger bound with a component name."""
    return structlog.get_logger(component=component)  # type: ignore[return-value]


def invocation_context(tool: str) -> AbstractContextManager[None]:
    """Bind ``tool`` and a fresh ``invocation_id`` for the duration of a call."""
    return structlog.contextvars.bound_contextvars(tool=tool, invocation_id=uuid.uuid4().hex[:12])
