"""Structured logging setup shared by the engine and its entrypoints."""
from __future__ import annotations

import logging
import sys

import structlog

_configured = False


def _stderr_logger_factory(*_args: object) -> structlog.PrintLogger:
    # Looked up per call so redirected streams are honoured.
    return structlog.PrintLogger(file=sys.stderr)


def configure_logging(level: str = "warning", force: bool = False) -> None:
    """Configure structlog with a console renderer (idempotent unless ``force``)."""
    global _configured
    if _configured and not force:
        return

    numeric_level = logging.getLevelName(level.upper())
    if not isinstance(numeric_level, int):
        numeric_level = logging.WARNING

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.dev.ConsoleRenderer(colors=False),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        logger_factory=_stderr_logger_factory,
        cache_logger_on_first_use=False,
    )
    _configured = True


def get_logger(name: str) -> structlog.typing.FilteringBoundLogger:
    """Return a logger bound to ``name``; logging is configured lazily."""
    configure_logging()
    return structlog.get_logger(name).bind(module=name)
