"""
Structured logging for CalcDispatch.

Provides consistent, structured logging across all components with:
- JSON and console output formats
- Automatic context binding
- Request-scoped context variables
"""

from __future__ import annotations

import logging
import sys
from typing import Any

import structlog
from structlog.types import Processor

from calcdispatch.core.config import LoggingConfig, get_config

# Track if we've configured logging
_logging_configured = False


def _build_processors(fmt: str) -> list[Processor]:
    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
    ]
    if fmt == "json":
        processors += [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=True))
    return processors


def _apply(settings: LoggingConfig) -> None:
    global _logging_configured
    structlog.configure(
        processors=_build_processors(settings.format),
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.getLevelName(settings.level)
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=False,  # Allow reconfiguration
    )
    _logging_configured = True


def _ensure_default_config() -> None:
    """Configure from CALCDISPATCH_LOG_* if nothing has configured logging yet."""
    if not _logging_configured:
        _apply(LoggingConfig())


def configure_logging(settings: LoggingConfig | None = None) -> None:
    """Configure structured logging, from the global configuration by default."""
    _apply(settings or get_config().logging)


def get_logger(name: str | None = None, **initial_context: Any) -> structlog.BoundLogger:
    """
    Get a structured logger instance.

    Args:
        name: Logger name (typically module name)
        **initial_context: Initial context to bind to all log entries

    Returns:
        A bound structured logger
    """
    _ensure_default_config()

    logger = structlog.get_logger(name)
    if initial_context:
        logger = logger.bind(**initial_context)
    return logger


def bind_context(**context: Any) -> None:
    """
    Bind context variables to all subsequent log entries in this context.

    Used for request-scoped logging (e.g. request path, task id).
    """
    structlog.contextvars.bind_contextvars(**context)


def clear_context() -> None:
    """Clear all bound context variables."""
    structlog.contextvars.clear_contextvars()
