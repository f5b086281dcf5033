"""Structured logging setup for citool."""

import logging
import sys
from enum import Enum
from typing import Any

import structlog

from citool.commons.config import settings


def _get_log_level_string(log_level: Any) -> str:
    """Convert log level to string for use with logging module.

    Args:
        log_level: Log level value (can be Enum, string, or int).

    Returns:
        String representation of the log level.
    """
    if isinstance(log_level, Enum):
        return log_level.value.upper() if isinstance(log_level.value, str) else log_level.name
    if isinstance(log_level, str):
        return log_level.upper()
    return logging.getLevelName(log_level)


def configure_structlog() -> None:
    """Configure structlog for structured logging.

    Debug mode renders colored console output, otherwise one JSON object
    per event is written to stdout.
    """
    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
    ]

    if settings.debug:
        processors = shared_processors + [
            structlog.dev.ConsoleRenderer(colors=True),
        ]
    else:
        processors = shared_processors + [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    log_level_str = _get_log_level_string(settings.log_level)
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, log_level_str, logging.INFO),
    )


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Get a configured structlog logger.

    Args:
        name: Logger name (optional, defaults to module name).

    Returns:
        Configured structlog logger instance.
    """
    return structlog.get_logger(name)
