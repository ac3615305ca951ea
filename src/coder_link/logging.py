"""Structured logging configuration using structlog."""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Any, TextIO

import structlog

# Log file opened by the last configure_logging call
_log_file_stream: TextIO | None = None


def _close_log_file() -> None:
    global _log_file_stream
    if _log_file_stream is not None:
        _log_file_stream.close()
        _log_file_stream = None


def configure_logging(
    json_output: bool = False,
    log_level: str = "WARNING",
    log_file: Path | None = None,
) -> None:
    """Configure structlog for the coder-link core.

    Calling this again replaces the previous configuration and closes the
    previous log file.

    Args:
        json_output: If True, render JSON lines. If False, render human-readable lines.
        log_level: The logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        log_file: Optional file to append log lines to instead of stderr.
    """
    global _log_file_stream

    shared_processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
    ]

    if json_output or log_file is not None:
        processors = [
            *shared_processors,
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors = [
            *shared_processors,
            structlog.dev.ConsoleRenderer(colors=False),
        ]

    level = getattr(logging, log_level.upper())
    _close_log_file()
    stream: TextIO = sys.stderr
    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        stream = _log_file_stream = open(log_file, "a", encoding="utf-8")  # noqa: SIM115

    # Loggers are not cached so a reconfiguration never writes to a closed file
    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=stream),
        cache_logger_on_first_use=False,
    )

    logging.basicConfig(
        format="%(message)s",
        level=level,
        handlers=[logging.StreamHandler(stream)],
        force=True,
    )


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Get a structlog logger.

    Args:
        name: Optional logger name. If not provided, uses the caller's module name.

    Returns:
        A bound structlog logger.
    """
    return structlog.get_logger(name)


def configure_from_settings() -> None:
    """Configure logging from the ``CODER_LINK_`` settings."""
    from coder_link.settings import settings

    configure_logging(
        json_output=settings.json_logs,
        log_level=settings.log_level,
        log_file=settings.log_file,
    )


def apply_default_logging() -> None:
    """Filter below the configured level on stderr until an application configures logging.

    Does nothing when structlog is already configured.
    """
    if structlog.is_configured():
        return
    from coder_link.settings import settings

    structlog.configure(
        wrapper_class=structlog.make_filtering_bound_logger(getattr(logging, settings.log_level.upper())),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
    )


apply_default_logging()
