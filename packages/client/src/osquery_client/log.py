"""Structured logging for osquery-client.

Thin wrapper over structlog so every module logs the same way:

>>> from osquery_client.log import get_logger
>>> logger = get_logger(__name__)
>>> logger.info("daemon_ready", socket="/tmp/osquery-client")
"""

import logging
import sys
from typing import Any

import structlog


def _stderr_logger(*args: Any) -> structlog.PrintLogger:
    # Looked up per logger so a redirected sys.stderr is honoured.
    return structlog.PrintLogger(file=sys.stderr)


def configure_logging(level: str = "INFO", json_format: bool = False) -> None:
    """Configure structlog processors and output.

    Args:
        level: Minimum log level name (DEBUG, INFO, WARNING, ERROR)
        json_format: Render JSON lines instead of console output
    """
    processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
    ]
    if json_format:
        processors += [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=False))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, level.upper(), logging.INFO)
        ),
        logger_factory=_stderr_logger,
        cache_logger_on_first_use=False,
    )


def get_logger(name: str) -> Any:
    """Get a structlog logger bound to a module name."""
    return structlog.get_logger(name)
