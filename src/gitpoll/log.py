"""Logging setup."""

import logging
import sys

import structlog

from gitpoll.exceptions import ConfigurationError


def configure_logging(level: str = "INFO", json_output: bool = False) -> None:
    """Configure structlog to write to stderr.

    Args:
        level: Minimum level name (DEBUG, INFO, WARNING, ERROR)
        json_output: Render JSON lines instead of the console format

    Raises:
        ConfigurationError: If the level name is unknown
    """
    numeric_level = getattr(logging, level.upper(), None)
    if not isinstance(numeric_level, int):
        raise ConfigurationError(f"Unknown log level: {level}")

    renderer = structlog.processors.JSONRenderer() if json_output else structlog.dev.ConsoleRenderer()
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=False,
    )
