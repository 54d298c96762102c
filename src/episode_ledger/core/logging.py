"""structlog setup shared by the CLI and tests."""

import logging
import sys

import structlog

from episode_ledger.core.config import LoggingConfig


def _stderr_logger(*args) -> structlog.PrintLogger:
    # Resolved on every log call, not at configure time.
    return structlog.PrintLogger(sys.stderr)


def setup_logging(config: LoggingConfig) -> None:
    """Configure structlog with a level filter and console or JSON output."""
    level = logging.getLevelName(config.level.upper())
    if not isinstance(level, int):
        level = logging.INFO

    renderer = (
        structlog.processors.JSONRenderer()
        if config.json_output
        else structlog.dev.ConsoleRenderer()
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=_stderr_logger,
        cache_logger_on_first_use=False,
    )
