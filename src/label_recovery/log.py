"""structlog configuration shared by the CLI and library callers."""

from __future__ import annotations

import logging
import sys

import structlog

from label_recovery.config import Settings


def configure_logging(settings: Settings) -> None:
    """Configure structlog for the given settings.

    Args:
        settings: Application settings; `log_level` and `log_json` are used.
    """
    level = getattr(logging, settings.log_level.upper(), logging.INFO)
    renderer: structlog.types.Processor
    if settings.log_json:
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=False)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=False,
    )
