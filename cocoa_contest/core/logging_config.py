"""
Logging Setup - Cocoa Contest Evaluation Engine
cocoa_contest/core/logging_config.py

Routes structlog and stdlib logging through one processor chain so domain
events (structlog key/value) and HTTP-layer messages (stdlib) share a format.
"""

import logging
import sys
from typing import Optional

import structlog

from cocoa_contest.config import settings

_configured = False


def configure_logging(level: Optional[str] = None, fmt: Optional[str] = None) -> None:
    """Configure structlog + stdlib logging. Safe to call more than once."""
    global _configured

    level_name = (level or settings.LOG_LEVEL).upper()
    renderer_name = fmt or settings.LOG_FORMAT

    shared_processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
    ]

    if renderer_name == "console":
        renderer = structlog.dev.ConsoleRenderer()
    else:
        renderer = structlog.processors.JSONRenderer()

    structlog.configure(
        processors=shared_processors + [
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            structlog.processors.format_exc_info,
            renderer,
        ],
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root = logging.getLogger()
    if _configured:
        for existing in list(root.handlers):
            if getattr(existing, "_cocoa_contest", False):
                root.removeHandler(existing)
    handler._cocoa_contest = True  # type: ignore[attr-defined]
    root.addHandler(handler)
    root.setLevel(level_name)

    _configured = True
