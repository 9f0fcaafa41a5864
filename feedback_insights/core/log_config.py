"""
Logging setup - Feedback Insights Engine
feedback_insights/core/log_config.py

Stdlib loggers in the service modules pass structured payloads via `extra=`;
structlog loggers in the scoring code pass key/value pairs. Both go through
one handler with a structlog ProcessorFormatter, so `extra` fields are
rendered next to the event name. LOG_LEVEL sets the threshold and
LOG_FORMAT picks JSON or console output.
"""

import logging
import sys
from typing import Any, List, Optional, TextIO

import structlog

from feedback_insights.config import settings

_handler: Optional[logging.Handler] = None


def configure_logging(level: str = None, fmt: str = None, stream: Optional[TextIO] = None) -> None:
    """Configure stdlib logging and structlog. Safe to call more than once."""
    global _handler

    level_name = (level or settings.LOG_LEVEL).upper()
    level_value = getattr(logging, level_name, logging.INFO)
    fmt = (fmt or settings.LOG_FORMAT).lower()

    shared: List[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
    ]

    if fmt == "json":
        renderers: List[Any] = [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    else:
        renderers = [structlog.dev.ConsoleRenderer(colors=(stream or sys.stdout).isatty())]

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared + [structlog.stdlib.ExtraAdder()],
        processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta] + renderers,
    )

    root = logging.getLogger()
    if _handler is not None:
        root.removeHandler(_handler)
    _handler = logging.StreamHandler(stream or sys.stdout)
    _handler.setFormatter(formatter)
    root.addHandler(_handler)
    root.setLevel(level_value)
    logging.getLogger("httpx").setLevel(logging.WARNING)

    structlog.configure(
        processors=[structlog.stdlib.filter_by_level]
        + shared
        + [structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=False,
    )
