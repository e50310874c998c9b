"""structlog setup shared by the CLI and embedding applications."""

import logging
import sys
from typing import Optional, Union

import structlog

_LEVELS = {
    "CRITICAL": logging.CRITICAL,
    "ERROR": logging.ERROR,
    "WARNING": logging.WARNING,
    "INFO": logging.INFO,
    "DEBUG": logging.DEBUG,
}


def configure_logging(
    level: Union[str, int, None] = None,
    json_logs: Optional[bool] = None,
) -> None:
    """Configure structlog with a console or JSON renderer.

    Args:
        level: Level name or number; defaults to ``LOG_LEVEL`` from settings
        json_logs: Emit one JSON object per line; defaults to ``LOG_JSON``
    """
    from pricetracker.config import get_settings

    cfg = get_settings()
    if level is None:
        level = cfg.LOG_LEVEL
    if json_logs is None:
        json_logs = cfg.LOG_JSON
    if isinstance(level, str):
        level = _LEVELS.get(level.upper(), logging.INFO)

    renderer = (
        structlog.processors.JSONRenderer()
        if json_logs
        else structlog.dev.ConsoleRenderer()
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso" if json_logs else "%H:%M:%S"),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=False,
    )
