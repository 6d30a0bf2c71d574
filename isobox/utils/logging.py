"""structlog setup for isobox."""

import logging
import sys
from typing import Optional

import structlog

from ..config import LoggingConfig, settings


def setup_logging(config: Optional[LoggingConfig] = None) -> None:
    """Configure structlog and the stdlib root logger.

    Args:
        config: Logging settings; defaults to the global settings group
    """
    config = config or settings.logging
    level = getattr(logging, config.log_level, logging.INFO)

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=level,
        force=True,
    )

    if config.log_format == "json":
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: Optional[str] = None):
    """Get a structlog logger."""
    return structlog.get_logger(name)
