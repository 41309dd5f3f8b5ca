"""Structured logging setup shared by the daemon and the CLI."""

import logging
import sys

import structlog
from structlog.typing import Processor

from health_monitor.config import LoggingConfig


def configure_logging(config: LoggingConfig) -> None:
    """Route structlog through the stdlib logger with JSON or console rendering."""
    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=config.level, force=True)

    renderer: Processor = (
        structlog.processors.JSONRenderer()
        if config.format == "json"
        else structlog.dev.ConsoleRenderer()
    )

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            renderer,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )
