"""
Structured logging setup.

All modules obtain loggers through ``structlog.get_logger`` and bind their
component name; this module wires structlog onto the standard library
logging backend once per process.
"""

import logging
import sys

import structlog


LOG_FORMATS = ("json", "console")


def configure_logging(level: str = "INFO", fmt: str = "json") -> None:
    """
    Configure structlog and the stdlib root logger.

    Args:
        level: Log level name (DEBUG, INFO, WARNING, ...)
        fmt: Output renderer, ``json`` for pipelines or ``console`` for humans
    """
    if fmt not in LOG_FORMATS:
        raise ValueError(f"Unsupported log format: {fmt}")

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=getattr(logging, level.upper(), logging.INFO),
        force=True,
    )

    renderer = (
        structlog.processors.JSONRenderer()
        if fmt == "json"
        else structlog.dev.ConsoleRenderer(colors=False)
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
