"""Logging configuration for the Logistics domain."""

import logging
import os

import structlog

# Suppress noisy library loggers
logging.getLogger("protean").setLevel(logging.WARNING)


def configure_logging(log_format: str | None = None) -> None:
    """Set up the structlog processor chain.

    ``LOGISTICS_LOG_FORMAT=json`` switches the renderer to JSON lines for
    log shipping; anything else renders for the console.
    """
    log_format = log_format or os.environ.get("LOGISTICS_LOG_FORMAT", "console")
    renderer = (
        structlog.processors.JSONRenderer() if log_format == "json" else structlog.dev.ConsoleRenderer(colors=False)
    )
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        cache_logger_on_first_use=True,
    )
