"""Logging configuration for the Delivery domain."""

import logging
import os

import structlog


def configure_logging(level: str | None = None) -> None:
    """Route structlog through the stdlib root logger.

    ``DELIVERY_LOG_LEVEL`` sets the level when none is passed; JSON output is
    used outside of development so log shippers can parse the key/value
    context every ledger and settlement message carries.
    """
    level_name = (level or os.environ.get("DELIVERY_LOG_LEVEL", "INFO")).upper()
    logging.basicConfig(format="%(message)s", level=getattr(logging, level_name, logging.INFO))

    renderer = (
        structlog.dev.ConsoleRenderer()
        if os.environ.get("PROTEAN_ENV", "development") in ("development", "test")
        else structlog.processors.JSONRenderer()
    )
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            renderer,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    # Suppress noisy library loggers
    logging.getLogger("protean").setLevel(logging.WARNING)


def get_logger(name: str):
    return structlog.get_logger(name)
