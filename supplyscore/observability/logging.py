"""Structured logging setup for supplyscore entry points.

Library modules log through ``logging.getLogger(__name__)``; entry points
(CLI, services embedding the engine) call ``configure_logging`` once.
"""

import logging

import structlog

from supplyscore.config.settings import Environment, Settings

_LOG_NAME_TO_LEVEL: dict[str, int] = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}


def configure_logging(settings: Settings) -> structlog.stdlib.BoundLogger:
    """Configure structlog and the stdlib root logger from settings."""
    level = _LOG_NAME_TO_LEVEL[settings.LOG_LEVEL.value]
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer() if settings.ENVIRONMENT == Environment.DEV
            else structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )
    return structlog.get_logger()
