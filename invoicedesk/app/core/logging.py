"""structlog configuration.

Development: colorized console output. Any other environment: one JSON object
per line.
"""

import logging
import sys

import structlog

DEVELOPMENT_ENVIRONMENTS = {"development", "dev", "local"}


def configure_logging(level: str = "INFO", environment: str = "development") -> None:
    log_level = logging.getLevelName(level.upper())
    if not isinstance(log_level, int):
        log_level = logging.INFO

    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=log_level)

    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
    ]
    if environment.lower() in DEVELOPMENT_ENVIRONMENTS:
        processors.append(structlog.dev.ConsoleRenderer())
    else:
        processors += [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        cache_logger_on_first_use=True,
    )
