"""structlog setup for task runs."""

from __future__ import annotations

import logging

import structlog

from tfstate_lease.core.config import LoggingConfig


def configure_logging(config: LoggingConfig | None = None) -> None:
    """Configure structlog once at process entry."""
    if config is None:
        config = LoggingConfig()

    level = logging.getLevelName(config.level.upper())
    if not isinstance(level, int):
        level = logging.INFO

    processors: list = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
    ]
    if config.render_json:
        processors += [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=False))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=False,
    )
