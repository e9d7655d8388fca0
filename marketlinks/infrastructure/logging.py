"""Structured logging setup.

Routes structlog through the standard library so SQLAlchemy and Alembic
output share one stream and level.
"""

import logging
import sys

import structlog

from marketlinks.infrastructure.config import settings


def configure_logging(level: str | None = None, json: bool | None = None) -> None:
    """Configure structlog and the root stdlib logger.

    Args:
        level: Log level name, defaults to ``settings.log_level``.
        json: Render JSON lines instead of console output,
            defaults to ``settings.log_json``.
    """
    level = (level or settings.log_level).upper()
    json = settings.log_json if json is None else json

    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(message)s",
        stream=sys.stderr,
    )
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)

    renderer = structlog.processors.JSONRenderer() if json else structlog.dev.ConsoleRenderer()
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            renderer,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )
