"""structlog setup shared by the API server, the scheduler and the CLI."""

import logging
from typing import Optional

import structlog

from okazje.config import settings


def configure_logging(level: Optional[str] = None, json: Optional[bool] = None) -> None:
    """Configure structlog processors and the stdlib root logger.

    Args:
        level: Log level name, defaults to ``settings.LOG_LEVEL``
        json: Render JSON lines instead of the console renderer,
            defaults to ``settings.LOG_JSON``
    """
    level_name = (level or settings.LOG_LEVEL).upper()
    numeric_level = logging.getLevelName(level_name)
    if not isinstance(numeric_level, int):
        numeric_level = logging.INFO

    use_json = settings.LOG_JSON if json is None else json
    renderer = structlog.processors.JSONRenderer() if use_json else structlog.dev.ConsoleRenderer()

    logging.basicConfig(
        level=numeric_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=False,
    )
