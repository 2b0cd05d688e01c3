"""
Structured logging for the sync service.

JSON lines for log aggregation, a colored console renderer for local
runs. Every event carries the service name; run-scoped keys (``run_id``,
``origin``) arrive through structlog contextvars.
"""

import logging
import sys
from typing import TYPE_CHECKING, Any

import structlog

if TYPE_CHECKING:
    from structlog.types import EventDict, Processor, WrappedLogger

from igdb_sync.config import LoggingConfig

SERVICE_NAME = "igdb-sync"

# httpx logs one INFO line per request, i.e. one per forwarded chunk;
# the APScheduler executor logs every job start and finish
NOISY_LOGGERS = ("httpx", "httpcore", "apscheduler.executors", "apscheduler.scheduler")


def add_service_name(
    logger: "WrappedLogger", method_name: str, event_dict: "EventDict"
) -> "EventDict":
    event_dict.setdefault("service", SERVICE_NAME)
    return event_dict


def _build_processors(config: LoggingConfig) -> list["Processor"]:
    processors: list[Processor] = []
    if config.include_timestamp:
        processors.append(structlog.processors.TimeStamper(fmt="iso", utc=True))
    processors += [
        structlog.contextvars.merge_contextvars,
        add_service_name,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    if config.format == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(
            structlog.dev.ConsoleRenderer(
                colors=sys.stdout.isatty(),
                exception_formatter=structlog.dev.plain_traceback,
            )
        )
    return processors


def setup_logging(config: LoggingConfig | None = None) -> None:
    """
    Configure structlog and the standard library root logger.

    Args:
        config: Logging section to apply (reads LOG_* env vars if None)
    """
    config = config or LoggingConfig()
    level = logging.getLevelName(config.level)

    structlog.configure(
        processors=_build_processors(config),
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

    # APScheduler and httpx log through the standard library
    logging.basicConfig(format="%(name)s: %(message)s", stream=sys.stdout, level=level)

    if level > logging.DEBUG:
        for name in NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str | None = None, **initial_context: Any) -> structlog.BoundLogger:
    """
    Get a logger, optionally bound to initial context.

    Example:
        >>> logger = get_logger(__name__, component="orchestrator")
        >>> logger.info("Fetching page", offset=500)
    """
    logger = structlog.get_logger(name)
    if initial_context:
        logger = logger.bind(**initial_context)
    return logger
