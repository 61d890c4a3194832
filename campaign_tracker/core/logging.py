"""structlog setup shared by the API, the rebuild script and stdlib loggers.

Every record, structlog or stdlib (SQLAlchemy, uvicorn), goes through one
ProcessorFormatter: JSON lines in production, ConsoleRenderer in dev. The
request's X-Request-ID is attached as ``correlation_id`` when one is active.
"""

import logging
import logging.config

import structlog
from asgi_correlation_id.context import correlation_id

SERVICE_NAME = "campaign-tracker"

# Third-party loggers that are noisy at INFO
QUIET_LOGGERS = ("uvicorn.access", "sqlalchemy.engine", "aiosqlite", "asyncio")


def add_correlation_id(logger, method, event_dict):
    """Copy the active request id into the entry; no-op outside a request."""
    cid = correlation_id.get(None)
    if cid:
        event_dict["correlation_id"] = cid
    return event_dict


def add_service_name(logger, method, event_dict):
    event_dict.setdefault("service", SERVICE_NAME)
    return event_dict


def configure_structlog(log_level: str = "INFO", json_logs: bool = True) -> None:
    """Install the processor chain. Call once, before any module logs.

    Args:
        log_level: Root log level ("DEBUG", "INFO", "WARNING", "ERROR")
        json_logs: JSON lines when True, coloured console output when False
    """
    shared_processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        add_service_name,
        add_correlation_id,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
    ]

    if json_logs:
        # tracebacks from exc_info=True become a string field instead of raw frames
        final_processors = [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    else:
        final_processors = [structlog.dev.ConsoleRenderer()]

    logging.config.dictConfig({
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "structured": {
                "()": structlog.stdlib.ProcessorFormatter,
                "processors": [structlog.stdlib.ProcessorFormatter.remove_processors_meta, *final_processors],
                "foreign_pre_chain": shared_processors,
            },
        },
        "handlers": {
            "stdout": {
                "class": "logging.StreamHandler",
                "formatter": "structured",
                "stream": "ext://sys.stdout",
            },
        },
        "root": {"handlers": ["stdout"], "level": log_level},
        "loggers": {name: {"level": "WARNING"} for name in QUIET_LOGGERS},
    })

    structlog.configure(
        processors=[*shared_processors, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )
