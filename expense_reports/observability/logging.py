"""
Structured logging configuration using structlog.
JSON output for production, coloured console for dev.

Every line carries the service name and version. Inside a request the
acting principal (and the report, when the route has one) is bound through
contextvars, so workflow and store logs need not repeat them:

    {"event": "report_saved", "service": "expense-reports",
     "principal_id": "...", "report_id": "...", "deleted": 1, ...}
"""

import logging
import sys
from typing import Optional

import structlog

from expense_reports.config import settings

# Context keys that identify what a log line is about
CONTEXT_KEYS = ("principal_id", "report_id", "operation", "stage")


def add_service_info(logger, method_name: str, event_dict: dict) -> dict:
    event_dict.setdefault("service", settings.APP_NAME)
    event_dict.setdefault("version", settings.APP_VERSION)
    return event_dict


def drop_empty_context(logger, method_name: str, event_dict: dict) -> dict:
    """Remove context keys bound as None (e.g. report_id before a report exists)."""
    for key in CONTEXT_KEYS:
        if key in event_dict and event_dict[key] is None:
            del event_dict[key]
    return event_dict


def bind_request_context(principal_id: str, report_id: Optional[str] = None) -> None:
    """Attach the acting principal (and report) to every log line of this request."""
    context = {"principal_id": principal_id}
    if report_id is not None:
        context["report_id"] = report_id
    structlog.contextvars.bind_contextvars(**context)


def clear_request_context() -> None:
    structlog.contextvars.clear_contextvars()


def setup_logging() -> None:
    """Configure structlog for the application."""

    shared_processors = [
        structlog.contextvars.merge_contextvars,
        add_service_info,
        drop_empty_context,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    if settings.DEBUG:
        renderer = structlog.dev.ConsoleRenderer()
    else:
        renderer = structlog.processors.JSONRenderer(sort_keys=False)

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    # Records from plain stdlib loggers (uvicorn, sqlalchemy) get the same context
    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO))

    # Quieten noisy libraries
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(
        logging.INFO if settings.DB_ECHO else logging.WARNING
    )
