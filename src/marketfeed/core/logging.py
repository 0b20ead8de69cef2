"""Structured logging with structlog.

All modules log through ``get_logger(__name__)`` with snake_case event names
and keyword context::

    logger.info("feed_built", user_id=user_id, count=len(entries))

structlog and stdlib records (uvicorn, SQLAlchemy) share one pipeline and one
stdout handler. Production renders JSON lines, development a colored console.
Inside a request every entry also carries the correlation ID and whatever the
logging middleware bound with ``bind_contextvars``.
"""

from __future__ import annotations

import logging
import sys
import uuid
from contextvars import ContextVar
from typing import Any

import structlog
from structlog.types import EventDict, Processor

SERVICE_NAME = "marketfeed"

# stdlib loggers routed through the structlog formatter
_PROPAGATED_LOGGERS = ("uvicorn", "uvicorn.error", "uvicorn.access")
_QUIET_LOGGERS = ("sqlalchemy.engine", "asyncio")

correlation_id_ctx: ContextVar[str | None] = ContextVar("correlation_id", default=None)


def get_correlation_id() -> str | None:
    """Correlation ID of the current request, if any."""
    return correlation_id_ctx.get()


def set_correlation_id(correlation_id: str | None = None) -> str:
    """Set the correlation ID, generating a UUID4 when none is given."""
    value = correlation_id or str(uuid.uuid4())
    correlation_id_ctx.set(value)
    return value


def clear_correlation_id() -> None:
    correlation_id_ctx.set(None)


def add_correlation_id(
    _logger: logging.Logger,
    _method_name: str,
    event_dict: EventDict,
) -> EventDict:
    """structlog processor adding the correlation ID when one is set."""
    if (correlation_id := get_correlation_id()) is not None:
        event_dict["correlation_id"] = correlation_id
    return event_dict


def add_service_context(
    _logger: logging.Logger,
    _method_name: str,
    event_dict: EventDict,
) -> EventDict:
    """structlog processor tagging entries with the service name."""
    event_dict.setdefault("service", SERVICE_NAME)
    return event_dict


def _shared_processors(json_logs: bool) -> list[Processor]:
    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
        add_correlation_id,
        add_service_context,
    ]
    if json_logs:
        # Console renderer prints tracebacks itself
        processors.append(structlog.processors.format_exc_info)
    return processors


def configure_logging(*, json_logs: bool = False, log_level: str = "INFO") -> None:
    """Configure structlog and the root logger.

    Safe to call more than once; each call replaces the root handler.

    Args:
        json_logs: Render JSON lines instead of colored console output.
        log_level: Minimum level of the root logger.
    """
    shared = _shared_processors(json_logs)
    renderer: Processor = (
        structlog.processors.JSONRenderer()
        if json_logs
        else structlog.dev.ConsoleRenderer(colors=True)
    )

    structlog.configure(
        processors=[*shared, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=shared,
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
        )
    )

    root = logging.getLogger()
    root.handlers[:] = [handler]
    root.setLevel(log_level.upper())

    for name in _PROPAGATED_LOGGERS:
        stdlib_logger = logging.getLogger(name)
        stdlib_logger.handlers.clear()
        stdlib_logger.propagate = True
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Structured logger, usually ``get_logger(__name__)``."""
    logger: structlog.stdlib.BoundLogger = structlog.get_logger(name)
    return logger


def bind_contextvars(**kwargs: Any) -> None:
    """Attach key-value pairs to every following entry in this context."""
    structlog.contextvars.bind_contextvars(**kwargs)


def unbind_contextvars(*keys: str) -> None:
    structlog.contextvars.unbind_contextvars(*keys)


def clear_contextvars() -> None:
    structlog.contextvars.clear_contextvars()
