"""Structured logging configuration using structlog.

Provides JSON-formatted logs with consistent context including:
- request_id: Correlation ID supplied by the calling service
- actor_id: Server user performing the operation (when known)
- operation: Store operation in progress (e.g. "invites.consume")
- timestamp: ISO8601 formatted timestamp

Usage:
    from chatstore.logging import get_logger, configure_logging

    # Configure once at startup
    configure_logging()

    # Get a logger for a module
    logger = get_logger(__name__)
    logger.info("something_happened", extra_field="value")
"""

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar

import structlog

# Context variables for caller-scoped logging
request_id_var: ContextVar[str | None] = ContextVar("request_id", default=None)
actor_id_var: ContextVar[str | None] = ContextVar("actor_id", default=None)
operation_var: ContextVar[str | None] = ContextVar("operation", default=None)


def add_request_context(logger: logging.Logger, method_name: str, event_dict: dict) -> dict:
    """Add caller context to all log entries.

    Injects all non-None ContextVar values into the log event dict.
    """
    request_id = request_id_var.get()
    actor_id = actor_id_var.get()
    operation = operation_var.get()

    if request_id:
        event_dict["request_id"] = request_id
    if actor_id:
        event_dict["actor_id"] = actor_id
    if operation:
        event_dict.setdefault("operation", operation)

    return event_dict


def configure_logging(json_format: bool = True, level: int = logging.INFO) -> None:
    """Configure structlog for the application.

    Args:
        json_format: If True, output JSON logs. If False, output console-friendly logs.
        level: Root log level.
    """
    shared_processors = [
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        add_request_context,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    if json_format:
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=shared_processors
        + [
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )

    root_logger = logging.getLogger()
    root_logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)
    root_logger.addHandler(handler)
    root_logger.setLevel(level)

    # The driver logs every control-connection hiccup at INFO
    logging.getLogger("cassandra").setLevel(logging.WARNING)
    logging.getLogger("cassandra.cluster").setLevel(logging.WARNING)
    logging.getLogger("cassandra.pool").setLevel(logging.WARNING)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Get a structlog logger for the given name.

    Args:
        name: Logger name (typically __name__).

    Returns:
        A bound structlog logger.
    """
    return structlog.get_logger(name)


def set_request_context(request_id: str | None, actor_id: str | None = None) -> None:
    """Set caller context for the current async context.

    Args:
        request_id: The request correlation ID.
        actor_id: The server user performing the request (optional).
    """
    request_id_var.set(request_id)
    if actor_id is not None:
        actor_id_var.set(actor_id)


def clear_request_context() -> None:
    """Clear all caller-scoped context at the end of a request."""
    request_id_var.set(None)
    actor_id_var.set(None)
    operation_var.set(None)


def get_request_id() -> str | None:
    """Get the current request ID from context."""
    return request_id_var.get()


@contextmanager
def operation_context(name: str) -> Iterator[None]:
    """Tag every log entry emitted inside the block with an operation name.

    Nested blocks restore the outer operation on exit.
    """
    token = operation_var.set(name)
    try:
        yield
    finally:
        operation_var.reset(token)
