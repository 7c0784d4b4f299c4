"""
Structured logging setup using structlog.

The publisher and receiver log through standard library loggers named after
their modules, passing fields with ``extra``. ``setup_logging`` renders those
records, and the ones httpx emits, through a structlog processor chain.
"""

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

import structlog
from opentelemetry import trace

from qstash_client.config import Settings, get_settings
from qstash_client.constants import CLIENT_VERSION
from qstash_client.types.message import Message

PACKAGE_LOGGER = "qstash_client"


def add_trace_context(logger: Any, method_name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    """
    Add OpenTelemetry trace context to log records.

    Args:
        logger: The logger instance.
        method_name: The method name being called.
        event_dict: The event dictionary.

    Returns:
        The event dictionary with trace context added.
    """
    span = trace.get_current_span()
    if span and span.is_recording():
        ctx = span.get_span_context()
        event_dict["trace_id"] = format(ctx.trace_id, "032x")
        event_dict["span_id"] = format(ctx.span_id, "016x")
    return event_dict


def add_client_version(logger: Any, method_name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    event_dict.setdefault("client_version", CLIENT_VERSION)
    return event_dict


def build_formatter(log_format: str) -> structlog.stdlib.ProcessorFormatter:
    """
    Build a formatter rendering standard library records as JSON or console lines.

    Args:
        log_format: ``json`` or ``console``.
    """
    pre_chain: list[Any] = [
        structlog.contextvars.merge_contextvars,
        add_trace_context,
        add_client_version,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.stdlib.ExtraAdder(),
    ]

    if log_format == "json":
        renderer: Any = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())

    return structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=pre_chain,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )


def setup_logging(
    settings: Settings | None = None,
    *,
    logger_name: str | None = None,
) -> logging.Handler:
    """
    Configure structured logging.

    Args:
        settings: Optional settings. Defaults to the cached environment settings.
        logger_name: Logger that receives the handler. The default is the root
            logger, which suits the receiver app. Pass ``PACKAGE_LOGGER`` to
            format only this client's records inside a larger application.

    Returns:
        The installed handler.
    """
    settings = settings or get_settings()

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(build_formatter(settings.log_format))

    target = logging.getLogger(logger_name)
    target.handlers = [handler]
    target.setLevel(getattr(logging, settings.log_level.upper(), logging.INFO))
    if logger_name is not None:
        target.propagate = False

    # httpx logs one INFO line per request
    logging.getLogger("httpx").setLevel(logging.INFO if settings.verbose else logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)

    return handler


@contextmanager
def delivery_context(message: Message) -> Iterator[None]:
    """
    Bind the delivery's message id and retry count to records logged in the block.

    Context bound before entering is restored on exit.
    """
    with structlog.contextvars.bound_contextvars(
        message_id=message.id,
        retried=message.retried,
    ):
        yield
