"""
resolve-spine logging - structured logging for the engine, server and CLI.

Manifesto:
    Every dispatch the resolver makes, every catalog event the package
    manager applies and every remote call is logged as a structured event
    (snake_case event name plus key/value fields) so a single resolve can be
    followed across the local engine and remote providers.

Architecture:
    ::

        configure_logging(level="INFO", json_format=None, service=...)
            │
            ▼
        structlog processor chain:
          1. TimeStamper (iso, optional)
          2. merge_contextvars        (bind_context / LogContext)
          3. level and logger name
          4. service name + active trace/span ids
          5. JSONRenderer with ECS field names, or ConsoleRenderer

Examples:
    >>> from resolvespine.core.logging import configure_logging, get_logger
    >>> configure_logging(level="DEBUG", service="resolve-spine")
    >>> logger = get_logger(__name__)
    >>> logger.debug("provider_call", path="x", provider="base64", function="encode")

Tags:
    logging, structlog, observability, resolve-spine
"""

from __future__ import annotations

import logging
import sys
from typing import Any

import structlog
from opentelemetry import trace
from structlog.types import EventDict, Processor, WrappedLogger

# event key -> ECS field name
_ECS_RENAMES = {"timestamp": "@timestamp", "level": "log.level"}


class _ServiceName:
    """Stamp every event with the configured service name."""

    def __init__(self, service: str):
        self.service = service

    def __call__(self, logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
        event_dict.setdefault("service.name", self.service)
        return event_dict


def _trace_ids(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    span_context = trace.get_current_span().get_span_context()
    if span_context.is_valid:
        event_dict.setdefault("trace.id", format(span_context.trace_id, "032x"))
        event_dict.setdefault("span.id", format(span_context.span_id, "016x"))
    return event_dict


def _ecs_field_names(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    for key, ecs_key in _ECS_RENAMES.items():
        if key in event_dict:
            event_dict[ecs_key] = event_dict.pop(key)
    return event_dict


def _processor_chain(service: str, json_format: bool, add_timestamp: bool) -> list[Processor]:
    chain: list[Processor] = []
    if add_timestamp:
        chain.append(structlog.processors.TimeStamper(fmt="iso"))
    chain += [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        _ServiceName(service),
        _trace_ids,
    ]
    if not json_format:
        return chain + [structlog.dev.ConsoleRenderer(colors=True)]
    return chain + [structlog.processors.format_exc_info, _ecs_field_names, structlog.processors.JSONRenderer()]


def configure_logging(
    level: str = "INFO",
    json_format: bool | None = None,
    service: str = "resolve-spine",
    add_timestamp: bool = True,
) -> None:
    """Install the structlog chain and route it through stdlib logging on stderr.

    ``json_format=None`` picks JSON when stderr is not a terminal.
    """
    numeric_level = logging.getLevelName(level.upper())
    if not isinstance(numeric_level, int):
        raise ValueError(f"unknown log level: {level}")
    if json_format is None:
        json_format = not sys.stderr.isatty()

    structlog.configure(
        processors=_processor_chain(service, json_format, add_timestamp),
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
    logging.basicConfig(format="%(message)s", stream=sys.stderr, level=numeric_level)


def get_logger(name: str | None = None) -> Any:
    return structlog.get_logger(name)


def bind_context(**fields: Any) -> None:
    """Attach ``fields`` to every event logged from the current context."""
    structlog.contextvars.bind_contextvars(**fields)


def unbind_context(*keys: str) -> None:
    structlog.contextvars.unbind_contextvars(*keys)


class LogContext:
    """Bind fields for the duration of a ``with`` block.

    Example:
        with LogContext(request_id="abc123"):
            compiler.compile_source(ctx, text)
    """

    def __init__(self, **fields: Any):
        self._fields = fields

    def __enter__(self) -> LogContext:
        bind_context(**self._fields)
        return self

    def __exit__(self, *exc_info: Any) -> None:
        unbind_context(*self._fields)


__all__ = [
    "configure_logging",
    "get_logger",
    "bind_context",
    "unbind_context",
    "LogContext",
]
