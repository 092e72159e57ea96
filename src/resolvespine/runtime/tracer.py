"""
Trace and baggage propagation across remote provider calls.

Manifesto:
    Propagation is best-effort. A remote call must never fail because a
    header could not be built, and a provider server must never reject a
    request because a header could not be read. Every failure here is
    logged and degrades to "no context".

Architecture:
    ::

        caller                                   external provider server
        ──────                                   ────────────────────────
        CallContext.trace (OTel Context)
          ├─ span            ──▶ traceparent / tracestate
          └─ baggage
               encoded-context=<b64 json> ──▶ X-Spine-encoded-context
               <key>=<value>              ──▶ X-Spine-<key>
                                                 │
                                   TraceHeaderPropagator.extract()
                                                 │
                                                 ▼
                                   PropagatedContext(raw_json, entries, trace)

Features:
    - **TraceHeaderPropagator:** OpenTelemetry ``TextMapPropagator`` writing
      W3C trace context plus vendor-prefixed baggage headers
    - **PropagatedContext:** server-side view of the decoded headers
    - **start_span / start_span_with_baggage / with_baggage:** helpers over
      an explicit :class:`CallContext`
    - **ensure_tracer_provider:** installs an SDK ``TracerProvider`` when the
      process has none, so spans carry valid ids

Tags:
    tracing, opentelemetry, baggage, propagation, resolve-spine

Doc-Types:
    - API Reference
"""

from __future__ import annotations

import base64
import binascii
import json
import re
import threading
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from opentelemetry import baggage, trace
from opentelemetry import context as otel_context
from opentelemetry.context import Context
from opentelemetry.propagators.textmap import (
    CarrierT,
    Getter,
    Setter,
    TextMapPropagator,
    default_getter,
    default_setter,
)
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.trace.propagation.tracecontext import TraceContextTextMapPropagator
from pydantic import BaseModel

from resolvespine.core.context import CallContext
from resolvespine.core.logging import get_logger

logger = get_logger(__name__)

HEADER_PREFIX = "X-Spine"
TRACE_PARENT = "traceparent"
TRACE_STATE = "tracestate"
ENCODED_CONTEXT = "Encoded-Context"
ENCODED_CONTEXT_KEY = ENCODED_CONTEXT.lower()

TRACER_NAME = "resolvespine"

_PROPAGATED_KEY = otel_context.create_key("resolvespine-propagated-context")

# W3C baggage key (token) and value (baggage-octet) grammar
_BAGGAGE_KEY = re.compile(r"^[!#$%&'*+\-.^_`|~0-9A-Za-z]+$")
_BAGGAGE_VALUE = re.compile(r"^[\x21\x23-\x2b\x2d-\x3a\x3c-\x5b\x5d-\x7e]*$")

_provider_lock = threading.Lock()


def ensure_tracer_provider() -> None:
    """Install a default SDK tracer provider unless one is configured."""
    with _provider_lock:
        if isinstance(trace.get_tracer_provider(), trace.ProxyTracerProvider):
            trace.set_tracer_provider(TracerProvider())


def _trace_of(ctx: CallContext | Context | None) -> Context:
    if isinstance(ctx, CallContext):
        return ctx.trace
    if ctx is None:
        return Context()
    return ctx


# =============================================================================
# Spans and baggage
# =============================================================================


def start_span(ctx: CallContext, name: str) -> tuple[CallContext, trace.Span]:
    """Start a child span of ``ctx``; the caller ends it."""
    ensure_tracer_provider()
    tracer = trace.get_tracer(TRACER_NAME)
    span = tracer.start_span(name, context=ctx.trace)
    return ctx.with_trace(trace.set_span_in_context(span, ctx.trace)), span


def start_span_with_baggage(ctx: CallContext, name: str, payload: Any) -> tuple[CallContext, trace.Span]:
    """Attach ``payload`` as the encoded-context baggage member and start a span.

    An unserializable payload is logged; the span is still started.
    """
    try:
        if isinstance(payload, BaseModel):
            raw = payload.model_dump_json(by_alias=True).encode()
        else:
            raw = json.dumps(payload).encode()
    except (TypeError, ValueError) as e:
        logger.error("baggage_payload_marshal_failed", span=name, error=str(e))
        return start_span(ctx, name)

    encoded = base64.b64encode(raw).decode("ascii")
    trace_ctx = baggage.set_baggage(ENCODED_CONTEXT_KEY, encoded, context=ctx.trace)
    return start_span(ctx.with_trace(trace_ctx), name)


def with_baggage(ctx: CallContext, entries: Mapping[str, str]) -> CallContext:
    """Add baggage entries; invalid keys or values are skipped with a warning."""
    trace_ctx = ctx.trace
    failures: list[str] = []
    for key, value in entries.items():
        if not _BAGGAGE_KEY.match(str(key)) or not _BAGGAGE_VALUE.match(str(value)):
            failures.append(f"{key}={value}")
            continue
        trace_ctx = baggage.set_baggage(str(key), str(value), context=trace_ctx)
    if failures:
        logger.warning("baggage_members_skipped", members=failures)
    return ctx.with_trace(trace_ctx)


# =============================================================================
# Server-side context
# =============================================================================


@dataclass
class PropagatedContext:
    """Propagation headers decoded on the receiving side."""

    raw: bytes = b""
    entries: dict[str, str] = field(default_factory=dict)
    trace: Context = field(default_factory=Context)

    def raw_json(self) -> bytes:
        return self.raw

    def unmarshal(self, model: type[BaseModel] | None = None) -> Any:
        """Decode the encoded context into a dict, or into ``model``.

        Raises:
            ValueError: when the blob is empty or not valid JSON for ``model``
        """
        if model is not None:
            return model.model_validate_json(self.raw)
        return json.loads(self.raw)

    def get(self, key: str, default: str | None = None) -> str | None:
        return self.entries.get(key.lower(), default)


class TraceHeaderPropagator(TextMapPropagator):
    """W3C trace context plus ``X-Spine-*`` baggage headers."""

    def __init__(self) -> None:
        self._trace_context = TraceContextTextMapPropagator()

    def inject(
        self,
        carrier: CarrierT,
        context: Context | None = None,
        setter: Setter[CarrierT] = default_setter,
    ) -> None:
        for key, value in baggage.get_all(context=context).items():
            setter.set(carrier, f"{HEADER_PREFIX}-{key}", str(value))
        self._trace_context.inject(carrier, context=context, setter=setter)

    def extract(
        self,
        carrier: CarrierT,
        context: Context | None = None,
        getter: Getter[CarrierT] = default_getter,
    ) -> Context:
        ctx = self._trace_context.extract(carrier, context=context, getter=getter)
        propagated = PropagatedContext(trace=ctx)
        prefix = f"{HEADER_PREFIX}-".lower()

        for header in getter.keys(carrier):
            if not header.lower().startswith(prefix):
                continue
            values = getter.get(carrier, header)
            if not values:
                continue
            value = values[0]
            stripped = header[len(prefix) :].lower()
            if stripped == ENCODED_CONTEXT_KEY:
                try:
                    propagated.raw = base64.b64decode(value, validate=True)
                except (binascii.Error, ValueError) as e:
                    logger.error("encoded_context_decode_failed", error=str(e))
            elif stripped in (TRACE_PARENT, TRACE_STATE):
                continue
            else:
                propagated.entries[stripped] = value

        return otel_context.set_value(_PROPAGATED_KEY, propagated, ctx)

    @property
    def fields(self) -> set[str]:
        return {TRACE_PARENT, TRACE_STATE, f"{HEADER_PREFIX}-{ENCODED_CONTEXT}"}


def header_fields() -> list[str]:
    """Header names used for propagation, in a stable order."""
    return [TRACE_PARENT, TRACE_STATE, f"{HEADER_PREFIX}-{ENCODED_CONTEXT}"]


class _HeaderGetter(Getter[Mapping[str, str]]):
    """Case-insensitive getter over any header mapping."""

    def get(self, carrier: Mapping[str, str], key: str) -> list[str] | None:
        lowered = key.lower()
        for k, v in carrier.items():
            if k.lower() == lowered:
                return [v]
        return None

    def keys(self, carrier: Mapping[str, str]) -> list[str]:
        return list(carrier.keys())


def context_from_headers(headers: Mapping[str, str]) -> Context:
    """Decode propagation headers into an OpenTelemetry context."""
    return TraceHeaderPropagator().extract(headers, context=Context(), getter=_HeaderGetter())


def get_propagated_context(ctx: CallContext | Context | None) -> tuple[PropagatedContext, bool]:
    """The decoded propagation context, and whether one was present."""
    value = otel_context.get_value(_PROPAGATED_KEY, context=_trace_of(ctx))
    if isinstance(value, PropagatedContext):
        return value, True
    return PropagatedContext(), False


def inject_headers(ctx: CallContext, headers: dict[str, str]) -> None:
    """Write propagation headers for ``ctx`` into ``headers``."""
    TraceHeaderPropagator().inject(headers, context=ctx.trace)


__all__ = [
    "HEADER_PREFIX",
    "ENCODED_CONTEXT",
    "PropagatedContext",
    "TraceHeaderPropagator",
    "context_from_headers",
    "ensure_tracer_provider",
    "get_propagated_context",
    "header_fields",
    "inject_headers",
    "start_span",
    "start_span_with_baggage",
    "with_baggage",
]
