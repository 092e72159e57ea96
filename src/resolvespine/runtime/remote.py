"""
Remote provider functions: HTTP dispatch of ``$params`` to an endpoint.

Wire contract:
    - ``POST <endpoint>`` with the JSON of the marker's ``$params``
      (``null`` when absent)
    - headers: ``Content-Type: application/json``, the function name under
      ``X-Spine-Provider-Function``, the package's static headers and the
      propagation headers of :mod:`resolvespine.runtime.tracer`
    - a 2xx JSON object response is filled at ``$returns``; anything else is
      a :class:`RemoteCallError`
"""

from __future__ import annotations

import json
import threading
from collections.abc import Mapping
from typing import Any

import httpx
from pydantic import BaseModel, ConfigDict, Field

from resolvespine.core.context import CallContext
from resolvespine.core.errors import RemoteCallError, UnsupportedProtocolError
from resolvespine.core.logging import get_logger
from resolvespine.core.settings import get_settings
from resolvespine.document.document import PARAMS_KEY, RETURNS_KEY
from resolvespine.runtime.tracer import inject_headers, start_span

logger = get_logger(__name__)

FUNCTION_HEADER = "X-Spine-Provider-Function"
CONTENT_TYPE_JSON = "application/json"

PROTOCOL_HTTP = "http"
PROTOCOL_HTTPS = "https"
SUPPORTED_PROTOCOLS = frozenset({PROTOCOL_HTTP, PROTOCOL_HTTPS})

_BODY_EXCERPT = 512


class RemoteProviderSpec(BaseModel):
    """Where and how a remote provider is dialed."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    protocol: str = PROTOCOL_HTTP
    endpoint: str
    headers: dict[str, str] = Field(default_factory=dict)


# ── Default client ───────────────────────────────────────────────────────

_default_client: httpx.Client | None = None
_client_lock = threading.Lock()


def get_default_client() -> httpx.Client:
    """Process-wide client, created on first use from settings."""
    global _default_client
    with _client_lock:
        if _default_client is None:
            settings = get_settings()
            _default_client = httpx.Client(
                verify=not settings.insecure_skip_verify,
                timeout=settings.remote_timeout_seconds,
            )
        return _default_client


def close_default_client() -> None:
    global _default_client
    with _client_lock:
        if _default_client is not None:
            _default_client.close()
            _default_client = None


class RemoteProviderFn:
    """Provider function dispatched over HTTP."""

    def __init__(
        self,
        provider: str,
        fn: str,
        spec: RemoteProviderSpec,
        client: httpx.Client | None = None,
    ):
        self.provider = provider
        self.fn = fn
        self.spec = spec
        self._client = client

    @property
    def client(self) -> httpx.Client:
        return self._client or get_default_client()

    def _headers(self, ctx: CallContext) -> dict[str, str]:
        headers = {"Content-Type": CONTENT_TYPE_JSON, FUNCTION_HEADER: self.fn}
        headers.update(self.spec.headers)
        try:
            inject_headers(ctx, headers)
        except Exception as e:  # noqa: BLE001
            logger.warning("propagation_headers_failed", provider=self.provider, function=self.fn, error=str(e))
        return headers

    def _timeout(self, ctx: CallContext) -> float:
        remaining = ctx.remaining()
        if remaining is not None:
            return remaining
        return get_settings().remote_timeout_seconds

    def call(self, ctx: CallContext, value: Any) -> Any:
        protocol = self.spec.protocol.lower()
        if protocol not in SUPPORTED_PROTOCOLS:
            raise UnsupportedProtocolError(self.spec.protocol)

        params = value.get(PARAMS_KEY) if isinstance(value, Mapping) else None
        span_ctx, span = start_span(ctx, f"{self.provider}.{self.fn}")
        try:
            response = self.client.post(
                self.spec.endpoint,
                content=json.dumps(params).encode(),
                headers=self._headers(span_ctx),
                timeout=self._timeout(ctx),
            )
        except httpx.HTTPError as e:
            raise RemoteCallError(
                f"request to {self.spec.endpoint} failed: {e}",
                endpoint=self.spec.endpoint,
                cause=e,
            ) from e
        finally:
            span.end()

        if not response.is_success:
            raise RemoteCallError(
                f"{self.spec.endpoint} returned {response.status_code}: {response.text[:_BODY_EXCERPT]}",
                endpoint=self.spec.endpoint,
                status_code=response.status_code,
            )
        try:
            returns = response.json()
        except ValueError as e:
            raise RemoteCallError(
                f"{self.spec.endpoint} returned invalid JSON: {e}",
                endpoint=self.spec.endpoint,
                status_code=response.status_code,
                cause=e,
            ) from e
        if not isinstance(returns, dict):
            raise RemoteCallError(
                f"{self.spec.endpoint} returned {type(returns).__name__}, expected an object",
                endpoint=self.spec.endpoint,
                status_code=response.status_code,
            )
        return {RETURNS_KEY: returns}

    def __repr__(self) -> str:
        return f"RemoteProviderFn({self.provider}.{self.fn} -> {self.spec.endpoint})"


__all__ = [
    "FUNCTION_HEADER",
    "RemoteProviderFn",
    "RemoteProviderSpec",
    "SUPPORTED_PROTOCOLS",
    "close_default_client",
    "get_default_client",
]
