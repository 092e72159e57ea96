"""
Server side of the remote provider wire contract.

Provider authors expose typed handlers over HTTP; the resolver's
:class:`~resolvespine.runtime.remote.RemoteProviderFn` calls them.

Routes:
    - ``POST <prefix>/<fn>``: call ``fn`` with the JSON body
    - ``POST <prefix>``: call the function named by the
      ``X-Spine-Provider-Function`` header (what the resolver sends when a
      package endpoint points at the prefix itself)

Status codes: ``200`` with the JSON output, ``400`` when the body does not
validate, ``404`` for an unknown function, ``500`` when the handler raises.

Example::

    class Input(BaseModel):
        input: str

    class Output(BaseModel):
        output: str

    def upper(ctx: CallContext, params: Input) -> Output:
        return Output(output=params.input.upper())

    app = create_provider_app("/ext", {"upper": upper})
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import Any

import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, PlainTextResponse, Response
from pydantic import BaseModel, ValidationError
from starlette.concurrency import run_in_threadpool

from resolvespine.core.context import CallContext
from resolvespine.core.logging import get_logger
from resolvespine.runtime.provider import infer_handler_types
from resolvespine.runtime.remote import FUNCTION_HEADER
from resolvespine.runtime.tracer import context_from_headers

logger = get_logger(__name__)

DEFAULT_PORT = 8443


class ServerProviderFn:
    """A typed handler ``(ctx, In) -> Out`` served over HTTP."""

    def __init__(
        self,
        handler: Callable[[CallContext, Any], Any],
        input_type: type[BaseModel],
        output_type: type[BaseModel],
    ):
        self.handler = handler
        self.input_type = input_type
        self.output_type = output_type

    @classmethod
    def from_handler(cls, handler: Callable[[CallContext, Any], Any]) -> ServerProviderFn:
        in_type, out_type = infer_handler_types(handler)
        return cls(handler, in_type, out_type)

    def parse(self, body: bytes) -> BaseModel:
        """Raises ``ValidationError`` for invalid JSON or a mismatched shape."""
        return self.input_type.model_validate_json(body or b"null")

    def invoke(self, ctx: CallContext, params: BaseModel) -> Any:
        result = self.handler(ctx, params)
        if not isinstance(result, self.output_type):
            result = self.output_type.model_validate(result)
        return result.model_dump(mode="json", by_alias=True, exclude_none=True)


def _normalize_prefix(prefix: str) -> str:
    stripped = prefix.strip("/")
    return f"/{stripped}" if stripped else ""


def create_provider_app(
    prefix: str,
    fns: Mapping[str, ServerProviderFn | Callable[[CallContext, Any], Any]],
) -> FastAPI:
    """FastAPI app serving ``fns`` under ``prefix``."""
    registry = {
        name: fn if isinstance(fn, ServerProviderFn) else ServerProviderFn.from_handler(fn) for name, fn in fns.items()
    }
    base = _normalize_prefix(prefix)
    app = FastAPI(title="resolve-spine external provider", docs_url=None, redoc_url=None)

    async def dispatch(request: Request, name: str | None) -> Response:
        fn = registry.get(name or "")
        if fn is None:
            return PlainTextResponse(f"function {name} not found", status_code=404)

        ctx = CallContext.background().with_trace(context_from_headers(request.headers))
        body = await request.body()
        try:
            params = fn.parse(body)
        except ValidationError as e:
            return PlainTextResponse(str(e), status_code=400)

        try:
            output = await run_in_threadpool(fn.invoke, ctx, params)
        except Exception as e:
            logger.exception("provider_handler_failed", function=name, error=str(e))
            return PlainTextResponse(str(e), status_code=500)
        return JSONResponse(output)

    @app.post(f"{base}/{{fn}}")
    async def call_named(fn: str, request: Request) -> Response:
        return await dispatch(request, fn)

    @app.post(base or "/")
    async def call_by_header(request: Request) -> Response:
        return await dispatch(request, request.headers.get(FUNCTION_HEADER))

    app.state.provider_functions = sorted(registry)
    return app


def serve_provider_app(app: FastAPI, host: str = "0.0.0.0", port: int = DEFAULT_PORT, **kwargs: Any) -> None:
    """Run ``app`` with uvicorn (blocking). TLS options pass through ``kwargs``."""
    uvicorn.run(app, host=host, port=port, **kwargs)


__all__ = ["DEFAULT_PORT", "ServerProviderFn", "create_provider_app", "serve_provider_app"]
