"""Built-in ``http`` provider: issue one HTTP request with httpx.

Example::

    $imports: [spine/http]
    get:
      $ref: http.#Do
      $params:
        method: GET
        url: https://example.com/health
        request:
          header: {Accept: application/json}

    # get.$returns: {body, header, statusCode}
"""

from __future__ import annotations

import httpx
from pydantic import BaseModel, ConfigDict, Field

from resolvespine.core.context import CallContext
from resolvespine.core.settings import get_settings
from resolvespine.runtime.package import InternalPackage
from resolvespine.runtime.provider import LocalProviderFn, Params, Returns

PROVIDER_NAME = "http"

TEMPLATE = """\
"#Do":
  $do: do
  $provider: http

"#Get":
  $do: do
  $provider: http
  $params:
    method: GET

"#Post":
  $do: do
  $provider: http
  $params:
    method: POST
"""


class RequestOptions(BaseModel):
    body: str = ""
    header: dict[str, list[str] | str] = Field(default_factory=dict)
    timeout: float | None = None


class RequestVars(BaseModel):
    method: str = "GET"
    url: str
    request: RequestOptions = Field(default_factory=RequestOptions)


class ResponseVars(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    body: str
    header: dict[str, list[str]]
    status_code: int = Field(alias="statusCode")


class DoParams(Params[RequestVars]):
    pass


class DoReturns(Returns[ResponseVars]):
    pass


def _request_headers(header: dict[str, list[str] | str]) -> list[tuple[str, str]]:
    out: list[tuple[str, str]] = []
    for key, values in header.items():
        for value in [values] if isinstance(values, str) else values:
            out.append((key, value))
    return out


def _response_headers(headers: httpx.Headers) -> dict[str, list[str]]:
    out: dict[str, list[str]] = {}
    for key, value in headers.multi_items():
        out.setdefault(key, []).append(value)
    return out


def _client(timeout: float) -> httpx.Client:
    return httpx.Client(timeout=timeout)


def do(ctx: CallContext, params: DoParams) -> DoReturns:
    """Send the request; non-2xx statuses are returned, transport errors raise."""
    req = params.params
    timeout = req.request.timeout
    remaining = ctx.remaining()
    if timeout is None:
        timeout = remaining if remaining is not None else get_settings().remote_timeout_seconds
    elif remaining is not None:
        timeout = min(timeout, remaining)

    with _client(timeout) as client:
        response = client.request(
            req.method.upper(),
            req.url,
            content=req.request.body.encode("utf-8") if req.request.body else None,
            headers=_request_headers(req.request.header),
        )
    return DoReturns(
        returns=ResponseVars(
            body=response.text,
            header=_response_headers(response.headers),
            status_code=response.status_code,
        )
    )


package = InternalPackage(PROVIDER_NAME, TEMPLATE, {"do": LocalProviderFn.from_handler(do)})

__all__ = ["PROVIDER_NAME", "DoParams", "DoReturns", "RequestVars", "ResponseVars", "do", "package"]
