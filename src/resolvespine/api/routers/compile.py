"""
Compile router: compile and resolve raw source text.

Endpoints:
    POST /compile   Body: raw source. Query: ``path`` (sub-tree selector),
                    ``timeout`` (seconds). ``Accept`` selects the encoding:
                    ``application/yaml``, ``application/x-spine-document``
                    (native, compiles back) or JSON (default).

Errors are returned as ``400 text/plain`` with a ``compile error:`` prefix;
that covers source errors, resolution errors and unknown paths alike.
"""

from __future__ import annotations

from fastapi import APIRouter, Query, Request
from fastapi.responses import PlainTextResponse, Response
from starlette.concurrency import run_in_threadpool

from resolvespine.api.deps import CompilerDep, Settings
from resolvespine.core.context import CallContext
from resolvespine.core.errors import ResolveSpineError
from resolvespine.core.logging import get_logger
from resolvespine.document.printer import OutputFormat, print_document
from resolvespine.runtime.tracer import context_from_headers

logger = get_logger(__name__)

router = APIRouter()

MIME_JSON = "application/json"
MIME_YAML = "application/yaml"
MIME_NATIVE = "application/x-spine-document"

_YAML_TYPES = (MIME_YAML, "application/x-yaml", "text/yaml", "text/x-yaml")


def negotiate(accept: str | None) -> tuple[OutputFormat, str]:
    """Pick the output format and media type from an ``Accept`` header."""
    for part in (accept or "").split(","):
        media = part.split(";")[0].strip().lower()
        if media == MIME_NATIVE:
            return OutputFormat.NATIVE, MIME_NATIVE
        if media in _YAML_TYPES:
            return OutputFormat.YAML, MIME_YAML
        if media == MIME_JSON:
            return OutputFormat.JSON, MIME_JSON
    return OutputFormat.JSON, MIME_JSON


@router.post("/compile")
async def compile_source(
    request: Request,
    compiler: CompilerDep,
    settings: Settings,
    path: str | None = Query(None, description="Select the sub-tree at this path"),
    timeout: float | None = Query(None, gt=0, description="Resolve deadline in seconds"),
) -> Response:
    """Compile the request body, resolve provider calls and encode the result."""
    try:
        text = (await request.body()).decode("utf-8")
    except UnicodeDecodeError as e:
        logger.info("compile_request_failed", error=str(e), category="compile")
        return PlainTextResponse(f"compile error: source is not valid UTF-8 at byte {e.start}", status_code=400)
    fmt, media_type = negotiate(request.headers.get("accept"))

    ctx = CallContext.background().with_trace(context_from_headers(request.headers))
    timeout = timeout or settings.default_resolve_timeout_seconds
    if timeout:
        ctx = ctx.with_timeout(timeout)

    def _run() -> str:
        document = compiler.compile_source(ctx, text)
        return print_document(document, fmt, path=path or None)

    try:
        body = await run_in_threadpool(_run)
    except ResolveSpineError as e:
        logger.info("compile_request_failed", error=str(e), category=e.category.value)
        return PlainTextResponse(f"compile error: {e}", status_code=400)
    return Response(content=body, media_type=media_type)
