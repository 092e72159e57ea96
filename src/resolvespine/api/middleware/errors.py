"""
Error handlers: map exceptions to RFC 7807 responses.
"""

from __future__ import annotations

from fastapi import Request
from fastapi.responses import JSONResponse

from resolvespine.api.schemas.common import ProblemDetail
from resolvespine.core.errors import ErrorCategory, ResolveSpineError
from resolvespine.core.logging import get_logger

logger = get_logger(__name__)

# ── Error category → HTTP status mapping ─────────────────────────────────

CATEGORY_TO_STATUS: dict[ErrorCategory, int] = {
    ErrorCategory.COMPILE: 400,
    ErrorCategory.RESOLVE: 400,
    ErrorCategory.PROVIDER: 502,
    ErrorCategory.CATALOG: 503,
    ErrorCategory.CONFIG: 500,
    ErrorCategory.INTERNAL: 500,
}


def status_for_category(category: ErrorCategory) -> int:
    """Resolve an error category to HTTP status, defaulting to 500."""
    return CATEGORY_TO_STATUS.get(category, 500)


def problem_response(*, status: int, title: str, detail: str = "", instance: str = "") -> JSONResponse:
    """Build a RFC 7807 JSON error response."""
    body = ProblemDetail(title=title, status=status, detail=detail, instance=instance)
    return JSONResponse(status_code=status, content=body.model_dump(), media_type="application/problem+json")


async def spine_error_handler(request: Request, exc: ResolveSpineError) -> JSONResponse:
    """Known engine errors escaping a router."""
    status = status_for_category(exc.category)
    return problem_response(
        status=status,
        title=exc.__class__.__name__,
        detail=str(exc),
        instance=str(request.url),
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all for unhandled exceptions: 500 with ProblemDetail."""
    logger.exception("unhandled_exception", path=request.url.path, error=str(exc))
    return problem_response(
        status=500,
        title="Internal Server Error",
        detail=str(exc) if request.app.state.settings.debug else "An unexpected error occurred.",
        instance=str(request.url),
    )
