"""
FastAPI application factory.

``create_app()`` wires middleware, routers, error handlers and lifespan
events into a single ``FastAPI`` instance.

Manifesto:
    The app factory is the single composition root: middleware, routers and
    the package watch lifecycle are wired here so routers only ever see a
    ready compiler through dependency injection.

Tags:
    resolve-spine, api, app-factory, composition-root, FastAPI

Doc-Types:
    api-reference
"""

from __future__ import annotations

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from resolvespine import __version__
from resolvespine.api.middleware.errors import spine_error_handler, unhandled_exception_handler
from resolvespine.api.middleware.request_id import RequestIDMiddleware
from resolvespine.api.schemas.common import HealthResponse
from resolvespine.core.errors import ResolveSpineError
from resolvespine.core.logging import get_logger
from resolvespine.core.settings import ResolverSettings, get_settings
from resolvespine.resolver import Compiler, get_default_compiler


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Start the package watch loop when the app owns the default compiler."""
    log = get_logger("resolvespine.api")
    settings: ResolverSettings = app.state.settings
    manager = app.state.compiler.manager
    owns_watch = app.state.owns_compiler and settings.watch_external_packages and manager.catalog is not None

    log.info("resolve_spine_api_starting", version=app.version, watch=owns_watch)
    if owns_watch and not manager.is_running:
        manager.start()

    yield

    if owns_watch:
        manager.stop()
    log.info("resolve_spine_api_stopped")


def create_app(
    compiler: Compiler | None = None,
    settings: ResolverSettings | None = None,
) -> FastAPI:
    """Build and return a fully-configured FastAPI application.

    Parameters
    ----------
    compiler : Compiler | None
        Compiler to serve. When ``None`` the process-wide default compiler
        is used and its watch loop follows the app lifespan.
    settings : ResolverSettings | None
        Override settings (useful for testing).
    """
    settings = settings or get_settings()
    owns_compiler = compiler is None
    compiler = compiler or get_default_compiler()

    prefix = settings.api_prefix.rstrip("/")
    app = FastAPI(
        title="resolve-spine",
        version=__version__,
        lifespan=lifespan,
        docs_url=f"{prefix}/docs",
        redoc_url=None,
        openapi_url=f"{prefix}/openapi.json",
    )

    app.state.settings = settings
    app.state.compiler = compiler
    app.state.owns_compiler = owns_compiler
    app.dependency_overrides[get_settings] = lambda: settings

    # ── Middleware ───────────────────────────────────────────────────
    app.add_middleware(RequestIDMiddleware)

    # ── Exception handlers ───────────────────────────────────────────
    app.add_exception_handler(ResolveSpineError, spine_error_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    # ── Routers ──────────────────────────────────────────────────────
    from resolvespine.api.routers import compile as compile_router
    from resolvespine.api.routers import packages as packages_router

    app.include_router(compile_router.router, prefix=prefix, tags=["compile"])
    app.include_router(packages_router.router, prefix=prefix, tags=["packages"])

    # Health at root level (no prefix) for container healthchecks
    @app.get("/healthz", tags=["health"], response_model=HealthResponse)
    def healthz() -> HealthResponse:
        manager = app.state.compiler.manager
        return HealthResponse(
            version=__version__,
            packages=len(manager.get_packages()),
            watching=manager.is_running,
        )

    return app
