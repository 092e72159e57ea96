"""
FastAPI dependency injection: settings and the compiler of this app.

Usage in routers::

    from resolvespine.api.deps import CompilerDep, Settings

    @router.get("/things")
    def list_things(compiler: CompilerDep, settings: Settings):
        ...
"""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends, Request

from resolvespine.core.settings import ResolverSettings, get_settings
from resolvespine.resolver import Compiler


def get_compiler(request: Request) -> Compiler:
    """The compiler the app was created with."""
    return request.app.state.compiler


# ── Convenience type aliases ─────────────────────────────────────────────

Settings = Annotated[ResolverSettings, Depends(get_settings)]
CompilerDep = Annotated[Compiler, Depends(get_compiler)]
