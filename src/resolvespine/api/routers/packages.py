"""
Packages router: what the compiler can import and call.

Endpoints:
    GET /packages   Internal and external packages with their definitions
"""

from __future__ import annotations

from fastapi import APIRouter

from resolvespine.api.deps import CompilerDep
from resolvespine.api.schemas.common import PackageSummary
from resolvespine.runtime.package import ExternalPackage
from resolvespine.runtime.provider import Package

router = APIRouter()


def summarize(pkg: Package) -> PackageSummary:
    definitions = sorted({name for imp in pkg.get_imports() for name in imp.definitions})
    if isinstance(pkg, ExternalPackage):
        spec = pkg.record.provider
        return PackageSummary(
            name=pkg.name,
            path=pkg.path,
            kind="external",
            protocol=spec.protocol if spec else None,
            endpoint=spec.endpoint if spec else None,
            definitions=definitions,
        )
    return PackageSummary(name=pkg.name, path=pkg.path, kind="internal", definitions=definitions)


@router.get("/packages", response_model=list[PackageSummary])
def list_packages(compiler: CompilerDep) -> list[PackageSummary]:
    """List every registered package."""
    return [summarize(pkg) for pkg in compiler.manager.get_packages()]
