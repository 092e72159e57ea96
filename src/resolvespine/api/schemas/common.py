"""
Common API schemas: RFC 7807 errors and package listings.

Every non-2xx JSON response is a :class:`ProblemDetail`. Compile errors are
the exception: they are returned as ``text/plain`` so command-line clients
can print them as-is.

Doc-Types: API_REFERENCE
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field


class ProblemDetail(BaseModel):
    """RFC 7807 «Problem Details for HTTP APIs»."""

    type: str = Field(default="about:blank", description="URI reference identifying the problem type")
    title: str = Field(description="Short human-readable summary")
    status: int = Field(description="HTTP status code")
    detail: str = Field(default="", description="Explanation specific to this occurrence")
    instance: str = Field(default="", description="URI of the request that failed")


class PackageSummary(BaseModel):
    """One registered provider package."""

    name: str = Field(description="Provider name used by $provider")
    path: str = Field(description="Mount path used by $imports")
    kind: Literal["internal", "external"]
    protocol: str | None = Field(default=None, description="Remote protocol (external packages only)")
    endpoint: str | None = Field(default=None, description="Remote endpoint (external packages only)")
    definitions: list[str] = Field(default_factory=list, description="Template definitions exported")


class HealthResponse(BaseModel):
    status: Literal["healthy"] = "healthy"
    service: str = "resolve-spine"
    version: str = ""
    packages: int = 0
    watching: bool = False
