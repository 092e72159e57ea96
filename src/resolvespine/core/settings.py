"""Settings for the resolve-spine engine, compile server and CLI.

Manifesto:
    Configuration should be explicit, validated, and environment-driven.
    Every knob of the engine (external package discovery, resync period,
    remote dispatch timeouts) and of the HTTP surface lives here.

Features:
    - **ResolverSettings:** pydantic-settings model, ``RESOLVESPINE_`` prefix
    - **.env file support:** Automatic loading via pydantic-settings
    - **get_settings():** process-wide cached instance

Examples:
    >>> from resolvespine.core.settings import ResolverSettings
    >>> settings = ResolverSettings(resync_period_seconds=30)
    >>> settings.resync_period_seconds
    30.0

Tags:
    settings, configuration, pydantic, environment, resolve-spine

Doc-Types:
    - API Reference
    - Configuration Guide
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ResolverSettings(BaseSettings):
    """Settings for the engine and its HTTP/CLI transports.

    Order of precedence (highest → lowest):
        1. Environment variables (``RESOLVESPINE_CATALOG_DIR``, etc.)
        2. ``.env`` file
        3. Defaults below
    """

    model_config = SettingsConfigDict(
        env_prefix="RESOLVESPINE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Server ───────────────────────────────────────────────────────────
    host: str = Field(default="0.0.0.0", description="Bind address")
    port: int = Field(default=12100, description="Bind port")
    api_prefix: str = Field(default="/api/v1", description="URL prefix for all endpoints")
    debug: bool = Field(default=False, description="Expose exception details in error responses")

    # ── Observability ────────────────────────────────────────────────────
    log_level: str = Field(default="INFO", description="Log level")
    log_format: str | None = Field(default=None, description="json | console (auto when unset)")

    # ── External packages ────────────────────────────────────────────────
    enable_external_packages: bool = Field(
        default=True,
        description="Load external packages from the catalog for the default compiler",
    )
    watch_external_packages: bool = Field(
        default=False,
        description="Keep watching the catalog for external package changes",
    )
    catalog_dir: Path | None = Field(
        default=None,
        description="Directory catalog holding external package records",
    )
    resync_period_seconds: float = Field(default=300.0, gt=0, description="Catalog re-list period")

    # ── Remote dispatch ──────────────────────────────────────────────────
    remote_timeout_seconds: float = Field(default=30.0, gt=0, description="Remote call timeout")
    insecure_skip_verify: bool = Field(
        default=True,
        description="Skip TLS verification for remote provider endpoints",
    )

    # ── Resolve ──────────────────────────────────────────────────────────
    default_resolve_timeout_seconds: float | None = Field(
        default=None,
        description="Deadline applied by the server/CLI when the caller sets none",
    )


@lru_cache(maxsize=1)
def get_settings() -> ResolverSettings:
    """Cached settings, loaded once per process."""
    return ResolverSettings()


__all__ = ["ResolverSettings", "get_settings"]
