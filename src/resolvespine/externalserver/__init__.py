"""HTTP server helpers for writing external providers."""

from resolvespine.externalserver.server import (
    DEFAULT_PORT,
    ServerProviderFn,
    create_provider_app,
    serve_provider_app,
)

__all__ = ["DEFAULT_PORT", "ServerProviderFn", "create_provider_app", "serve_provider_app"]
