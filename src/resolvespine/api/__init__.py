"""HTTP surface: the compile server."""

from resolvespine.api.app import create_app

__all__ = ["create_app"]
