"""Command-line interface (``resolve-spine``)."""

from resolvespine.cli.app import app

__all__ = ["app"]
