"""Built-in provider packages mounted under ``spine/``."""

from __future__ import annotations

from resolvespine.providers import base64, http, patch
from resolvespine.runtime.provider import Package


def default_packages() -> list[Package]:
    return [base64.package, http.package, patch.package]


__all__ = ["base64", "default_packages", "http", "patch"]
