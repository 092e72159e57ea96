"""Fixtures for API tests: an app around a test compiler."""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from resolvespine.api import create_app
from resolvespine.core.settings import ResolverSettings
from resolvespine.providers import base64
from resolvespine.resolver import new_compiler_with_internal_packages
from resolvespine.runtime.catalog import InMemoryCatalog


@pytest.fixture
def api_settings() -> ResolverSettings:
    return ResolverSettings(api_prefix="/api/v1")


@pytest.fixture
def compiler(mock_package, ext_record, provider_client):
    compiler = new_compiler_with_internal_packages(
        mock_package,
        base64.package,
        catalog=InMemoryCatalog([ext_record]),
        http_client=provider_client,
    )
    compiler.manager.load_external_packages()
    return compiler


@pytest.fixture
def app(compiler, api_settings):
    return create_app(compiler=compiler, settings=api_settings)


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c
