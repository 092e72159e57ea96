"""Tests for the app factory: health, packages, middleware and error mapping."""

from __future__ import annotations

from fastapi.testclient import TestClient

from resolvespine.api import create_app
from resolvespine.core.errors import CatalogError
from resolvespine.core.settings import ResolverSettings
from resolvespine.resolver import new_compiler_with_internal_packages
from resolvespine.runtime.catalog import InMemoryCatalog


class TestHealth:
    def test_healthz(self, client):
        resp = client.get("/healthz")
        assert resp.status_code == 200
        body = resp.json()
        assert body["status"] == "healthy"
        assert body["packages"] == 3
        assert body["watching"] is False


class TestPackages:
    def test_list(self, client):
        resp = client.get("/api/v1/packages")
        assert resp.status_code == 200
        by_name = {p["name"]: p for p in resp.json()}
        assert set(by_name) == {"mock", "base64", "test"}
        assert by_name["base64"] == {
            "name": "base64",
            "path": "spine/base64",
            "kind": "internal",
            "protocol": None,
            "endpoint": None,
            "definitions": ["#Decode", "#Encode"],
        }
        assert by_name["test"]["kind"] == "external"
        assert by_name["test"]["endpoint"] == "http://provider.test/ext"


class TestRequestID:
    def test_generated(self, client):
        assert client.get("/healthz").headers["X-Request-ID"]

    def test_echoed(self, client):
        resp = client.get("/healthz", headers={"X-Request-ID": "req-42"})
        assert resp.headers["X-Request-ID"] == "req-42"


class TestErrorHandlers:
    def _app(self, compiler, debug: bool = False):
        app = create_app(compiler=compiler, settings=ResolverSettings(debug=debug))

        @app.get("/catalog-down")
        def catalog_down():
            raise CatalogError("catalog unavailable")

        @app.get("/crash")
        def crash():
            raise RuntimeError("secret detail")

        return app

    def test_spine_error_problem_detail(self, compiler):
        with TestClient(self._app(compiler)) as c:
            resp = c.get("/catalog-down")
        assert resp.status_code == 503
        assert resp.headers["content-type"].startswith("application/problem+json")
        assert resp.json()["title"] == "CatalogError"
        assert resp.json()["detail"] == "catalog unavailable"

    def test_unhandled_hides_detail(self, compiler):
        with TestClient(self._app(compiler), raise_server_exceptions=False) as c:
            resp = c.get("/crash")
        assert resp.status_code == 500
        assert resp.json()["detail"] == "An unexpected error occurred."

    def test_unhandled_debug_detail(self, compiler):
        with TestClient(self._app(compiler, debug=True), raise_server_exceptions=False) as c:
            resp = c.get("/crash")
        assert resp.json()["detail"] == "secret detail"


class TestLifespan:
    def test_injected_compiler_not_watched(self, compiler):
        settings = ResolverSettings(watch_external_packages=True)
        with TestClient(create_app(compiler=compiler, settings=settings)):
            assert not compiler.manager.is_running

    def test_default_compiler_watched(self, monkeypatch):
        compiler = new_compiler_with_internal_packages(catalog=InMemoryCatalog(), resync_period=60)
        monkeypatch.setattr("resolvespine.api.app.get_default_compiler", lambda: compiler)

        app = create_app(settings=ResolverSettings(watch_external_packages=True))
        with TestClient(app) as c:
            assert compiler.manager.is_running
            assert c.get("/healthz").json()["watching"] is True
        assert not compiler.manager.is_running
