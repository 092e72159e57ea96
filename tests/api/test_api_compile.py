"""Tests for POST /api/v1/compile."""

from __future__ import annotations

import yaml

from resolvespine.document.compiler import compile_source

SOURCE = """
x:
  $do: encode
  $provider: base64
  $params: example
"""


class TestCompileEndpoint:
    def test_json_default(self, client):
        resp = client.post("/api/v1/compile", content=SOURCE)
        assert resp.status_code == 200
        assert resp.headers["content-type"].startswith("application/json")
        assert resp.json()["x"]["$returns"] == "ZXhhbXBsZQ=="

    def test_yaml(self, client):
        resp = client.post("/api/v1/compile", content=SOURCE, headers={"Accept": "application/yaml"})
        assert resp.headers["content-type"].startswith("application/yaml")
        assert yaml.safe_load(resp.text)["x"]["$returns"] == "ZXhhbXBsZQ=="

    def test_native_compiles_back(self, client):
        resp = client.post(
            "/api/v1/compile",
            content='"#Def": {a: 1}\n' + SOURCE,
            headers={"Accept": "text/html, application/x-spine-document;q=0.9"},
        )
        assert resp.headers["content-type"].startswith("application/x-spine-document")
        doc = compile_source(resp.text)
        assert doc.to_data(include_definitions=True)["#Def"] == {"a": 1}
        assert doc.lookup("x.$returns") == "ZXhhbXBsZQ=="

    def test_path_selector(self, client):
        resp = client.post("/api/v1/compile", params={"path": "x.$returns"}, content=SOURCE)
        assert resp.json() == "ZXhhbXBsZQ=="

    def test_external_provider(self, client):
        resp = client.post("/api/v1/compile", content="u: {$provider: test, $do: upper, $params: {input: hi}}\n")
        assert resp.json()["u"]["$returns"] == {"output": "HI"}

    def test_template_import(self, client):
        source = "$imports: [spine/mock]\ne: {$ref: mock.#Echo, $params: {k: v}}\n"
        resp = client.post("/api/v1/compile", content=source)
        assert resp.json() == {"e": {"$do": "echo", "$provider": "mock", "$params": {"k": "v"}, "$returns": {"k": "v"}}}


class TestCompileErrors:
    def test_syntax_error(self, client):
        resp = client.post("/api/v1/compile", content="a: [\n")
        assert resp.status_code == 400
        assert resp.headers["content-type"].startswith("text/plain")
        assert resp.text.startswith("compile error: ")

    def test_unknown_provider(self, client):
        resp = client.post("/api/v1/compile", content="x: {$do: f, $provider: nope}\n")
        assert resp.status_code == 400
        assert resp.text == "compile error: provider nope not found"

    def test_function_error(self, client):
        resp = client.post("/api/v1/compile", content="x: {$do: fail, $provider: mock, $params: {}}\n")
        assert resp.status_code == 400
        assert "function call error for x" in resp.text

    def test_unknown_path(self, client):
        resp = client.post("/api/v1/compile", params={"path": "nope"}, content=SOURCE)
        assert resp.status_code == 400

    def test_invalid_timeout(self, client):
        resp = client.post("/api/v1/compile", params={"timeout": -1}, content=SOURCE)
        assert resp.status_code == 422

    def test_invalid_utf8_rejected(self, client):
        resp = client.post("/api/v1/compile", content=b"a: \xff\xfe\n")
        assert resp.status_code == 400
        assert resp.text.startswith("compile error: source is not valid UTF-8")

    def test_dates_stay_strings(self, client):
        resp = client.post("/api/v1/compile", content="created: 2024-01-01\n")
        assert resp.status_code == 200
        assert resp.json() == {"created": "2024-01-01"}
