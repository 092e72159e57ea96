"""Tests for resolvespine.document.printer: output encodings."""

from __future__ import annotations

import json

import pytest
import yaml

from resolvespine.core.errors import PathError
from resolvespine.document.compiler import compile_source
from resolvespine.document.printer import OutputFormat, print_document, to_native_string

SOURCE = """
"#Def": {a: 1}
x:
  $do: encode
  $provider: base64
  $params: example
  $returns: ZXhhbXBsZQ==
name: demo
"""


@pytest.fixture
def doc():
    return compile_source(SOURCE)


class TestPrintDocument:
    def test_json_drops_definitions(self, doc):
        data = json.loads(print_document(doc, OutputFormat.JSON))
        assert "#Def" not in data
        assert data["x"]["$returns"] == "ZXhhbXBsZQ=="

    def test_yaml(self, doc):
        data = yaml.safe_load(print_document(doc, "yaml"))
        assert data == {
            "x": {"$do": "encode", "$provider": "base64", "$params": "example", "$returns": "ZXhhbXBsZQ=="},
            "name": "demo",
        }

    def test_native_keeps_definitions(self, doc):
        text = print_document(doc, OutputFormat.NATIVE)
        assert "#Def" in text
        assert compile_source(text) == doc

    def test_path(self, doc):
        assert json.loads(print_document(doc, "json", path="x.$returns")) == "ZXhhbXBsZQ=="

    def test_missing_path(self, doc):
        with pytest.raises(PathError):
            print_document(doc, "json", path="nope")

    def test_unknown_format(self, doc):
        with pytest.raises(ValueError):
            print_document(doc, "toml")

    def test_key_order_preserved(self, doc):
        assert list(json.loads(print_document(doc))) == ["x", "name"]


class TestNativeString:
    def test_scalar(self):
        assert to_native_string("abc") == "abc"

    def test_mapping(self):
        assert to_native_string({"$do": "f"}) == "$do: f"
