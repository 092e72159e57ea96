"""Tests for resolvespine.document.compiler: YAML sources, imports and references."""

from __future__ import annotations

import pytest

from resolvespine.core.errors import CompileError
from resolvespine.document.compiler import TemplateDocument, build_template, compile_source, unify

B64_TEMPLATE = """\
"#Encode":
  $do: encode
  $provider: base64
"#Decode":
  $do: decode
  $provider: base64
not_exported: 1
"""


@pytest.fixture
def b64() -> TemplateDocument:
    return build_template("spine/base64", {"-": B64_TEMPLATE})


class TestCompileSource:
    def test_plain_yaml(self):
        doc = compile_source("a: 1\nb: [x, y]\n")
        assert doc.to_data() == {"a": 1, "b": ["x", "y"]}

    def test_json_is_accepted(self):
        assert compile_source('{"a": {"b": true}}').to_data() == {"a": {"b": True}}

    def test_empty_source(self):
        assert compile_source("").to_data() == {}

    def test_top_level_must_be_mapping(self):
        with pytest.raises(CompileError, match="must be a mapping"):
            compile_source("- 1\n- 2\n")

    def test_syntax_error_reports_location(self):
        with pytest.raises(CompileError) as exc:
            compile_source("a: 1\nb: [1, 2\n")
        assert exc.value.line is not None
        assert exc.value.column is not None
        assert "line" in str(exc.value)

    def test_declaration_order_kept(self):
        doc = compile_source("z: 1\na: 2\nm: 3\n")
        assert list(doc.to_data()) == ["z", "a", "m"]


class TestImports:
    def test_import_and_reference(self, b64):
        doc = compile_source(
            """
$imports: [spine/base64]
enc:
  $ref: base64.#Encode
  $params: example
""",
            [b64],
        )
        assert doc.lookup("enc") == {"$do": "encode", "$provider": "base64", "$params": "example"}

    def test_imports_by_mount_path_mapping(self, b64):
        doc = compile_source("$imports: {b: spine/base64}\nx: {$ref: b.#Decode}\n", {"spine/base64": b64})
        assert doc.lookup("x")["$do"] == "decode"

    def test_single_string_import(self, b64):
        doc = compile_source("$imports: spine/base64\nx: {$ref: base64.#Encode}\n", [b64])
        assert doc.lookup("x.$provider") == "base64"

    def test_unknown_import(self):
        with pytest.raises(CompileError, match="import spine/nope not found"):
            compile_source("$imports: [spine/nope]\n")

    def test_duplicate_alias(self, b64):
        other = TemplateDocument("ext/base64")
        with pytest.raises(CompileError, match="duplicate import alias"):
            compile_source("$imports: [spine/base64, ext/base64]\n", [b64, other])

    def test_reference_without_import(self, b64):
        with pytest.raises(CompileError, match="not imported"):
            compile_source("x: {$ref: base64.#Encode}\n", [b64])

    def test_unknown_definition(self, b64):
        with pytest.raises(CompileError, match="not found"):
            compile_source("$imports: [spine/base64]\nx: {$ref: base64.#Nope}\n", [b64])

    def test_only_definitions_exported(self, b64):
        assert set(b64.definitions) == {"#Encode", "#Decode"}
        assert b64.name == "base64"

    def test_imports_hidden_in_output(self, b64):
        doc = compile_source("$imports: [spine/base64]\na: 1\n", [b64])
        assert doc.to_data() == {"a": 1}


class TestLocalReferences:
    def test_local_definition(self):
        doc = compile_source(
            """
"#Base":
  kind: thing
  spec: {replicas: 1}
a:
  $ref: "#Base"
  spec: {image: x}
"""
        )
        assert doc.lookup("a") == {"kind": "thing", "spec": {"replicas": 1, "image": "x"}}

    def test_definition_kept_unexpanded(self):
        doc = compile_source('"#A": {v: 1}\n"#B": {$ref: "#A"}\n')
        assert doc.to_data(include_definitions=True)["#B"] == {"$ref": "#A"}

    def test_nested_reference_path(self):
        doc = compile_source('"#A": {inner: {v: 1}}\nx: {$ref: "#A.inner"}\n')
        assert doc.lookup("x") == {"v": 1}

    def test_cycle(self):
        with pytest.raises(CompileError, match="reference cycle"):
            compile_source('"#A": {$ref: "#B"}\n"#B": {$ref: "#A"}\nx: {$ref: "#A"}\n')

    def test_conflict(self):
        with pytest.raises(CompileError, match="conflicting values"):
            compile_source('"#A": {kind: a}\nx: {$ref: "#A", kind: b}\n')

    def test_reference_must_name_definition(self, b64):
        with pytest.raises(CompileError, match="must name a definition"):
            compile_source("$imports: [spine/base64]\nx: {$ref: base64.Encode}\n", [b64])


class TestBuildTemplate:
    def test_files_merge(self):
        t = build_template("ext/x", {"a.yaml": '"#A": {v: 1}\n', "b.yaml": '"#B": {v: 2}\n'})
        assert set(t.definitions) == {"#A", "#B"}

    def test_duplicate_definition(self):
        with pytest.raises(CompileError, match="more than once"):
            build_template("ext/x", {"a.yaml": '"#A": {v: 1}\n', "b.yaml": '"#A": {v: 2}\n'})

    def test_non_mapping_template(self):
        with pytest.raises(CompileError, match="must be a mapping"):
            build_template("ext/x", {"a.yaml": "- 1\n"})

    def test_empty_file_skipped(self):
        assert build_template("ext/x", {"a.yaml": ""}).definitions == {}


class TestUnify:
    def test_none_is_unset(self):
        assert unify(None, 1) == 1
        assert unify({"a": 1}, None) == {"a": 1}

    def test_equal_values_agree(self):
        assert unify({"a": [1, 2]}, {"a": [1, 2]}) == {"a": [1, 2]}

    def test_type_mismatch_conflicts(self):
        with pytest.raises(CompileError):
            unify(1, True)

    def test_list_length_mismatch_conflicts(self):
        with pytest.raises(CompileError):
            unify([1], [1, 2])


class TestJsonDataModel:
    def test_non_string_keys_become_strings(self):
        doc = compile_source("on: 1\n1: a\n2.5: b\nnull: c\nno: d\n")
        assert doc.to_data() == {"true": 1, "1": "a", "2.5": "b", "null": "c", "false": "d"}

    def test_keys_colliding_after_conversion(self):
        with pytest.raises(CompileError, match="duplicate key"):
            compile_source("1: a\n'1': b\n")

    def test_timestamps_stay_strings(self):
        doc = compile_source("day: 2024-01-01\nat: 2024-01-01T10:00:00Z\ntagged: !!timestamp 2024-02-02\n")
        assert doc.to_data() == {"day": "2024-01-01", "at": "2024-01-01T10:00:00Z", "tagged": "2024-02-02"}

    def test_merge_keys_still_supported(self):
        doc = compile_source("base: &b {x: 1}\nother: {<<: *b, y: 2}\n")
        assert doc.lookup("other") == {"x": 1, "y": 2}
