"""Tests for resolvespine.document.walk: ordered post-order walk."""

from __future__ import annotations

from resolvespine.document.compiler import compile_source
from resolvespine.document.document import Document
from resolvespine.document.walk import ordered_children, priority_of


def _paths(doc: Document) -> list[str]:
    return [node.path_str for node in doc.walk() if node.path_str == "" or "$" not in node.path_str]


class TestPriority:
    def test_numeric_priority(self):
        assert priority_of({"$priority": 2}) == 2.0
        assert priority_of({"$priority": 0.5}) == 0.5

    def test_non_numeric_ignored(self):
        assert priority_of({"$priority": "1"}) is None
        assert priority_of({"$priority": True}) is None
        assert priority_of(3) is None

    def test_annotated_before_plain(self):
        children = ordered_children({"p": 1, "b": {"$priority": 2}, "a": {"$priority": 1}})
        assert [k for k, _ in children] == ["a", "b", "p"]

    def test_ties_keep_declaration_order(self):
        children = ordered_children({"z": {"$priority": 1}, "y": {"$priority": 1}})
        assert [k for k, _ in children] == ["z", "y"]

    def test_list_items_ordered(self):
        children = ordered_children([{"n": 0}, {"$priority": 1}])
        assert [i for i, _ in children] == [1, 0]


class TestIterate:
    def test_order(self):
        doc = compile_source(
            """
a:
  $priority: 3
x: x
"#hidden":
  h: 1
b:
  $priority: 1
  e:
    $priority: 3
    g: {}
    f:
      $priority: 1
  c:
    $priority: 1
  d:
    $priority: 2
"""
        )
        assert _paths(doc) == ["b.c", "b.d", "b.e.f", "b.e.g", "b.e", "b", "a", "x", ""]

    def test_children_before_parent(self):
        doc = Document({"outer": {"inner": {"leaf": 1}}})
        paths = [n.path_str for n in doc.walk()]
        assert paths.index("outer.inner.leaf") < paths.index("outer.inner") < paths.index("outer")

    def test_root_last(self):
        paths = [n.path_str for n in Document({"a": 1, "b": [1]}).walk()]
        assert paths[-1] == ""

    def test_definitions_and_imports_skipped(self):
        doc = Document({"$imports": ["x/y"], "#Def": {"a": 1}, "v": 1})
        assert [n.path_str for n in doc.walk()] == ["v", ""]

    def test_walk_reflects_version(self):
        v1 = Document({"a": 1})
        v2 = v1.fill("b", 2)
        assert [n.path_str for n in v1.walk()] == ["a", ""]
        assert [n.path_str for n in v2.walk()] == ["a", "b", ""]
