"""
Persistent configuration document.

Manifesto:
    The resolver re-walks the document after every single dispatch and fills
    one result at a time. Modelling the document as a persistent value makes
    partial failure trivial: ``fill`` returns a new version and the previous
    version stays valid, so an error can always hand back the last good
    document.

Architecture:
    ::

        Document(v1) ──fill("x", {...})──▶ Document(v2) ──fill(...)──▶ ...
             │                                 │
             └── shares every untouched sub-tree with v2 (copy-on-write
                 along the filled path only)

Features:
    - **lookup(path):** deep copy of the sub-tree at a path
    - **fill(path, value):** overlay with deep merge of mappings
    - **walk():** ordered post-order walk honouring ``$priority``
    - **pending_call(node):** call-marker detection

Tags:
    document, persistent, copy-on-write, resolve-spine

Doc-Types:
    - API Reference
"""

from __future__ import annotations

import copy
from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from typing import Any

from resolvespine.core.errors import PathError
from resolvespine.document.paths import ROOT, Path, format_path, parse_path

# ── Call marker convention ───────────────────────────────────────────────
DO_KEY = "$do"
PROVIDER_KEY = "$provider"
PARAMS_KEY = "$params"
RETURNS_KEY = "$returns"
PRIORITY_KEY = "$priority"

# ── Compile directives ───────────────────────────────────────────────────
IMPORTS_KEY = "$imports"
REF_KEY = "$ref"
DEFINITION_PREFIX = "#"


def is_definition(key: Any) -> bool:
    return isinstance(key, str) and key.startswith(DEFINITION_PREFIX)


def is_hidden(key: Any) -> bool:
    """Fields the walk and concrete exports never show."""
    return is_definition(key) or key == IMPORTS_KEY


@dataclass(frozen=True)
class Node:
    """A visited position of a document: its path and (shared) value.

    ``value`` is the document's own object and must not be mutated; use
    ``data()`` for a private copy.
    """

    path: Path
    value: Any

    @property
    def path_str(self) -> str:
        return format_path(self.path)

    def data(self) -> Any:
        return copy.deepcopy(self.value)


def is_call_marker(value: Any) -> bool:
    """A mapping carrying a non-empty string ``$do`` field."""
    if not isinstance(value, Mapping):
        return False
    fn = value.get(DO_KEY)
    return isinstance(fn, str) and fn != ""


def is_pending_call(value: Any) -> bool:
    """A call marker that has no ``$returns`` field yet."""
    return is_call_marker(value) and RETURNS_KEY not in value


def merge(base: Any, overlay: Any) -> Any:
    """Deep-merge ``overlay`` onto ``base`` without mutating either.

    Mappings merge key by key (keys only in ``base`` survive); any other
    overlay value replaces the base value. Untouched sub-trees are shared.
    """
    if isinstance(base, Mapping) and isinstance(overlay, Mapping):
        out = dict(base)
        for key, value in overlay.items():
            out[key] = merge(base[key], value) if key in base else copy.deepcopy(value)
        return out
    return copy.deepcopy(overlay)


class Document:
    """Immutable-per-version configuration tree."""

    __slots__ = ("_root",)

    def __init__(self, data: Any = None):
        self._root = {} if data is None else copy.deepcopy(data)

    @classmethod
    def _wrap(cls, root: Any) -> Document:
        doc = cls.__new__(cls)
        doc._root = root
        return doc

    # ── Lookup ───────────────────────────────────────────────────────────

    def _get(self, path: Path) -> Any:
        cur = self._root
        for i, seg in enumerate(path):
            if isinstance(seg, int):
                if not isinstance(cur, list) or not -len(cur) <= seg < len(cur):
                    raise PathError(f"path {format_path(path[: i + 1])} not found", path=format_path(path))
                cur = cur[seg]
            else:
                if not isinstance(cur, Mapping) or seg not in cur:
                    raise PathError(f"path {format_path(path[: i + 1])} not found", path=format_path(path))
                cur = cur[seg]
        return cur

    def lookup(self, path: str | Path = ROOT) -> Any:
        """Deep copy of the value at ``path``.

        Raises:
            PathError: when the path does not exist
        """
        return copy.deepcopy(self._get(parse_path(path)))

    def exists(self, path: str | Path) -> bool:
        try:
            self._get(parse_path(path))
        except PathError:
            return False
        return True

    def node(self, path: str | Path = ROOT) -> Node:
        p = parse_path(path)
        return Node(p, self._get(p))

    # ── Fill ─────────────────────────────────────────────────────────────

    def fill(self, path: str | Path, value: Any) -> Document:
        """Return a new version with ``value`` overlaid at ``path``."""
        p = parse_path(path)
        return Document._wrap(self._fill(self._root, p, 0, value))

    def _fill(self, cur: Any, path: Path, depth: int, value: Any) -> Any:
        if depth == len(path):
            return merge(cur, value) if cur is not None else copy.deepcopy(value)
        seg = path[depth]
        if isinstance(seg, int):
            if not isinstance(cur, list) or not -len(cur) <= seg < len(cur):
                raise PathError(
                    f"cannot fill {format_path(path)}: index {seg} out of range",
                    path=format_path(path),
                )
            out = list(cur)
            out[seg] = self._fill(cur[seg], path, depth + 1, value)
            return out
        if cur is None:
            cur = {}
        if not isinstance(cur, Mapping):
            raise PathError(
                f"cannot fill {format_path(path)}: {format_path(path[:depth]) or '<root>'} is not a struct",
                path=format_path(path),
            )
        out = dict(cur)
        out[seg] = self._fill(cur.get(seg), path, depth + 1, value)
        return out

    # ── Walk / export ────────────────────────────────────────────────────

    def walk(self) -> Iterator[Node]:
        """Ordered post-order walk; see :func:`resolvespine.document.walk.iterate`."""
        from resolvespine.document.walk import iterate

        return iterate(self._root)

    def to_data(self, include_definitions: bool = False) -> Any:
        """Plain deep copy; definitions and ``$imports`` dropped by default."""
        if include_definitions:
            return copy.deepcopy(self._root)
        return strip_hidden(self._root)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Document):
            return self._root == other._root
        return NotImplemented

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return f"Document({self._root!r})"


def strip_hidden(value: Any) -> Any:
    if isinstance(value, Mapping):
        return {k: strip_hidden(v) for k, v in value.items() if not is_hidden(k)}
    if isinstance(value, list):
        return [strip_hidden(v) for v in value]
    return copy.deepcopy(value)


__all__ = [
    "DO_KEY",
    "PROVIDER_KEY",
    "PARAMS_KEY",
    "RETURNS_KEY",
    "PRIORITY_KEY",
    "IMPORTS_KEY",
    "REF_KEY",
    "DEFINITION_PREFIX",
    "Document",
    "Node",
    "merge",
    "is_call_marker",
    "is_pending_call",
    "is_definition",
    "is_hidden",
    "strip_hidden",
]
