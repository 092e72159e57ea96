"""
Ordered walk over a document tree.

The walk is the only traversal the resolver uses to find the next pending
call, so its order *is* the dispatch order:

- **Post-order:** children are yielded before their parent, so nested calls
  resolve before the enclosing node is considered settled. The root (path
  ``""``) comes last.
- **Priority first:** siblings whose value is a mapping carrying a numeric
  ``$priority`` are visited first, in ascending priority (ties keep
  declaration order).
- **Declaration order otherwise:** unannotated siblings follow, in the order
  they were declared.
- **Hidden fields skipped:** definitions (``#`` keys) and ``$imports``.

Example::

    a: {$priority: 2}
    x: "x"
    b:
      $priority: 1
      c: {$priority: 1}
      d: {$priority: 2}

visits ``b.c, b.d, b.$priority, b, a.$priority, a, x, <root>``.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from numbers import Real
from typing import Any

from resolvespine.document.document import PRIORITY_KEY, Node, is_hidden
from resolvespine.document.paths import ROOT, Path, Segment


def priority_of(value: Any) -> float | None:
    """The ``$priority`` annotation of a value, or None."""
    if not isinstance(value, Mapping):
        return None
    p = value.get(PRIORITY_KEY)
    if isinstance(p, bool) or not isinstance(p, Real):
        return None
    return float(p)


def ordered_children(value: Any) -> list[tuple[Segment, Any]]:
    """Children of a mapping or list in walk order."""
    if isinstance(value, Mapping):
        children: list[tuple[Segment, Any]] = [(k, v) for k, v in value.items() if not is_hidden(k)]
    elif isinstance(value, list):
        children = list(enumerate(value))
    else:
        return []

    annotated: list[tuple[float, int, tuple[Segment, Any]]] = []
    plain: list[tuple[Segment, Any]] = []
    for idx, child in enumerate(children):
        p = priority_of(child[1])
        if p is None:
            plain.append(child)
        else:
            annotated.append((p, idx, child))
    annotated.sort(key=lambda t: (t[0], t[1]))
    return [c for _, _, c in annotated] + plain


def iterate(root: Any, path: Path = ROOT) -> Iterator[Node]:
    """Yield every visible node of ``root`` in walk order.

    Stop early by breaking out of the loop; the generator holds no resources.
    """
    for seg, child in ordered_children(root):
        yield from iterate(child, path + (seg,))
    yield Node(path, root)


__all__ = ["iterate", "ordered_children", "priority_of"]
