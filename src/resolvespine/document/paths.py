"""Document paths: tuples of keys and list indexes, and their textual form.

Textual form uses dotted keys and bracketed indexes::

    x.items[0].name
    metadata."app.kubernetes.io/name"

The root path is the empty tuple, written as the empty string.
"""

from __future__ import annotations

import json
import re
from typing import Union

from resolvespine.core.errors import PathError

Segment = Union[str, int]
Path = tuple[Segment, ...]

ROOT: Path = ()

_PLAIN_KEY = re.compile(r"[A-Za-z0-9_$#\-]+")


def format_segment(key: str) -> str:
    if _PLAIN_KEY.fullmatch(key):
        return key
    return json.dumps(key, ensure_ascii=False)


def format_path(path: Path) -> str:
    """Render a path tuple as text (``()`` → ``""``)."""
    out: list[str] = []
    for seg in path:
        if isinstance(seg, int):
            out.append(f"[{seg}]")
        else:
            if out:
                out.append(".")
            out.append(format_segment(seg))
    return "".join(out)


def parse_path(text: str | Path) -> Path:
    """Parse the textual form back into a path tuple.

    Tuples are passed through, so callers may accept either form.

    Raises:
        PathError: on malformed input
    """
    if isinstance(text, tuple):
        return text
    text = text.strip()
    segments: list[Segment] = []
    i, n = 0, len(text)
    expect_key = True

    while i < n:
        ch = text[i]
        if ch == "[":
            end = text.find("]", i)
            if end == -1:
                raise PathError(f"unterminated index in path {text!r}", path=text)
            raw = text[i + 1 : end]
            if not raw.isdigit():
                raise PathError(f"invalid list index {raw!r} in path {text!r}", path=text)
            segments.append(int(raw))
            i = end + 1
            expect_key = False
        elif ch == ".":
            if expect_key:
                raise PathError(f"empty key in path {text!r}", path=text)
            i += 1
            expect_key = True
            if i == n:
                raise PathError(f"trailing dot in path {text!r}", path=text)
        elif not expect_key:
            raise PathError(f"unexpected {ch!r} at offset {i} in path {text!r}", path=text)
        elif ch == '"':
            j = i + 1
            while j < n and text[j] != '"':
                j += 2 if text[j] == "\\" else 1
            if j >= n:
                raise PathError(f"unterminated quoted key in path {text!r}", path=text)
            try:
                segments.append(json.loads(text[i : j + 1]))
            except json.JSONDecodeError as e:
                raise PathError(f"invalid quoted key in path {text!r}: {e}", path=text) from e
            i = j + 1
            expect_key = False
        else:
            m = _PLAIN_KEY.match(text, i)
            if m is None:
                raise PathError(f"unexpected {ch!r} at offset {i} in path {text!r}", path=text)
            segments.append(m.group(0))
            i = m.end()
            expect_key = False

    return tuple(segments)


__all__ = ["Segment", "Path", "ROOT", "format_path", "format_segment", "parse_path"]
