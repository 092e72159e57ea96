"""Render documents as JSON, YAML or the native textual form."""

from __future__ import annotations

import json
from enum import Enum
from typing import Any

import yaml

from resolvespine.document.document import Document, strip_hidden
from resolvespine.document.paths import Path


class OutputFormat(str, Enum):
    JSON = "json"
    YAML = "yaml"
    NATIVE = "native"


def _dump_yaml(data: Any) -> str:
    return yaml.safe_dump(data, sort_keys=False, allow_unicode=True, default_flow_style=False)


def to_native_string(value: Any) -> str:
    """Native textual form of a plain value (used for diagnostic snapshots)."""
    if isinstance(value, Document):
        value = value.to_data(include_definitions=True)
    text = _dump_yaml(value)
    # plain scalars get an explicit document end marker
    if text.endswith("\n...\n"):
        text = text[: -len("...\n")]
    return text.rstrip("\n")


def print_document(doc: Document, fmt: OutputFormat | str = OutputFormat.JSON, path: str | Path | None = None) -> str:
    """Encode ``doc`` (or the sub-tree at ``path``) in the requested format.

    ``json`` and ``yaml`` carry concrete data only; ``native`` keeps
    definitions and ``$imports`` so the output compiles back.

    Raises:
        PathError: when ``path`` does not exist
    """
    fmt = OutputFormat(fmt)
    value = doc.lookup(path) if path else doc.to_data(include_definitions=True)

    if fmt is OutputFormat.NATIVE:
        return _dump_yaml(value)
    data = strip_hidden(value)
    if fmt is OutputFormat.YAML:
        return _dump_yaml(data)
    return json.dumps(data, ensure_ascii=False)


__all__ = ["OutputFormat", "print_document", "to_native_string"]
