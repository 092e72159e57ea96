"""
Compile source text into a :class:`Document`.

Sources are YAML (JSON is a subset). On top of plain data the compiler
understands two directives, enough to let documents use the templates that
provider packages ship:

``$imports``
    Top-level list of package mount paths (alias = last path segment) or a
    mapping ``alias -> mount path``.

``$ref``
    On any mapping: ``"<alias>.#Definition"`` pulls a definition out of an
    imported template, ``"#Definition"`` refers to a top-level definition
    of the same document. The definition is expanded recursively and the
    node's own fields are unified on top of it.

Unification is deliberately small: mappings merge key by key, ``null`` means
"unset", equal values agree and anything else is a conflict reported as a
:class:`CompileError`.

Example::

    $imports: [spine/base64]
    enc:
      $ref: base64.#Encode
      $params: example
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

import yaml

from resolvespine.core.errors import CompileError, PathError
from resolvespine.document.document import IMPORTS_KEY, REF_KEY, Document, is_definition
from resolvespine.document.paths import Path, format_path, parse_path


@dataclass(frozen=True)
class TemplateDocument:
    """Definitions exported by one package under its mount path."""

    mount_path: str
    definitions: dict[str, Any] = field(default_factory=dict)

    @property
    def name(self) -> str:
        return self.mount_path.rstrip("/").rsplit("/", 1)[-1]


_TIMESTAMP_TAG = "tag:yaml.org,2002:timestamp"


def _key_text(key: Any) -> str:
    if isinstance(key, bool):
        return "true" if key else "false"
    if key is None:
        return "null"
    return str(key)


class SourceLoader(yaml.SafeLoader):
    """SafeLoader restricted to the JSON data model.

    Mapping keys are always strings (``on:`` is ``"true"``, ``1:`` is ``"1"``)
    and timestamps stay plain strings.
    """

    yaml_implicit_resolvers = {
        first: [(tag, regexp) for tag, regexp in resolvers if tag != _TIMESTAMP_TAG]
        for first, resolvers in yaml.SafeLoader.yaml_implicit_resolvers.items()
    }

    def construct_mapping(self, node: yaml.MappingNode, deep: bool = False) -> dict[str, Any]:
        mapping: dict[str, Any] = {}
        for key, value in super().construct_mapping(node, deep=deep).items():
            text = _key_text(key)
            if text in mapping:
                raise yaml.constructor.ConstructorError(
                    "while constructing a mapping", node.start_mark, f"duplicate key {text!r}", node.start_mark
                )
            mapping[text] = value
        return mapping


SourceLoader.add_constructor(_TIMESTAMP_TAG, SourceLoader.construct_yaml_str)


def load_yaml(text: str, *, filename: str = "-") -> Any:
    """Parse YAML text, mapping parser errors onto :class:`CompileError`."""
    try:
        return yaml.load(text, Loader=SourceLoader)
    except yaml.MarkedYAMLError as e:
        mark = e.problem_mark
        raise CompileError(
            f"{filename}: {e.problem or e.context or 'invalid syntax'}",
            line=mark.line + 1 if mark else None,
            column=mark.column + 1 if mark else None,
            cause=e,
        ) from e
    except yaml.YAMLError as e:
        raise CompileError(f"{filename}: {e}", cause=e) from e


def build_template(mount_path: str, templates: Mapping[str, str]) -> TemplateDocument:
    """Build the template document of a package from ``filename -> text``.

    Only top-level definitions (``#`` keys) are exported.
    """
    definitions: dict[str, Any] = {}
    for filename in sorted(templates):
        data = load_yaml(templates[filename] or "", filename=filename)
        if data is None:
            continue
        if not isinstance(data, Mapping):
            raise CompileError(f"{mount_path}/{filename}: template must be a mapping")
        for key, value in data.items():
            if not is_definition(key):
                continue
            if key in definitions:
                raise CompileError(f"{mount_path}: definition {key} declared more than once")
            definitions[key] = value
    return TemplateDocument(mount_path=mount_path, definitions=definitions)


def _parse_imports(raw: Any, available: Mapping[str, TemplateDocument]) -> dict[str, TemplateDocument]:
    if raw is None:
        return {}
    if isinstance(raw, str):
        raw = [raw]
    if isinstance(raw, list):
        pairs = []
        for item in raw:
            if not isinstance(item, str) or not item:
                raise CompileError(f"invalid import {item!r}")
            pairs.append((item.rstrip("/").rsplit("/", 1)[-1], item))
    elif isinstance(raw, Mapping):
        pairs = [(str(alias), mount) for alias, mount in raw.items()]
    else:
        raise CompileError(f"{IMPORTS_KEY} must be a list or a mapping")

    out: dict[str, TemplateDocument] = {}
    for alias, mount in pairs:
        if alias in out:
            raise CompileError(f"duplicate import alias {alias}")
        if mount not in available:
            raise CompileError(f"import {mount} not found")
        out[alias] = available[mount]
    return out


class _Expander:
    """Expands ``$ref`` directives of one compile call."""

    def __init__(self, local: Mapping[str, Any], imports: Mapping[str, TemplateDocument]):
        self._local = local
        self._imports = imports

    def _resolve(self, ref: Any, scope: str | None, at: Path) -> tuple[Any, str | None, str]:
        if not isinstance(ref, str) or not ref:
            raise CompileError(f"invalid {REF_KEY} {ref!r} at {format_path(at) or '<root>'}")
        if ref.startswith("#"):
            alias, rest = scope, ref
        else:
            alias, _, rest = ref.partition(".")
            if alias not in self._imports:
                raise CompileError(f"reference {ref}: package {alias} is not imported")
        defs = self._local if alias is None else self._imports[alias].definitions
        try:
            segments = parse_path(rest)
        except PathError as e:
            raise CompileError(f"invalid reference {ref}: {e}") from e
        if not segments or not is_definition(segments[0]):
            raise CompileError(f"reference {ref} must name a definition")
        cur: Any = defs
        for seg in segments:
            if isinstance(seg, int):
                ok = isinstance(cur, list) and 0 <= seg < len(cur)
            else:
                ok = isinstance(cur, Mapping) and seg in cur
            if not ok:
                raise CompileError(f"reference {ref} not found")
            cur = cur[seg]
        key = f"{alias or ''}:{rest}"
        return cur, alias, key

    def expand(self, value: Any, scope: str | None, at: Path, stack: tuple[str, ...] = ()) -> Any:
        if isinstance(value, Mapping):
            body: dict[Any, Any] = {}
            for k, v in value.items():
                if k == REF_KEY:
                    continue
                # definitions stay as written; they are expanded where referenced
                body[k] = v if is_definition(k) and not stack else self.expand(v, scope, at + (k,), stack)
            if REF_KEY not in value:
                return body
            target, target_scope, key = self._resolve(value[REF_KEY], scope, at)
            if key in stack:
                raise CompileError(f"reference cycle: {' -> '.join(stack + (key,))}")
            base = self.expand(target, target_scope, at, stack + (key,))
            return unify(base, body, at)
        if isinstance(value, list):
            return [self.expand(v, scope, at + (i,), stack) for i, v in enumerate(value)]
        return value


def unify(base: Any, overlay: Any, at: Path = ()) -> Any:
    """Combine two values; conflicting concrete values raise CompileError."""
    if base is None:
        return overlay
    if overlay is None:
        return base
    if isinstance(base, Mapping) and isinstance(overlay, Mapping):
        out = dict(base)
        for k, v in overlay.items():
            out[k] = unify(base[k], v, at + (k,)) if k in base else v
        return out
    if isinstance(base, list) and isinstance(overlay, list) and len(base) == len(overlay):
        return [unify(b, o, at + (i,)) for i, (b, o) in enumerate(zip(base, overlay))]
    if base == overlay and type(base) is type(overlay):
        return overlay
    raise CompileError(f"conflicting values {base!r} and {overlay!r} at {format_path(at) or '<root>'}")


def compile_source(
    text: str,
    imports: Mapping[str, TemplateDocument] | Iterable[TemplateDocument] = (),
) -> Document:
    """Compile YAML source into a document, expanding imports and references.

    Args:
        text: source text
        imports: available templates, keyed by mount path or as an iterable

    Raises:
        CompileError: invalid YAML, unknown import, unknown reference,
            reference cycle or conflicting values
    """
    if not isinstance(imports, Mapping):
        imports = {t.mount_path: t for t in imports}

    data = load_yaml(text)
    if data is None:
        data = {}
    if not isinstance(data, Mapping):
        raise CompileError(f"document must be a mapping, got {type(data).__name__}")

    resolved = _parse_imports(data.get(IMPORTS_KEY), imports)
    local = {k: v for k, v in data.items() if is_definition(k)}
    return Document(_Expander(local, resolved).expand(data, None, ()))


__all__ = ["SourceLoader", "TemplateDocument", "build_template", "compile_source", "load_yaml", "unify"]
