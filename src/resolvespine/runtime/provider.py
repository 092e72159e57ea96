"""
Provider abstraction: one ``call`` contract, three variants.

Manifesto:
    The resolver must not care how a function is implemented. Every provider
    function exposes ``call(ctx, value) -> value``: it receives a private
    copy of the call-marker node and returns the data to fill back at the
    marker's path. Whether that happens through a typed pydantic handler, a
    structural function or an HTTP round-trip stays behind the boundary.

Architecture:
    ::

        ┌──────────────────────────────────────────────────────────┐
        │                    ProviderFn (Protocol)                  │
        │                 call(ctx, value) -> value                 │
        ├──────────────────┬──────────────────┬────────────────────┤
        │ LocalProviderFn  │ NativeProviderFn │ RemoteProviderFn   │
        │ JSON → In model  │ fn(ctx, value)   │ POST $params       │
        │ handler(ctx, In) │ reads $params    │ fill $returns      │
        │ Out → overlay    │ writes $returns  │ (runtime.remote)   │
        └──────────────────┴──────────────────┴────────────────────┘

Features:
    - **LocalProviderFn.from_handler:** infer In/Out models from type hints
    - **Params[T] / Returns[T]:** generic models for the ``$params`` and
      ``$returns`` calling convention
    - **Provider / Package protocols:** name → function lookup plus the
      templates a package contributes to compilation

Examples:
    >>> class In(Params[str]): ...
    >>> class Out(Returns[str]): ...
    >>> fn = LocalProviderFn(lambda ctx, i: Out(returns=i.params.upper()), In, Out)
    >>> fn.call(CallContext.background(), {"$params": "hi"})
    {'$returns': 'HI'}

Tags:
    provider, dispatch, pydantic, protocol, resolve-spine

Doc-Types:
    - API Reference
"""

from __future__ import annotations

import inspect
import json
from collections.abc import Callable
from typing import TYPE_CHECKING, Any, Generic, Protocol, TypeVar, get_type_hints, runtime_checkable

from pydantic import BaseModel, ConfigDict, Field

from resolvespine.core.context import CallContext

if TYPE_CHECKING:
    from resolvespine.document.compiler import TemplateDocument

T = TypeVar("T")
InT = TypeVar("InT", bound=BaseModel)
OutT = TypeVar("OutT", bound=BaseModel)


# =============================================================================
# Calling convention models
# =============================================================================


class Params(BaseModel, Generic[T]):
    """Input model reading the ``$params`` field of a call marker."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    params: T = Field(alias="$params")


class Returns(BaseModel, Generic[T]):
    """Output model writing the ``$returns`` field of a call marker."""

    model_config = ConfigDict(populate_by_name=True)

    returns: T = Field(alias="$returns")


# =============================================================================
# Protocols
# =============================================================================


@runtime_checkable
class ProviderFn(Protocol):
    """A callable provider function."""

    def call(self, ctx: CallContext, value: Any) -> Any:
        """Return the data to fill at the call marker's path."""
        ...


@runtime_checkable
class Provider(Protocol):
    """A named capability exposing provider functions."""

    @property
    def name(self) -> str: ...

    def get_provider_fn(self, do: str) -> ProviderFn | None: ...


@runtime_checkable
class Package(Provider, Protocol):
    """A provider that also contributes templates under a mount path."""

    @property
    def path(self) -> str: ...

    @property
    def templates(self) -> dict[str, str]: ...

    def get_imports(self) -> list[TemplateDocument]: ...


# =============================================================================
# Local (typed) provider functions
# =============================================================================


def infer_handler_types(handler: Callable[..., Any]) -> tuple[type[BaseModel], type[BaseModel]]:
    """Input and output models of a ``(ctx, In) -> Out`` handler."""
    hints = get_type_hints(handler)
    params = [p for p in inspect.signature(handler).parameters.values() if p.name != "self"]
    if len(params) != 2:
        raise TypeError(f"handler {handler!r} must accept (ctx, input)")
    in_type = hints.get(params[1].name)
    out_type = hints.get("return")
    for label, tp in (("input", in_type), ("output", out_type)):
        if not (inspect.isclass(tp) and issubclass(tp, BaseModel)):
            raise TypeError(f"handler {handler!r} {label} type must be a pydantic model, got {tp!r}")
    return in_type, out_type


class LocalProviderFn(Generic[InT, OutT]):
    """
    Typed in-process provider function.

    The marker node is serialized to JSON and validated into ``input_type``;
    a ``ValidationError`` is raised without invoking the handler. The handler
    result is dumped by alias (``None`` fields omitted) and overlaid on the
    node by the resolver.
    """

    def __init__(
        self,
        handler: Callable[[CallContext, InT], OutT],
        input_type: type[InT],
        output_type: type[OutT],
    ):
        self.handler = handler
        self.input_type = input_type
        self.output_type = output_type

    @classmethod
    def from_handler(cls, handler: Callable[[CallContext, Any], Any]) -> LocalProviderFn:
        in_type, out_type = infer_handler_types(handler)
        return cls(handler, in_type, out_type)

    def call(self, ctx: CallContext, value: Any) -> Any:
        params = self.input_type.model_validate_json(json.dumps(value))
        result = self.handler(ctx, params)
        if not isinstance(result, self.output_type):
            result = self.output_type.model_validate(result)
        return result.model_dump(mode="json", by_alias=True, exclude_none=True)

    def __repr__(self) -> str:
        return f"LocalProviderFn({getattr(self.handler, '__name__', self.handler)!r})"


# =============================================================================
# Native (structural) provider functions
# =============================================================================


class NativeProviderFn:
    """Structural provider function: ``fn(ctx, value) -> value``.

    ``fn`` sees the whole marker node (including sibling fields) and is
    expected to return at least the ``$returns`` field.
    """

    def __init__(self, fn: Callable[[CallContext, Any], Any]):
        self.fn = fn

    def call(self, ctx: CallContext, value: Any) -> Any:
        return self.fn(ctx, value)

    def __repr__(self) -> str:
        return f"NativeProviderFn({getattr(self.fn, '__name__', self.fn)!r})"


__all__ = [
    "Params",
    "Returns",
    "ProviderFn",
    "Provider",
    "Package",
    "LocalProviderFn",
    "NativeProviderFn",
    "infer_handler_types",
]
