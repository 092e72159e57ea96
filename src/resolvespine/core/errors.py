"""
Structured error types for resolve-spine.

Every failure the engine can surface is a ``ResolveSpineError`` carrying a
category, a free-form context mapping and an optional chained cause. The
hierarchy mirrors the three layers of the engine:

Architecture:
    ::

        ┌──────────────────────────────────────────────────────────────┐
        │                      ResolveSpineError                        │
        │             (category, context, cause, to_dict)               │
        ├──────────────────────────────────────────────────────────────┤
        │                                                               │
        │  CompileError          ResolutionError        ProviderError   │
        │  (COMPILE)             (RESOLVE, .document)   (PROVIDER)      │
        │      │                      │                      │          │
        │  PathError          ProviderNotFoundError   UnsupportedProtocolError
        │                     ProviderFunctionNotFoundError              │
        │                     FunctionCallError       RemoteCallError   │
        │                     ResolveTimeoutError                       │
        │                                                               │
        │  CatalogError (CATALOG)                                       │
        └──────────────────────────────────────────────────────────────┘

Resolution errors are terminal for a single ``Resolver.resolve`` call. They
always carry the partially resolved document (``err.document``) so callers
can inspect how far the fixpoint loop got before it stopped. The engine never
retries; re-invoking ``resolve`` is the caller's decision.

Examples:
    >>> err = ProviderNotFoundError("unknown")
    >>> str(err)
    'provider unknown not found'
    >>> err.to_dict()["category"]
    'RESOLVE'

Tags:
    error-handling, exception-hierarchy, resolve-spine

Doc-Types:
    - API Reference
    - Error Handling Guide
"""

from __future__ import annotations

from enum import Enum
from functools import cached_property
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from resolvespine.document import Document


class ErrorCategory(str, Enum):
    """Error categories used for classification, logging and HTTP mapping."""

    COMPILE = "COMPILE"  # source text or template invalid
    RESOLVE = "RESOLVE"  # fixpoint loop failures
    PROVIDER = "PROVIDER"  # dispatch / transport failures
    CATALOG = "CATALOG"  # external package catalog failures
    CONFIG = "CONFIG"
    INTERNAL = "INTERNAL"


class ResolveSpineError(Exception):
    """
    Base exception for all resolve-spine errors.

    Subclasses set ``default_category``; instances carry:

    - **message:** human readable description
    - **category:** ``ErrorCategory`` used for routing and HTTP status mapping
    - **context:** structured metadata (path, provider, function, ...)
    - **cause:** chained underlying exception (also set as ``__cause__``)
    """

    default_category: ErrorCategory = ErrorCategory.INTERNAL

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        context: dict[str, Any] | None = None,
        cause: BaseException | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.context: dict[str, Any] = dict(context or {})
        self.cause = cause

        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> ResolveSpineError:
        """Add context to this error (fluent API)."""
        self.context.update(kwargs)
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        result: dict[str, Any] = {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "category": self.category.value,
        }
        if self.context:
            result["context"] = dict(self.context)
        if self.cause is not None:
            result["cause"] = str(self.cause)
        return result

    def __str__(self) -> str:
        return self.message

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, category={self.category.value})"


# =============================================================================
# COMPILE ERRORS
# =============================================================================


class CompileError(ResolveSpineError):
    """Source text, template or import could not be compiled into a document."""

    default_category = ErrorCategory.COMPILE

    def __init__(
        self,
        message: str,
        *,
        line: int | None = None,
        column: int | None = None,
        cause: BaseException | None = None,
    ):
        if line is not None:
            location = f"line {line}" if column is None else f"line {line}, column {column}"
            message = f"{message} ({location})"
        super().__init__(message, cause=cause)
        self.line = line
        self.column = column
        if line is not None:
            self.context["line"] = line
        if column is not None:
            self.context["column"] = column


class PathError(CompileError):
    """A document path is malformed or does not exist."""

    def __init__(self, message: str, *, path: str | None = None):
        super().__init__(message)
        self.path = path
        if path is not None:
            self.context["path"] = path


# =============================================================================
# RESOLUTION ERRORS (terminal for one resolve call)
# =============================================================================


class ResolutionError(ResolveSpineError):
    """
    Base for errors raised by the resolver's fixpoint loop.

    ``document`` holds the last successfully filled document version. The
    resolver attaches it before raising; it is ``None`` only for errors
    constructed outside of a resolve call.
    """

    default_category = ErrorCategory.RESOLVE

    def __init__(self, message: str, *, document: Document | None = None, **kwargs: Any):
        super().__init__(message, **kwargs)
        self.document = document


class ProviderNotFoundError(ResolutionError):
    """The call marker names a provider that is not registered."""

    def __init__(self, name: str, *, document: Document | None = None):
        super().__init__(f"provider {name} not found", document=document, context={"provider": name})
        self.name = name

    def __eq__(self, other: object) -> bool:
        return isinstance(other, ProviderNotFoundError) and other.name == self.name

    __hash__ = ResolutionError.__hash__


class ProviderFunctionNotFoundError(ResolutionError):
    """The provider exists but does not expose the requested function."""

    def __init__(self, provider: str, fn: str, *, document: Document | None = None):
        super().__init__(
            f"function {fn} not found in provider {provider}",
            document=document,
            context={"provider": provider, "function": fn},
        )
        self.provider = provider
        self.fn = fn

    def __eq__(self, other: object) -> bool:
        return (
            isinstance(other, ProviderFunctionNotFoundError)
            and other.provider == self.provider
            and other.fn == self.fn
        )

    __hash__ = ResolutionError.__hash__


class FunctionCallError(ResolutionError):
    """
    A provider function failed.

    ``path`` is the textual path of the call marker. ``value`` is a textual
    snapshot of the marker node, rendered lazily on first access so the
    happy path never pays for printing.
    """

    def __init__(
        self,
        path: str,
        node: Any,
        cause: BaseException,
        *,
        document: Document | None = None,
    ):
        super().__init__(
            f"function call error for {path or '<root>'}: {cause}",
            document=document,
            context={"path": path},
            cause=cause,
        )
        self.path = path
        self.node = node

    @cached_property
    def value(self) -> str:
        from resolvespine.document.printer import to_native_string

        try:
            return to_native_string(self.node)
        except Exception as e:  # noqa: BLE001
            return f"<unprintable value: {e}>"

    def __str__(self) -> str:
        return f"{self.message} (value: {self.value})"


class ResolveTimeoutError(ResolutionError):
    """The caller's deadline elapsed before the next dispatch."""

    def __init__(self, *, document: Document | None = None):
        super().__init__("resolve timeout", document=document)


# =============================================================================
# PROVIDER / DISPATCH ERRORS
# =============================================================================


class ProviderError(ResolveSpineError):
    """A provider function could not be dispatched or its result decoded."""

    default_category = ErrorCategory.PROVIDER


class UnsupportedProtocolError(ProviderError):
    """A remote provider declares a protocol this engine cannot dial."""

    def __init__(self, protocol: str):
        super().__init__(f"protocol {protocol} not supported yet", context={"protocol": protocol})
        self.protocol = protocol


class RemoteCallError(ProviderError):
    """Transport failure, non-2xx status or undecodable body from a remote provider."""

    def __init__(
        self,
        message: str,
        *,
        endpoint: str | None = None,
        status_code: int | None = None,
        cause: BaseException | None = None,
    ):
        super().__init__(message, cause=cause)
        self.endpoint = endpoint
        self.status_code = status_code
        if endpoint is not None:
            self.context["endpoint"] = endpoint
        if status_code is not None:
            self.context["status_code"] = status_code


# =============================================================================
# CATALOG ERRORS
# =============================================================================


class CatalogError(ResolveSpineError):
    """The external package catalog could not be listed or decoded."""

    default_category = ErrorCategory.CATALOG


def is_resolution_error(error: BaseException) -> bool:
    """Check whether an exception was raised by the resolver loop."""
    return isinstance(error, ResolutionError)


__all__ = [
    "ErrorCategory",
    "ResolveSpineError",
    "CompileError",
    "PathError",
    "ResolutionError",
    "ProviderNotFoundError",
    "ProviderFunctionNotFoundError",
    "FunctionCallError",
    "ResolveTimeoutError",
    "ProviderError",
    "UnsupportedProtocolError",
    "RemoteCallError",
    "CatalogError",
    "is_resolution_error",
]
