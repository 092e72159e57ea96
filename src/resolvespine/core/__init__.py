"""Core primitives: errors, logging, settings, call context, concurrent map."""

from resolvespine.core.context import CallContext
from resolvespine.core.errors import (
    CatalogError,
    CompileError,
    ErrorCategory,
    FunctionCallError,
    PathError,
    ProviderError,
    ProviderFunctionNotFoundError,
    ProviderNotFoundError,
    RemoteCallError,
    ResolutionError,
    ResolveSpineError,
    ResolveTimeoutError,
    UnsupportedProtocolError,
    is_resolution_error,
)
from resolvespine.core.logging import configure_logging, get_logger
from resolvespine.core.settings import ResolverSettings, get_settings
from resolvespine.core.syncmap import SyncMap

__all__ = [
    "CallContext",
    "SyncMap",
    "ResolverSettings",
    "get_settings",
    "configure_logging",
    "get_logger",
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
