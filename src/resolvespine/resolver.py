"""
Resolver and compiler: the provider-call fixpoint loop.

Manifesto:
    A document is resolved by repeating one small step until nothing is
    left to do: find the first pending call in walk order, dispatch it, fill
    the result back. The walk is re-run from scratch after every dispatch,
    so calls revealed by an earlier result are always found and the
    priority order holds across passes.

Architecture:
    ::

        Compiler.compile_source(ctx, text, *options)
            │
            ├── compile_source(text, manager.get_imports())
            ├── pre-resolve mutators (with_extra_data, ...)
            └── Resolver.resolve(ctx, document)      unless disabled
                    │
                    ▼
            ┌───────────────────────────────────────────────────────┐
            │ providers = manager.get_providers()    (one snapshot) │
            │ loop:                                                 │
            │   ctx.expired()          → ResolveTimeoutError        │
            │   next pending marker    → none: done                 │
            │   providers[$provider]   → ProviderNotFoundError      │
            │   .get_provider_fn($do)  → ProviderFunctionNotFound   │
            │   fn.call(ctx, node)     → FunctionCallError          │
            │   document.fill(path, result); executed.add(path)     │
            └───────────────────────────────────────────────────────┘

    Dispatch is strictly sequential. Every error is terminal for the call
    and carries the last good document as ``err.document``; nothing is
    retried.

Features:
    - **Resolver:** fixpoint loop with deadline and at-most-once dispatch
      per path
    - **Compiler:** compile + mutate + resolve with composable options
    - **get_default_compiler():** process-wide compiler built from settings

Examples:
    >>> compiler = new_compiler_with_default_internal_packages()
    >>> doc = compiler.compile_source(CallContext.background(), '''
    ... x: {$do: encode, $provider: base64, $params: example}
    ... ''')
    >>> doc.lookup("x.$returns")
    'ZXhhbXBsZQ=='

Tags:
    resolver, fixpoint, compiler, dispatch, resolve-spine

Doc-Types:
    - API Reference
    - Architecture Documentation
"""

from __future__ import annotations

import json
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Any, Protocol

import httpx
from pydantic import BaseModel

from resolvespine.core.context import CallContext
from resolvespine.core.errors import (
    FunctionCallError,
    ProviderFunctionNotFoundError,
    ProviderNotFoundError,
    ResolveSpineError,
    ResolveTimeoutError,
)
from resolvespine.core.logging import get_logger
from resolvespine.core.settings import get_settings
from resolvespine.document.compiler import compile_source
from resolvespine.document.document import DO_KEY, PROVIDER_KEY, Document, Node, is_pending_call
from resolvespine.document.paths import Path, parse_path
from resolvespine.runtime.catalog import DirectoryCatalog, PackageCatalog
from resolvespine.runtime.manager import DEFAULT_RESYNC_PERIOD, PackageManager
from resolvespine.runtime.provider import Package

logger = get_logger(__name__)

Mutator = Callable[[CallContext, Document], Document]


def next_pending_call(document: Document, executed: set[Path]) -> Node | None:
    """First pending call marker in walk order whose path was not executed."""
    for node in document.walk():
        if node.path not in executed and is_pending_call(node.value):
            return node
    return None


class Resolver:
    """Runs pending provider calls of a document to a fixpoint."""

    def __init__(self, manager: PackageManager):
        self.manager = manager

    def resolve(self, ctx: CallContext, document: Document) -> Document:
        """Dispatch every pending call and return the resolved document.

        Raises:
            ResolveTimeoutError: the deadline elapsed before a dispatch
            ProviderNotFoundError: ``$provider`` names no registered provider
            ProviderFunctionNotFoundError: the provider lacks ``$do``
            FunctionCallError: a provider function failed
        """
        current = document
        executed: set[Path] = set()
        providers = self.manager.get_providers()

        while True:
            if ctx.expired():
                raise ResolveTimeoutError(document=current)

            node = next_pending_call(current, executed)
            if node is None:
                return current

            value = node.data()
            fn_name = value[DO_KEY]
            provider_name = value.get(PROVIDER_KEY)
            provider_name = provider_name if isinstance(provider_name, str) else ""

            provider = providers.get(provider_name)
            if provider is None:
                raise ProviderNotFoundError(provider_name, document=current)
            fn = provider.get_provider_fn(fn_name)
            if fn is None:
                raise ProviderFunctionNotFoundError(provider_name, fn_name, document=current)

            started = time.perf_counter()
            try:
                result = fn.call(ctx, value)
                current = current.fill(node.path, result)
            except Exception as e:
                logger.debug("provider_call_failed", path=node.path_str, provider=provider_name, function=fn_name)
                raise FunctionCallError(node.path_str, value, e, document=current) from e

            executed.add(node.path)
            logger.debug(
                "provider_call_resolved",
                path=node.path_str,
                provider=provider_name,
                function=fn_name,
                duration_ms=round((time.perf_counter() - started) * 1000, 3),
            )


# =============================================================================
# Compile options
# =============================================================================


@dataclass
class CompileConfig:
    resolve_provider_functions: bool = True
    pre_resolve_mutators: list[Mutator] = field(default_factory=list)


class CompileOption(Protocol):
    def apply_to(self, config: CompileConfig) -> None: ...


def _plain_data(data: Any) -> Any:
    if isinstance(data, BaseModel):
        return data.model_dump(mode="json", by_alias=True, exclude_none=True)
    if isinstance(data, (bytes, bytearray)):
        return json.loads(data)
    return data


@dataclass(frozen=True)
class WithExtraData:
    """Fill ``data`` at ``path`` before resolving."""

    path: str
    data: Any

    def apply_to(self, config: CompileConfig) -> None:
        path, data = parse_path(self.path), _plain_data(self.data)
        config.pre_resolve_mutators.append(lambda _ctx, doc: doc.fill(path, data))


@dataclass(frozen=True)
class WithPreResolveMutator:
    mutator: Mutator

    def apply_to(self, config: CompileConfig) -> None:
        config.pre_resolve_mutators.append(self.mutator)


class DisableResolveProviderFunctions:
    """Compile only; leave pending calls untouched."""

    def apply_to(self, config: CompileConfig) -> None:
        config.resolve_provider_functions = False


DISABLE_RESOLVE_PROVIDER_FUNCTIONS = DisableResolveProviderFunctions()


def with_extra_data(path: str, data: Any) -> WithExtraData:
    return WithExtraData(path, data)


def with_pre_resolve_mutator(mutator: Mutator) -> WithPreResolveMutator:
    return WithPreResolveMutator(mutator)


def new_compile_config(*options: CompileOption) -> CompileConfig:
    config = CompileConfig()
    for option in options:
        option.apply_to(config)
    return config


# =============================================================================
# Compiler
# =============================================================================


class Compiler:
    """Compiles source text against a package manager and resolves it."""

    def __init__(self, manager: PackageManager):
        self.manager = manager
        self.resolver = Resolver(manager)

    def compile_source(self, ctx: CallContext, text: str, *options: CompileOption) -> Document:
        """Compile ``text``, apply mutators, then resolve provider calls.

        Raises:
            CompileError: the source does not compile
            ResolutionError: resolving failed; ``err.document`` holds the
                partially resolved document
        """
        config = new_compile_config(*options)
        document = compile_source(text, self.manager.get_imports())
        for mutator in config.pre_resolve_mutators:
            document = mutator(ctx, document)
        if config.resolve_provider_functions:
            return self.resolver.resolve(ctx, document)
        return document

    def resolve(self, ctx: CallContext, document: Document) -> Document:
        return self.resolver.resolve(ctx, document)


def new_compiler_with_internal_packages(
    *packages: Package,
    catalog: PackageCatalog | None = None,
    resync_period: float = DEFAULT_RESYNC_PERIOD,
    http_client: httpx.Client | None = None,
) -> Compiler:
    manager = PackageManager(packages, catalog=catalog, resync_period=resync_period, http_client=http_client)
    return Compiler(manager)


def new_compiler_with_default_internal_packages(
    catalog: PackageCatalog | None = None,
    resync_period: float = DEFAULT_RESYNC_PERIOD,
    http_client: httpx.Client | None = None,
) -> Compiler:
    """Compiler with the built-in ``base64``, ``http`` and ``patch`` packages."""
    from resolvespine.providers import default_packages

    return new_compiler_with_internal_packages(
        *default_packages(),
        catalog=catalog,
        resync_period=resync_period,
        http_client=http_client,
    )


@lru_cache(maxsize=1)
def get_default_compiler() -> Compiler:
    """Process-wide compiler configured from settings.

    External packages are loaded from ``catalog_dir`` when enabled; a load
    failure is logged and the compiler starts with internal packages only.
    """
    settings = get_settings()
    catalog = None
    if settings.enable_external_packages and settings.catalog_dir is not None:
        catalog = DirectoryCatalog(settings.catalog_dir)

    compiler = new_compiler_with_default_internal_packages(
        catalog=catalog,
        resync_period=settings.resync_period_seconds,
    )
    if catalog is not None:
        try:
            compiler.manager.load_external_packages()
        except ResolveSpineError as e:
            logger.error("default_compiler_external_load_failed", error=str(e))
        if settings.watch_external_packages:
            compiler.manager.start()
    return compiler


def compile_string(ctx: CallContext, text: str, *options: CompileOption) -> Document:
    """Compile with the default compiler."""
    return get_default_compiler().compile_source(ctx, text, *options)


__all__ = [
    "DISABLE_RESOLVE_PROVIDER_FUNCTIONS",
    "CompileConfig",
    "CompileOption",
    "Compiler",
    "Resolver",
    "compile_string",
    "get_default_compiler",
    "new_compile_config",
    "new_compiler_with_default_internal_packages",
    "new_compiler_with_internal_packages",
    "next_pending_call",
    "with_extra_data",
    "with_pre_resolve_mutator",
]
