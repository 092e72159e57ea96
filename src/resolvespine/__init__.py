"""
resolve-spine: a provider-call resolution engine.

A configuration document embeds pending call markers::

    x:
      $do: encode
      $provider: base64
      $params: example

``Compiler.compile_source`` compiles the document, then repeatedly dispatches
the first pending marker (in priority-aware post-order) to a named provider
and fills the result back, until nothing is pending::

    x: {$do: encode, $provider: base64, $params: example, $returns: ZXhhbXBsZQ==}

Providers are local (typed pydantic handlers), native (structural functions)
or remote (HTTP endpoints discovered through a package catalog).
"""

__version__ = "0.1.0"

from resolvespine.core.context import CallContext  # noqa: E402
from resolvespine.document import Document, compile_source, print_document  # noqa: E402
from resolvespine.resolver import (  # noqa: E402
    DISABLE_RESOLVE_PROVIDER_FUNCTIONS,
    Compiler,
    Resolver,
    compile_string,
    get_default_compiler,
    new_compiler_with_default_internal_packages,
    new_compiler_with_internal_packages,
    with_extra_data,
    with_pre_resolve_mutator,
)
from resolvespine.runtime import PackageManager  # noqa: E402

__all__ = [
    "__version__",
    "CallContext",
    "Compiler",
    "DISABLE_RESOLVE_PROVIDER_FUNCTIONS",
    "Document",
    "PackageManager",
    "Resolver",
    "compile_source",
    "compile_string",
    "get_default_compiler",
    "new_compiler_with_default_internal_packages",
    "new_compiler_with_internal_packages",
    "print_document",
    "with_extra_data",
    "with_pre_resolve_mutator",
]
