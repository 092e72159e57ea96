"""Provider runtime: provider variants, packages, catalogs, registry, tracing."""

from resolvespine.runtime.catalog import (
    CatalogEvent,
    CatalogEventType,
    DirectoryCatalog,
    InMemoryCatalog,
    PackageCatalog,
    WatchableCatalog,
)
from resolvespine.runtime.manager import PackageManager
from resolvespine.runtime.package import ExternalPackage, InternalPackage, PackageRecord
from resolvespine.runtime.provider import (
    LocalProviderFn,
    NativeProviderFn,
    Package,
    Params,
    Provider,
    ProviderFn,
    Returns,
)
from resolvespine.runtime.remote import FUNCTION_HEADER, RemoteProviderFn, RemoteProviderSpec

__all__ = [
    "FUNCTION_HEADER",
    "CatalogEvent",
    "CatalogEventType",
    "DirectoryCatalog",
    "ExternalPackage",
    "InMemoryCatalog",
    "InternalPackage",
    "LocalProviderFn",
    "NativeProviderFn",
    "Package",
    "PackageCatalog",
    "PackageManager",
    "PackageRecord",
    "Params",
    "Provider",
    "ProviderFn",
    "RemoteProviderFn",
    "RemoteProviderSpec",
    "Returns",
    "WatchableCatalog",
]
