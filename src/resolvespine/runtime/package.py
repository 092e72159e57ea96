"""
Provider packages: built-in (internal) and catalog-sourced (external).

A package is a provider plus the templates it contributes to compilation
under its mount path. Internal packages ship with the process and never
change; external packages are built from catalog records and dispatch every
function to one remote endpoint.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

import httpx
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, model_validator

from resolvespine.core.syncmap import SyncMap
from resolvespine.document.compiler import TemplateDocument, build_template
from resolvespine.runtime.provider import ProviderFn
from resolvespine.runtime.remote import RemoteProviderFn, RemoteProviderSpec

INTERNAL_PREFIX = "spine/"
EXTERNAL_SCHEME = "external://"
DEFAULT_NAMESPACE = "default"


def package_key(namespace: str, name: str) -> str:
    return f"{EXTERNAL_SCHEME}{namespace}/{name}"


class InternalPackage:
    """Built-in package mounted at ``spine/<name>``.

    Raises:
        CompileError: when the template does not compile
    """

    def __init__(self, name: str, template: str, fns: Mapping[str, ProviderFn]):
        self._name = name
        self._template = template
        self._fns: SyncMap[str, ProviderFn] = SyncMap.from_mapping(fns)
        self._imports = [build_template(self.path, {"-": template})]

    @property
    def name(self) -> str:
        return self._name

    @property
    def path(self) -> str:
        return INTERNAL_PREFIX + self._name

    @property
    def templates(self) -> dict[str, str]:
        return {"-": self._template}

    @property
    def function_names(self) -> list[str]:
        return sorted(self._fns.keys())

    def get_provider_fn(self, do: str) -> ProviderFn | None:
        return self._fns.get(do)

    def get_imports(self) -> list[TemplateDocument]:
        return list(self._imports)

    def __repr__(self) -> str:
        return f"InternalPackage({self.path!r}, fns={self.function_names})"


class PackageRecord(BaseModel):
    """
    One external package as stored in the catalog.

    Accepts the flat form::

        name: test
        mountPath: ext/test
        provider: {protocol: http, endpoint: "http://svc/ext"}
        templates: {main.yaml: "..."}

    and the resource form with ``metadata: {name, namespace}`` and a
    ``spec`` holding ``path``, ``provider`` and ``templates``.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    name: str
    namespace: str = DEFAULT_NAMESPACE
    mount_path: str = Field(
        serialization_alias="mountPath",
        validation_alias=AliasChoices("mountPath", "mount_path", "path"),
    )
    provider: RemoteProviderSpec | None = None
    templates: dict[str, str] = Field(default_factory=dict)

    @model_validator(mode="before")
    @classmethod
    def _flatten_resource(cls, data: Any) -> Any:
        if isinstance(data, Mapping) and "spec" in data:
            metadata = data.get("metadata") or {}
            flat = dict(data.get("spec") or {})
            flat.setdefault("name", metadata.get("name", data.get("name")))
            flat.setdefault("namespace", metadata.get("namespace") or DEFAULT_NAMESPACE)
            return flat
        return data

    @property
    def key(self) -> str:
        """Identity in the external partition: ``external://<ns>/<name>``."""
        return package_key(self.namespace, self.name)


class ExternalPackage:
    """Package built from a catalog record.

    Raises:
        CompileError: when the record's templates do not compile
    """

    def __init__(self, record: PackageRecord, client: httpx.Client | None = None):
        self.record = record
        self._client = client
        self._imports = [build_template(record.mount_path, record.templates)]

    @property
    def name(self) -> str:
        return self.record.name

    @property
    def path(self) -> str:
        return self.record.mount_path

    @property
    def key(self) -> str:
        return self.record.key

    @property
    def templates(self) -> dict[str, str]:
        return dict(self.record.templates)

    def get_provider_fn(self, do: str) -> ProviderFn | None:
        if self.record.provider is None:
            return None
        return RemoteProviderFn(self.name, do, self.record.provider, client=self._client)

    def get_imports(self) -> list[TemplateDocument]:
        return list(self._imports)

    def __repr__(self) -> str:
        return f"ExternalPackage({self.key!r}, path={self.path!r})"


__all__ = [
    "DEFAULT_NAMESPACE",
    "EXTERNAL_SCHEME",
    "INTERNAL_PREFIX",
    "ExternalPackage",
    "InternalPackage",
    "PackageRecord",
    "package_key",
]
