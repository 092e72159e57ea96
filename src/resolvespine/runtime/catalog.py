"""
External package catalogs.

A catalog is the store the package manager lists external package records
from. Catalogs that can push changes also implement ``subscribe``; the
manager then applies events as they happen and keeps re-listing on the
resync period as a consistency backstop.

Two implementations ship:

- **InMemoryCatalog:** records held in process, events pushed synchronously
  to subscribers. Useful for embedding and tests.
- **DirectoryCatalog:** one ``*.yaml`` / ``*.yml`` / ``*.json`` file per
  record (or a list of records per file). Resync-only.
"""

from __future__ import annotations

import json
import threading
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

import yaml
from pydantic import ValidationError

from resolvespine.core.errors import CatalogError
from resolvespine.core.logging import get_logger
from resolvespine.runtime.package import DEFAULT_NAMESPACE, PackageRecord, package_key

logger = get_logger(__name__)

CATALOG_SUFFIXES = (".yaml", ".yml", ".json")


class CatalogEventType(str, Enum):
    ADDED = "added"
    MODIFIED = "modified"
    DELETED = "deleted"


@dataclass(frozen=True)
class CatalogEvent:
    type: CatalogEventType
    record: PackageRecord


CatalogHandler = Callable[[CatalogEvent], None]
Unsubscribe = Callable[[], None]


@runtime_checkable
class PackageCatalog(Protocol):
    """Read side of an external package store."""

    def list_packages(self) -> list[PackageRecord]:
        """All records currently in the catalog.

        Raises:
            CatalogError: when the catalog cannot be listed
        """
        ...


@runtime_checkable
class WatchableCatalog(PackageCatalog, Protocol):
    """A catalog that can push add/modify/delete events."""

    def subscribe(self, handler: CatalogHandler) -> Unsubscribe: ...


# =============================================================================
# In-memory catalog
# =============================================================================


class InMemoryCatalog:
    """Process-local catalog that notifies subscribers on every change."""

    def __init__(self, records: list[PackageRecord] | None = None):
        self._records: dict[str, PackageRecord] = {r.key: r for r in records or []}
        self._handlers: list[CatalogHandler] = []
        self._lock = threading.RLock()

    def list_packages(self) -> list[PackageRecord]:
        with self._lock:
            return list(self._records.values())

    def apply(self, record: PackageRecord | dict[str, Any]) -> PackageRecord:
        """Create or replace a record."""
        if not isinstance(record, PackageRecord):
            record = PackageRecord.model_validate(record)
        with self._lock:
            event_type = CatalogEventType.MODIFIED if record.key in self._records else CatalogEventType.ADDED
            self._records[record.key] = record
            handlers = list(self._handlers)
        self._notify(handlers, CatalogEvent(event_type, record))
        return record

    def delete(self, name: str, namespace: str = DEFAULT_NAMESPACE) -> PackageRecord | None:
        key = package_key(namespace, name)
        with self._lock:
            record = self._records.pop(key, None)
            handlers = list(self._handlers)
        if record is not None:
            self._notify(handlers, CatalogEvent(CatalogEventType.DELETED, record))
        return record

    def subscribe(self, handler: CatalogHandler) -> Unsubscribe:
        with self._lock:
            self._handlers.append(handler)

        def unsubscribe() -> None:
            with self._lock:
                if handler in self._handlers:
                    self._handlers.remove(handler)

        return unsubscribe

    @staticmethod
    def _notify(handlers: list[CatalogHandler], event: CatalogEvent) -> None:
        for handler in handlers:
            try:
                handler(event)
            except Exception as e:
                logger.exception(
                    "catalog_handler_failed", event_type=event.type.value, key=event.record.key, error=str(e)
                )


# =============================================================================
# Directory catalog
# =============================================================================


class DirectoryCatalog:
    """Catalog backed by record files in a directory."""

    def __init__(self, path: str | Path):
        self.path = Path(path)

    def _read(self, file: Path) -> list[PackageRecord]:
        text = file.read_text(encoding="utf-8")
        data = json.loads(text) if file.suffix == ".json" else yaml.safe_load(text)
        if data is None:
            return []
        if isinstance(data, dict) and isinstance(data.get("items"), list):
            data = data["items"]
        items = data if isinstance(data, list) else [data]
        return [PackageRecord.model_validate(item) for item in items]

    def list_packages(self) -> list[PackageRecord]:
        if not self.path.is_dir():
            raise CatalogError(f"catalog directory {self.path} does not exist", context={"path": str(self.path)})

        records: list[PackageRecord] = []
        for file in sorted(self.path.iterdir()):
            if not file.is_file() or file.suffix not in CATALOG_SUFFIXES:
                continue
            try:
                records.extend(self._read(file))
            except (OSError, ValueError, yaml.YAMLError, ValidationError) as e:
                logger.warning("catalog_file_skipped", file=str(file), error=str(e))
        return records

    def __repr__(self) -> str:
        return f"DirectoryCatalog({str(self.path)!r})"


__all__ = [
    "CatalogEvent",
    "CatalogEventType",
    "CatalogHandler",
    "DirectoryCatalog",
    "InMemoryCatalog",
    "PackageCatalog",
    "WatchableCatalog",
]
