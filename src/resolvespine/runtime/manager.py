"""
Package manager: the provider registry consumed by the resolver.

Manifesto:
    Resolve calls only ever read the registry; the watch loop is the only
    writer. Both partitions sit behind lock-guarded maps, so readers take
    point-in-time snapshots and never block on catalog processing for
    longer than a single map operation.

Architecture:
    ::

        ┌──────────────────────────────────────────────────────────────────┐
        │                         PackageManager                           │
        │                                                                  │
        │   internals: SyncMap[path → Package]      (fixed at __init__)    │
        │   externals: SyncMap["external://ns/name" → Package]             │
        │                     ▲            ▲                               │
        │     load_external_packages()     │ catalog events                │
        │        (bulk list)               │ added/modified → upsert       │
        │                                  │ deleted        → remove       │
        │   start()                        │                               │
        │      │                           │                               │
        │      ▼                                                           │
        │   ┌──────────── Daemon Thread ────────────────────────────┐      │
        │   │  subscribe(handler)        (when the catalog pushes)  │      │
        │   │  resync()                                             │      │
        │   │  while not stop_event.wait(resync_period):            │      │
        │   │      resync()   re-list, upsert, drop missing         │      │
        │   └───────────────────────────────────────────────────────┘      │
        │   stop(): stop_event.set(); thread.join(timeout=stop_timeout)    │
        └──────────────────────────────────────────────────────────────────┘

Features:
    - **get_providers():** ``name → Provider`` snapshot over both partitions
    - **get_imports():** template documents of every package
    - **resync():** consistency backstop; removals surface within one period

Tags:
    registry, package-manager, catalog, watch, threading, resolve-spine

Doc-Types:
    - API Reference
"""

from __future__ import annotations

import threading
from collections.abc import Iterable

import httpx

from resolvespine.core.errors import CompileError
from resolvespine.core.logging import get_logger
from resolvespine.core.syncmap import SyncMap
from resolvespine.document.compiler import TemplateDocument
from resolvespine.runtime.catalog import CatalogEvent, CatalogEventType, PackageCatalog, WatchableCatalog
from resolvespine.runtime.package import ExternalPackage, PackageRecord
from resolvespine.runtime.provider import Package, Provider

logger = get_logger(__name__)

DEFAULT_RESYNC_PERIOD = 300.0


class PackageManager:
    """Registry of internal and external provider packages.

    Example:
        >>> manager = PackageManager(default_packages(), catalog=DirectoryCatalog("/etc/packages"))
        >>> manager.load_external_packages()
        >>> manager.start()
        >>> # ... later ...
        >>> manager.stop()
    """

    def __init__(
        self,
        internal_packages: Iterable[Package] = (),
        catalog: PackageCatalog | None = None,
        resync_period: float = DEFAULT_RESYNC_PERIOD,
        http_client: httpx.Client | None = None,
    ):
        self._internals: SyncMap[str, Package] = SyncMap.from_mapping({p.path: p for p in internal_packages})
        self._externals: SyncMap[str, Package] = SyncMap()
        self.catalog = catalog
        self.resync_period = resync_period
        self.http_client = http_client
        self.stop_timeout = 5.0

        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None
        self._started = False
        self._resync_count = 0
        self._sync_lock = threading.RLock()

    # ── External partition ───────────────────────────────────────────────

    def _set_external(self, record: PackageRecord) -> bool:
        try:
            pkg = ExternalPackage(record, client=self.http_client)
        except CompileError as e:
            logger.error("external_package_parse_failed", key=record.key, error=str(e))
            return False
        self._externals.set(record.key, pkg)
        return True

    def _delete_external(self, record: PackageRecord) -> None:
        self._externals.delete(record.key)

    def handle_event(self, event: CatalogEvent) -> None:
        """Apply one catalog event to the external partition."""
        with self._sync_lock:
            if event.type is CatalogEventType.DELETED:
                self._delete_external(event.record)
            else:
                self._set_external(event.record)
        logger.debug("catalog_event_applied", event_type=event.type.value, key=event.record.key)

    def load_external_packages(self) -> int:
        """Bulk-load every record of the catalog; returns the number loaded.

        Records whose templates fail to compile are logged and skipped.

        Raises:
            CatalogError: when the catalog cannot be listed
        """
        if self.catalog is None:
            return 0
        loaded = sum(1 for record in self.catalog.list_packages() if self._set_external(record))
        logger.info("external_packages_loaded", count=loaded)
        return loaded

    def resync(self) -> None:
        """Re-list the catalog: upsert listed records, drop unlisted ones.

        Entries an event replaced or removed while the listing was taken
        are newer than the listing and are left alone.
        """
        if self.catalog is None:
            return
        with self._sync_lock:
            before = self._externals.snapshot()
            records = self.catalog.list_packages()
            listed = set()
            for record in records:
                listed.add(record.key)
                if self._externals.get(record.key) is before.get(record.key):
                    self._set_external(record)
            removed = [
                key for key, pkg in before.items() if key not in listed and self._externals.get(key) is pkg
            ]
            for key in removed:
                self._externals.delete(key)
        self._resync_count += 1
        logger.debug("catalog_resynced", listed=len(listed), removed=removed)

    def listen_external_packages(self, stop_event: threading.Event | None = None) -> None:
        """Block, keeping the external partition in sync until ``stop_event`` is set."""
        stop_event = stop_event or self._stop_event
        if self.catalog is None:
            logger.warning("catalog_not_configured")
            return

        unsubscribe = None
        if isinstance(self.catalog, WatchableCatalog):
            unsubscribe = self.catalog.subscribe(self.handle_event)
        try:
            self._safe_resync()
            while not stop_event.wait(self.resync_period):
                self._safe_resync()
        finally:
            if unsubscribe is not None:
                unsubscribe()

    def _safe_resync(self) -> None:
        try:
            self.resync()
        except Exception as e:
            logger.exception("catalog_resync_failed", error=str(e))

    # ── Lifecycle ────────────────────────────────────────────────────────

    def start(self) -> None:
        """Run the watch loop in a daemon thread."""
        if self._started:
            logger.warning("package_manager_already_started")
            return
        # fresh event per run; a loop outliving stop() keeps the one already set
        self._stop_event = threading.Event()
        stop_event = self._stop_event

        def _loop() -> None:
            logger.info("package_watch_started", resync_period=self.resync_period)
            self.listen_external_packages(stop_event)
            logger.info("package_watch_stopped")

        self._thread = threading.Thread(target=_loop, daemon=True, name="resolvespine-package-watch")
        self._thread.start()
        self._started = True

    def stop(self) -> None:
        """Signal the watch loop and wait up to ``stop_timeout`` seconds for it to exit."""
        if not self._started:
            return
        self._stop_event.set()
        if self._thread:
            self._thread.join(timeout=self.stop_timeout)
            if self._thread.is_alive():
                logger.warning("package_watch_thread_did_not_stop")
        self._started = False

    @property
    def is_running(self) -> bool:
        return self._started and self._thread is not None and self._thread.is_alive()

    @property
    def resync_count(self) -> int:
        return self._resync_count

    # ── Read side ────────────────────────────────────────────────────────

    def get_packages(self) -> list[Package]:
        return self._internals.values() + self._externals.values()

    def get_internal_packages(self) -> list[Package]:
        return self._internals.values()

    def get_external_packages(self) -> dict[str, Package]:
        return self._externals.snapshot()

    def get_imports(self) -> list[TemplateDocument]:
        return [imp for pkg in self.get_packages() for imp in pkg.get_imports()]

    def get_providers(self) -> dict[str, Provider]:
        return {pkg.name: pkg for pkg in self.get_packages()}


__all__ = ["DEFAULT_RESYNC_PERIOD", "PackageManager"]
