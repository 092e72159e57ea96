"""Lock-guarded mapping shared between the watch loop and resolve calls."""

from __future__ import annotations

import threading
from collections.abc import Iterator, Mapping
from typing import Generic, TypeVar

K = TypeVar("K")
V = TypeVar("V")


class SyncMap(Generic[K, V]):
    """
    A small thread-safe dictionary.

    Readers always receive copies (``values``, ``items``, ``snapshot``) so
    iteration never observes a concurrent mutation.
    """

    def __init__(self) -> None:
        self._data: dict[K, V] = {}
        self._lock = threading.RLock()

    @classmethod
    def from_mapping(cls, mapping: Mapping[K, V]) -> SyncMap[K, V]:
        m: SyncMap[K, V] = cls()
        m._data.update(mapping)
        return m

    def get(self, key: K, default: V | None = None) -> V | None:
        with self._lock:
            return self._data.get(key, default)

    def set(self, key: K, value: V) -> None:
        with self._lock:
            self._data[key] = value

    def delete(self, key: K) -> V | None:
        with self._lock:
            return self._data.pop(key, None)

    def keys(self) -> list[K]:
        with self._lock:
            return list(self._data.keys())

    def values(self) -> list[V]:
        with self._lock:
            return list(self._data.values())

    def items(self) -> list[tuple[K, V]]:
        with self._lock:
            return list(self._data.items())

    def snapshot(self) -> dict[K, V]:
        with self._lock:
            return dict(self._data)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._data

    def __len__(self) -> int:
        with self._lock:
            return len(self._data)

    def __iter__(self) -> Iterator[K]:
        return iter(self.keys())


__all__ = ["SyncMap"]
