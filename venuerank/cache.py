from __future__ import annotations

import threading
from typing import Any, Callable, Dict, Hashable, Optional

_MISSING = object()


class MemoryCache:
    """
    Process-scoped, append-only key-value store. Entries are never evicted;
    registries, quartile lookups and venue streams are small and finite.

    Values may legitimately be None (a cached miss), so `contains` is the way
    to tell a negative entry from an absent one.
    """

    def __init__(self):
        self._data: Dict[Hashable, Any] = {}
        self._lock = threading.Lock()

    def contains(self, key: Hashable) -> bool:
        with self._lock:
            return key in self._data

    def get(self, key: Hashable, default: Any = None) -> Any:
        with self._lock:
            return self._data.get(key, default)

    def set(self, key: Hashable, value: Any) -> None:
        with self._lock:
            self._data.setdefault(key, value)

    def get_or_create(self, key: Hashable, factory: Callable[[], Any]) -> Any:
        """
        Return the cached value for key, creating it with factory on first use.
        The factory runs under the lock, so it is called at most once per key.
        """
        with self._lock:
            value = self._data.get(key, _MISSING)
            if value is _MISSING:
                value = factory()
                self._data[key] = value
            return value

    def discard(self, key: Hashable) -> Optional[Any]:
        """
        Drop an entry; used only to forget a pending fetch that failed.
        """
        with self._lock:
            return self._data.pop(key, None)

    def __len__(self) -> int:
        with self._lock:
            return len(self._data)


# Process-wide caches shared by default instances of the resolvers
REGISTRY_CACHE = MemoryCache()
QUARTILE_CACHE = MemoryCache()
STREAM_CACHE = MemoryCache()
