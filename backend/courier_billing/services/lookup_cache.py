"""
Bounded in-memory cache for catalog lookups.

Entries expire after a TTL and the least recently used entry is evicted once
the cache is full. Each cache is owned by a single component instance.
"""
from __future__ import annotations

import time
from collections import OrderedDict
from dataclasses import dataclass
from threading import Lock
from typing import Any, Callable, Hashable, Optional


@dataclass
class _Entry:
    value: Any
    loaded_at: float


class LookupCache:
    def __init__(
        self,
        max_entries: int = 128,
        ttl_seconds: float = 600,
        clock: Callable[[], float] = time.monotonic,
    ):
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self.max_entries = max_entries
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: "OrderedDict[Hashable, _Entry]" = OrderedDict()
        self._lock = Lock()

    def _is_fresh(self, entry: _Entry) -> bool:
        return self._clock() - entry.loaded_at <= self.ttl_seconds

    def get(self, key: Hashable) -> Optional[Any]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if not self._is_fresh(entry):
                del self._entries[key]
                return None
            self._entries.move_to_end(key)
            return entry.value

    def put(self, key: Hashable, value: Any) -> None:
        with self._lock:
            self._entries[key] = _Entry(value=value, loaded_at=self._clock())
            self._entries.move_to_end(key)
            while len(self._entries) > self.max_entries:
                self._entries.popitem(last=False)

    def get_or_load(self, key: Hashable, loader: Callable[[], Any], force_reload: bool = False) -> Any:
        """Return the cached value for ``key``, calling ``loader`` on a miss."""
        if not force_reload:
            cached = self.get(key)
            if cached is not None:
                return cached
        value = loader()
        self.put(key, value)
        return value

    def invalidate(self, key: Optional[Hashable] = None) -> None:
        with self._lock:
            if key is None:
                self._entries.clear()
            else:
                self._entries.pop(key, None)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
