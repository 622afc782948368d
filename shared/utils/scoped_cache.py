from __future__ import annotations

import time
from dataclasses import dataclass
from threading import RLock
from typing import Callable, Dict, Generic, Hashable, Optional, TypeVar


K = TypeVar('K', bound=Hashable)
V = TypeVar('V')


@dataclass
class _Entry(Generic[V]):
    data: V
    expires_at: float


class ScopedCache(Generic[K, V]):
    """Read-through TTL cache keyed by caller scope.

    Owned by the application instance, never by a module. Mutating
    operations drop the scopes they touch through ``invalidate`` or
    ``invalidate_where`` before they return.
    """

    def __init__(self, ttl_seconds: int = 30, clock: Callable[[], float] = time.monotonic):
        self._ttl = max(1, int(ttl_seconds))
        self._clock = clock
        self._data: Dict[K, _Entry[V]] = {}
        self._lock = RLock()
        # bumped on every invalidation, stale loads must not repopulate
        self._generation = 0

    def get(self, key: K) -> Optional[V]:
        now = self._clock()
        with self._lock:
            entry = self._data.get(key)
            if not entry:
                return None
            if entry.expires_at <= now:
                self._data.pop(key, None)
                return None
            return entry.data

    def set(self, key: K, data: V) -> None:
        with self._lock:
            self._data[key] = _Entry(data=data, expires_at=self._clock() + self._ttl)

    def get_or_load(self, key: K, loader: Callable[[], V]) -> V:
        cached = self.get(key)
        if cached is not None:
            return cached
        with self._lock:
            generation = self._generation
        data = loader()
        with self._lock:
            if generation == self._generation:
                self.set(key, data)
        return data

    def invalidate(self, key: K) -> None:
        with self._lock:
            self._generation += 1
            self._data.pop(key, None)

    def invalidate_where(self, predicate: Callable[[K], bool]) -> int:
        with self._lock:
            self._generation += 1
            stale = [k for k in self._data if predicate(k)]
            for k in stale:
                self._data.pop(k, None)
        return len(stale)

    def clear(self) -> None:
        with self._lock:
            self._generation += 1
            self._data.clear()

    def __contains__(self, key: K) -> bool:
        return self.get(key) is not None
