"""Bounded in-memory key/value store with TTL eviction.

Used for rate-limit window counters and repair-session attempt histories.
Callers receive a store instance instead of reaching for a module global, so
a distributed store with the same interface can be swapped in.
"""

import threading
import time
from collections import OrderedDict
from collections.abc import Callable
from typing import Any, Hashable

_MISSING = object()


class TTLStore:
    """
    Dict-backed store where every entry expires ``ttl_seconds`` after its last
    write. At most ``max_keys`` live entries are kept; the least recently
    written are evicted first.
    """

    def __init__(
        self,
        ttl_seconds: float,
        max_keys: int = 10_000,
        clock: Callable[[], float] = time.monotonic,
    ):
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        if max_keys <= 0:
            raise ValueError("max_keys must be positive")

        self.ttl_seconds = ttl_seconds
        self.max_keys = max_keys
        self._clock = clock
        # key -> (expires_at, value), ordered by last write
        self._entries: OrderedDict[Hashable, tuple[float, Any]] = OrderedDict()
        self._lock = threading.Lock()

    def _evict_expired(self, now: float) -> None:
        # Entries are ordered by write time, so expired ones sit at the front
        while self._entries:
            key, (expires_at, _) = next(iter(self._entries.items()))
            if expires_at > now:
                break
            self._entries.popitem(last=False)

    def get(self, key: Hashable, default: Any = None) -> Any:
        with self._lock:
            now = self._clock()
            entry = self._entries.get(key, _MISSING)
            if entry is _MISSING:
                return default
            expires_at, value = entry
            if expires_at <= now:
                del self._entries[key]
                return default
            return value

    def set(self, key: Hashable, value: Any) -> None:
        with self._lock:
            now = self._clock()
            self._entries.pop(key, None)
            self._entries[key] = (now + self.ttl_seconds, value)
            self._evict_expired(now)
            while len(self._entries) > self.max_keys:
                self._entries.popitem(last=False)

    def update(self, key: Hashable, fn: Callable[[Any], Any], default: Any = None) -> Any:
        """Atomically replace ``key`` with ``fn(current)`` and return the new value."""
        with self._lock:
            now = self._clock()
            entry = self._entries.pop(key, _MISSING)
            current = default
            if entry is not _MISSING and entry[0] > now:
                current = entry[1]
            value = fn(current)
            self._entries[key] = (now + self.ttl_seconds, value)
            self._evict_expired(now)
            while len(self._entries) > self.max_keys:
                self._entries.popitem(last=False)
            return value

    def delete(self, key: Hashable) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def __len__(self) -> int:
        with self._lock:
            self._evict_expired(self._clock())
            return len(self._entries)
