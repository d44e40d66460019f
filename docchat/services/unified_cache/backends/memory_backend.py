"""In-memory LRU cache with per-entry TTL."""

import threading
import time
from collections import OrderedDict
from typing import Callable, Generic, List, Optional, TypeVar

from docchat.services.unified_cache.backends.base import CacheEntry, CacheStats

V = TypeVar("V")


def _monotonic_ms() -> float:
    return time.monotonic() * 1000.0


class LRUCache(Generic[V]):
    """Bounded key/value cache with least-recently-used eviction and TTL.

    Entries live in an ``OrderedDict`` ordered from least to most recently
    used, so lookup, reordering and eviction are all O(1).

    Expiry is lazy: an entry observed by ``get`` or ``has`` after its
    deadline is removed by that call and reported as absent. There is no
    background sweep, so expired entries may still count towards ``size``
    until something touches them.

    ``has`` is a read-only probe and does not refresh recency. Only ``get``
    and ``set`` move a key to the most-recently-used position.

    Features:
    - O(1) get/set/delete
    - Uniform TTL per cache instance
    - Hit/miss statistics
    - Thread-safe (one lock per instance)
    """

    def __init__(
        self,
        max_size: int = 100,
        ttl_ms: float = 60 * 60 * 1000,
        clock: Optional[Callable[[], float]] = None,
    ):
        """Initialize the cache.

        Args:
            max_size: Maximum number of entries.
            ttl_ms: Time to live of every entry, in milliseconds.
            clock: Millisecond clock, injectable for tests. Defaults to a
                monotonic clock.
        """
        if max_size <= 0:
            raise ValueError("max_size must be positive")
        if ttl_ms < 0:
            raise ValueError("ttl_ms must not be negative")

        self._storage: "OrderedDict[str, CacheEntry]" = OrderedDict()
        self._max_size = max_size
        self._ttl_ms = ttl_ms
        self._clock = clock or _monotonic_ms
        self._lock = threading.RLock()
        self._hits = 0
        self._misses = 0
        self._evictions = 0

    @property
    def max_size(self) -> int:
        return self._max_size

    @property
    def ttl_ms(self) -> float:
        return self._ttl_ms

    @property
    def evictions(self) -> int:
        """Number of entries dropped to make room for new ones."""
        return self._evictions

    def get(self, key: str) -> Optional[V]:
        """Get a value and mark it most recently used.

        Returns None on a miss, including when the entry has expired (which
        also removes it).
        """
        with self._lock:
            entry = self._storage.get(key)
            if entry is None:
                self._misses += 1
                return None

            if entry.is_expired(self._clock()):
                del self._storage[key]
                self._misses += 1
                return None

            self._storage.move_to_end(key)
            self._hits += 1
            return entry.value

    def set(self, key: str, value: V) -> None:
        """Insert or replace a value.

        The key always becomes most recently used and its expiry is reset
        to ``now + ttl_ms``. Inserting a new key into a full cache evicts
        the least recently used entry first.
        """
        with self._lock:
            if key in self._storage:
                del self._storage[key]
            elif len(self._storage) >= self._max_size:
                self._storage.popitem(last=False)
                self._evictions += 1

            self._storage[key] = CacheEntry(
                value=value,
                expires_at=self._clock() + self._ttl_ms,
            )

    def has(self, key: str) -> bool:
        """Check if a fresh entry exists without touching recency or stats."""
        with self._lock:
            entry = self._storage.get(key)
            if entry is None:
                return False

            if entry.is_expired(self._clock()):
                del self._storage[key]
                return False

            return True

    def delete(self, key: str) -> bool:
        """Delete a key. Returns True if it was present."""
        with self._lock:
            return self._storage.pop(key, None) is not None

    def clear(self) -> None:
        """Remove every entry and reset hit/miss counters."""
        with self._lock:
            self._storage.clear()
            self._hits = 0
            self._misses = 0
            self._evictions = 0

    def get_stats(self) -> CacheStats:
        """Get cache statistics."""
        with self._lock:
            return CacheStats(
                hits=self._hits,
                misses=self._misses,
                size=len(self._storage),
                max_size=self._max_size,
            )

    def get_hit_rate(self) -> float:
        """Get hit rate as a percentage."""
        return self.get_stats().hit_rate

    def keys(self) -> List[str]:
        """Keys from least to most recently used (testing utility)."""
        with self._lock:
            return list(self._storage.keys())

    def __len__(self) -> int:
        with self._lock:
            return len(self._storage)

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and self.has(key)
