"""Shared cache types."""

from dataclasses import dataclass
from typing import Any, Optional


@dataclass
class CacheEntry:
    """A cached value and the moment it stops being valid."""

    value: Any
    expires_at: float  # milliseconds, same clock as the owning cache

    def is_expired(self, now: float) -> bool:
        """Check if the entry has expired at ``now``."""
        return now >= self.expires_at


@dataclass(frozen=True)
class CacheStats:
    """Point-in-time statistics for a bounded cache.

    Derived on every call to ``get_stats``; never persisted.
    """

    hits: int = 0
    misses: int = 0
    size: int = 0
    max_size: int = 0

    @property
    def total_requests(self) -> int:
        """Total number of cache lookups."""
        return self.hits + self.misses

    @property
    def hit_rate(self) -> float:
        """Hit rate as a percentage (0.0 when nothing was looked up yet)."""
        if self.total_requests == 0:
            return 0.0
        return (self.hits / self.total_requests) * 100

    def to_dict(self, precision: Optional[int] = 2) -> dict:
        """Serialize for logging or API responses."""
        hit_rate: Any = self.hit_rate
        if precision is not None:
            hit_rate = round(hit_rate, precision)
        return {
            "hits": self.hits,
            "misses": self.misses,
            "size": self.size,
            "max_size": self.max_size,
            "hit_rate": hit_rate,
        }
