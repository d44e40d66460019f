"""Cache backends."""

from docchat.services.unified_cache.backends.base import CacheEntry, CacheStats
from docchat.services.unified_cache.backends.memory_backend import LRUCache

__all__ = [
    "CacheEntry",
    "CacheStats",
    "LRUCache",
]
