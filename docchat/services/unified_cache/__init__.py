"""Bounded in-process caches for the RAG engine.

- LRUCache: generic LRU + TTL building block
- EmbeddingCache: text -> vector (long TTL, deterministic)
- QueryCache: question -> response (short TTL, cleared on corpus change)
"""

from docchat.services.unified_cache.backends.base import CacheEntry, CacheStats
from docchat.services.unified_cache.backends.memory_backend import LRUCache
from docchat.services.unified_cache.embedding_cache import EmbeddingCache
from docchat.services.unified_cache.key_generator import CacheKeyGenerator
from docchat.services.unified_cache.query_cache import QueryCache

__all__ = [
    "CacheEntry",
    "CacheStats",
    "LRUCache",
    "EmbeddingCache",
    "CacheKeyGenerator",
    "QueryCache",
]
