"""Embedding cache for query vectors."""

from typing import Callable, List, Optional

from docchat.core.logging import get_logger
from docchat.services.unified_cache.backends.base import CacheStats
from docchat.services.unified_cache.backends.memory_backend import LRUCache
from docchat.services.unified_cache.key_generator import CacheKeyGenerator

logger = get_logger(__name__)


class EmbeddingCache:
    """Cache of text -> embedding vector.

    Embeddings are deterministic for a given model, so entries do not go
    stale when the corpus changes and the defaults are larger and longer
    lived than the query cache. Changing the embedding model requires a
    ``clear()``; that flush is the caller's job.
    """

    def __init__(
        self,
        max_size: int = 500,
        ttl_ms: float = 60 * 60 * 1000,
        model: str = "default",
        clock: Optional[Callable[[], float]] = None,
    ):
        """Initialize embedding cache.

        Args:
            max_size: Max cached embeddings (default: 500)
            ttl_ms: Time to live in milliseconds (default: 1 hour)
            model: Embedding model name, folded into every key
            clock: Optional millisecond clock for tests
        """
        self._cache: LRUCache[List[float]] = LRUCache(max_size, ttl_ms, clock=clock)
        self.model = model

    def _key(self, text: str) -> str:
        return CacheKeyGenerator.embedding(text, self.model)

    def get(self, text: str) -> Optional[List[float]]:
        """Get cached embedding for text, or None."""
        embedding = self._cache.get(self._key(text))
        if embedding is not None:
            logger.debug(f"Embedding cache hit for text ({len(text)} chars)")
        return embedding

    def set(self, text: str, embedding: List[float]) -> None:
        """Cache an embedding for text."""
        self._cache.set(self._key(text), embedding)

    def has(self, text: str) -> bool:
        """Check if text has a fresh cached embedding."""
        return self._cache.has(self._key(text))

    def clear(self) -> None:
        """Drop every cached embedding."""
        self._cache.clear()
        logger.info("Embedding cache cleared")

    def get_stats(self) -> CacheStats:
        return self._cache.get_stats()

    def get_hit_rate(self) -> float:
        return self._cache.get_hit_rate()
