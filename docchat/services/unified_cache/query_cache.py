"""Query cache for generated answers."""

from typing import Callable, Generic, Optional, TypeVar

from docchat.core.logging import get_logger
from docchat.services.unified_cache.backends.base import CacheStats
from docchat.services.unified_cache.backends.memory_backend import LRUCache
from docchat.services.unified_cache.key_generator import CacheKeyGenerator

logger = get_logger(__name__)

T = TypeVar("T")


def _preview(question: str, limit: int = 50) -> str:
    return question if len(question) <= limit else f"{question[:limit]}..."


class QueryCache(Generic[T]):
    """Cache of question -> response.

    Keys are hashes of the normalized question (see
    ``CacheKeyGenerator.query``). The TTL is deliberately short: a cached
    answer is wrong as soon as the corpus changes, and owners are expected
    to ``clear()`` on a documents-changed event.
    """

    def __init__(
        self,
        max_size: int = 100,
        ttl_ms: float = 30 * 60 * 1000,
        clock: Optional[Callable[[], float]] = None,
    ):
        """Initialize query cache.

        Args:
            max_size: Max cached questions (default: 100)
            ttl_ms: Time to live in milliseconds (default: 30 minutes)
            clock: Optional millisecond clock for tests
        """
        self._cache: LRUCache[T] = LRUCache(max_size, ttl_ms, clock=clock)

    @staticmethod
    def make_key(question: str) -> str:
        return CacheKeyGenerator.query(question)

    def get(self, question: str) -> Optional[T]:
        """Get cached response for a question, or None."""
        cached = self._cache.get(self.make_key(question))
        if cached is not None:
            logger.debug(f"Query cache hit for: {_preview(question)!r}")
        return cached

    def set(self, question: str, response: T) -> None:
        """Cache a response for a question."""
        self._cache.set(self.make_key(question), response)
        logger.debug(f"Query cached: {_preview(question)!r}")

    def has(self, question: str) -> bool:
        return self._cache.has(self.make_key(question))

    def delete(self, question: str) -> bool:
        return self._cache.delete(self.make_key(question))

    def clear(self) -> None:
        """Drop every cached response and reset statistics."""
        self._cache.clear()
        logger.info("Query cache cleared")

    def get_stats(self) -> CacheStats:
        return self._cache.get_stats()

    def get_hit_rate(self) -> float:
        return self._cache.get_hit_rate()
