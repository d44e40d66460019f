"""Exact-content document deduplication for the ingestion pipeline."""

import re
from dataclasses import dataclass
from threading import RLock
from typing import Dict, List, Optional

from docchat.core.logging import get_logger
from docchat.services.unified_cache.key_generator import CacheKeyGenerator

logger = get_logger(__name__)

_WHITESPACE_RUN = re.compile(r"\s+")


@dataclass
class DeduplicationResult:
    """Outcome of a duplicate check."""

    is_duplicate: bool
    content_hash: str
    existing_source: Optional[str] = None


class DocumentDeduplicator:
    """Detects documents whose content is already indexed under another source.

    Uses O(1) hash lookup on whitespace-normalized content. Near-duplicates
    are not detected.
    """

    def __init__(self):
        self._hashes: Dict[str, str] = {}
        self._lock = RLock()

    @staticmethod
    def content_hash(text: str) -> str:
        normalized = _WHITESPACE_RUN.sub(" ", text).strip()
        return CacheKeyGenerator.hash_content(normalized)

    def check_duplicate(self, text: str, source: Optional[str] = None) -> DeduplicationResult:
        """Check whether ``text`` is already registered.

        Content registered under ``source`` itself is not a duplicate, so
        re-ingesting an unchanged file is left to the re-ingestion policy.
        """
        content_hash = self.content_hash(text)

        with self._lock:
            existing = self._hashes.get(content_hash)

        if existing is not None and existing != source:
            logger.info(f"Duplicate content: {source} matches {existing}")
            return DeduplicationResult(
                is_duplicate=True,
                content_hash=content_hash,
                existing_source=existing,
            )

        return DeduplicationResult(is_duplicate=False, content_hash=content_hash)

    def register(self, content_hash: str, source: str) -> None:
        with self._lock:
            self._hashes[content_hash] = source

    def unregister(self, content_hash: str) -> bool:
        with self._lock:
            return self._hashes.pop(content_hash, None) is not None

    def unregister_source(self, source: str) -> int:
        """Forget every hash registered for ``source``."""
        with self._lock:
            stale: List[str] = [h for h, s in self._hashes.items() if s == source]
            for content_hash in stale:
                del self._hashes[content_hash]
        return len(stale)

    def load_hashes(self, source_hashes: Dict[str, str]) -> int:
        """Replace the registry with a saved source-to-hash mapping.

        Returns:
            Number of hashes registered.
        """
        with self._lock:
            self._hashes = {content_hash: source for source, content_hash in source_hashes.items()}
            count = len(self._hashes)

        logger.info(f"Loaded {count} document hashes")
        return count

    def clear(self) -> None:
        with self._lock:
            self._hashes.clear()

    def get_stats(self) -> Dict[str, int]:
        with self._lock:
            return {"total_hashes": len(self._hashes)}
