"""In-memory vector store with JSON snapshot persistence."""

import asyncio
import json
import os
import tempfile
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np

from docchat.core.errors import (
    EmbeddingDimensionError,
    RAGError,
    SnapshotError,
    UpstreamUnavailableError,
)
from docchat.core.interfaces import IEmbeddingProvider
from docchat.core.logging import get_logger
from docchat.models.documents import (
    SNAPSHOT_VERSION,
    Chunk,
    StoredChunk,
    VectorStoreSnapshot,
)
from docchat.models.query import VectorStoreStats, CacheStatsView
from docchat.services.unified_cache.embedding_cache import EmbeddingCache
from docchat.utils.similarity import cosine_similarity_matrix, rank_by_score

logger = get_logger(__name__)

# (mtime_ns, inode, size) of the snapshot file
FileSignature = Tuple[int, int, int]


class VectorStore:
    """Holds every chunk of a corpus with its embedding and searches them.

    Concurrency model:
    - ``search`` works on a point-in-time copy of the chunk list, so chunks
      appended while a search is running are not considered by that search.
    - Writers (``add_chunks``, ``replace_source``, ``remove_source``,
      ``clear_all``, ``load``) serialize on one asyncio lock. Embeddings
      are computed before the lock is taken and each batch is applied in
      a single step, so a clear or a reload never splits a document.
    - ``save`` writes to a temporary file and renames it over the snapshot,
      so readers in other processes never see a partial file.

    Query embeddings are cached; document embeddings are always computed
    fresh on ingestion.
    """

    def __init__(
        self,
        embedding_provider: IEmbeddingProvider,
        store_path: str = "./vector-store.json",
        embedding_cache: Optional[EmbeddingCache] = None,
    ):
        """Initialize vector store.

        Args:
            embedding_provider: Collaborator producing embeddings.
            store_path: Snapshot file location.
            embedding_cache: Cache for query embeddings. A default one keyed
                on the provider's model name is created when omitted.
        """
        self._provider = embedding_provider
        self.store_path = Path(store_path)
        self._embedding_model = embedding_provider.get_model_name()
        self._embedding_cache = embedding_cache or EmbeddingCache(model=self._embedding_model)
        self._chunks: List[StoredChunk] = []
        self._dimensions: Optional[int] = None
        self._content_hashes: Dict[str, str] = {}
        self._file_signature: Optional[FileSignature] = None
        self._write_lock = asyncio.Lock()

    @property
    def embedding_cache(self) -> EmbeddingCache:
        return self._embedding_cache

    @property
    def embedding_model(self) -> str:
        return self._embedding_model

    @property
    def dimensions(self) -> Optional[int]:
        """Dimension shared by every stored embedding (None when unknown)."""
        return self._dimensions or self._provider_dimensions()

    def _provider_dimensions(self) -> Optional[int]:
        dimensions = self._provider.get_dimensions()
        return dimensions if dimensions and dimensions > 0 else None

    # =========================================================================
    # Ingestion
    # =========================================================================

    async def add_chunks(self, chunks: Sequence[Chunk]) -> int:
        """Embed and append chunks in input order.

        Chunks with an ID already in the store are appended as well; nothing
        is replaced. The whole batch is embedded before the store is touched,
        so a provider failure part-way leaves the store unchanged.

        Args:
            chunks: Chunks to add.

        Returns:
            Number of chunks added.

        Raises:
            UpstreamUnavailableError: If the embedding provider fails.
            EmbeddingDimensionError: If a vector does not match the store.
        """
        if not chunks:
            return 0

        batch = await self._embed_batch(chunks)

        async with self._write_lock:
            self._validate_batch(batch, self._dimensions)
            self._chunks.extend(batch)
            if self._dimensions is None:
                self._dimensions = len(batch[0].embedding)

        logger.info(f"Added {len(batch)} chunks to vector store")
        return len(batch)

    async def replace_source(
        self,
        source: str,
        chunks: Sequence[Chunk],
        content_hash: Optional[str] = None,
    ) -> int:
        """Swap every chunk of ``source`` for ``chunks`` in one step.

        The new chunks are embedded before anything is removed; if embedding
        fails the previous chunks of ``source`` stay in place.

        Args:
            source: Source being re-ingested.
            chunks: Replacement chunks, normally all cut from ``source``.
            content_hash: Content hash to record for ``source``.

        Returns:
            Number of chunks removed.
        """
        batch = await self._embed_batch(chunks) if chunks else []

        async with self._write_lock:
            kept = [c for c in self._chunks if c.metadata.source != source]
            dimensions = self._dimensions if kept else None
            self._validate_batch(batch, dimensions)

            removed = len(self._chunks) - len(kept)
            self._chunks = kept + batch
            self._dimensions = dimensions or (len(batch[0].embedding) if batch else None)

            self._content_hashes.pop(source, None)
            if content_hash is not None and batch:
                self._content_hashes[source] = content_hash

        logger.info(f"Replaced {removed} chunks of {source} with {len(batch)}")
        return removed

    async def remove_source(self, source: str) -> int:
        """Remove every chunk cut from ``source``.

        Returns:
            Number of chunks removed.
        """
        async with self._write_lock:
            kept = [c for c in self._chunks if c.metadata.source != source]
            removed = len(self._chunks) - len(kept)
            self._chunks = kept
            self._content_hashes.pop(source, None)
            if not kept:
                self._dimensions = None

        if removed:
            logger.info(f"Removed {removed} chunks from source {source}")
        return removed

    async def clear_all(self) -> int:
        """Empty the store without persisting.

        Waits for running writers, so an ingestion in flight lands either
        entirely before or entirely after the clear. Call ``save()``
        afterwards, otherwise the next reload of an older snapshot brings
        the chunks back.

        Returns:
            Number of chunks removed.
        """
        async with self._write_lock:
            removed = len(self._chunks)
            self._chunks = []
            self._dimensions = None
            self._content_hashes = {}

        logger.info(f"Cleared {removed} chunks from vector store")
        return removed

    def set_content_hash(self, source: str, content_hash: str) -> None:
        """Record the content hash of an indexed source; saved with the snapshot."""
        self._content_hashes[source] = content_hash

    def get_content_hashes(self) -> Dict[str, str]:
        """Source to content hash, for every source that recorded one."""
        return dict(self._content_hashes)

    # =========================================================================
    # Search
    # =========================================================================

    async def search(self, query: str, top_k: int = 5) -> List[Chunk]:
        """Return the ``top_k`` chunks most similar to ``query``.

        An empty store returns ``[]`` without calling the provider. Results
        are ordered by descending cosine similarity, ties in insertion order,
        and never carry embeddings. ``top_k`` outside ``1..len(store)``
        returns everything available.

        Raises:
            UpstreamUnavailableError: If the query cannot be embedded.
        """
        snapshot = list(self._chunks)
        if not snapshot:
            return []

        query_embedding = self._embedding_cache.get(query)
        if query_embedding is None:
            query_embedding = await self._embed(query, operation="search")
            self._embedding_cache.set(query, query_embedding)

        expected = len(snapshot[0].embedding)
        if len(query_embedding) != expected:
            raise EmbeddingDimensionError(expected=expected, actual=len(query_embedding))

        matrix = np.asarray([c.embedding for c in snapshot], dtype=np.float64)
        scores = cosine_similarity_matrix(query_embedding, matrix)
        order = rank_by_score(scores)

        limit = len(snapshot) if top_k <= 0 else min(top_k, len(snapshot))
        top = order[:limit]

        for rank, idx in enumerate(top, start=1):
            chunk = snapshot[idx]
            logger.debug(
                f"{rank}. Score: {scores[idx]:.3f} - {chunk.metadata.heading or 'No heading'} "
                f"({chunk.metadata.source})"
            )

        return [snapshot[idx].to_chunk() for idx in top]

    # =========================================================================
    # Persistence
    # =========================================================================

    async def save(self) -> None:
        """Write the full store to the snapshot file atomically.

        Raises:
            SnapshotError: If the file cannot be written.
        """
        snapshot = VectorStoreSnapshot(
            version=SNAPSHOT_VERSION,
            embedding_model=self._embedding_model,
            dimensions=self._dimensions,
            chunks=list(self._chunks),
            content_hashes=dict(self._content_hashes),
        )
        payload = snapshot.model_dump_json()

        loop = asyncio.get_event_loop()
        try:
            signature = await loop.run_in_executor(None, self._write_atomic, payload)
        except OSError as e:
            raise SnapshotError(
                f"Failed to save vector store: {e}",
                path=str(self.store_path),
                operation="save",
            ) from e

        self._file_signature = signature
        logger.info(f"Saved {len(snapshot.chunks)} chunks to {self.store_path}")

    async def load(self) -> bool:
        """Replace in-memory state with the snapshot file.

        A missing, unreadable or incompatible snapshot is not fatal: the
        store is left empty and False is returned.

        Returns:
            True if the snapshot was loaded.
        """
        loop = asyncio.get_event_loop()

        async with self._write_lock:
            try:
                raw, signature = await loop.run_in_executor(None, self._read_file)
            except FileNotFoundError:
                logger.info(f"No existing vector store found at {self.store_path}, starting fresh")
                self._reset()
                return False
            except OSError as e:
                logger.warning(f"Could not read vector store {self.store_path}: {e}")
                self._reset()
                return False

            # Remember the file even if it is bad, so it is not re-parsed on every query
            self._file_signature = signature

            try:
                snapshot = self._parse_snapshot(raw)
                self._check_snapshot(snapshot)
            except (ValueError, RAGError) as e:
                logger.warning(f"Ignoring vector store {self.store_path}: {e}")
                self._reset(keep_signature=True)
                return False

            self._chunks = list(snapshot.chunks)
            self._content_hashes = dict(snapshot.content_hashes)
            self._dimensions = snapshot.dimensions or (
                len(self._chunks[0].embedding) if self._chunks else None
            )

        logger.info(f"Loaded {len(self._chunks)} chunks from {self.store_path}")
        return True

    async def reload_if_changed(self) -> bool:
        """Reload the snapshot if another writer replaced it.

        Only a ``stat`` is performed when nothing changed, so this is cheap
        enough to call before every query.

        Returns:
            True if the snapshot changed and was reloaded.
        """
        try:
            signature = self._stat_signature()
        except FileNotFoundError:
            return False

        if signature == self._file_signature:
            return False

        await self.load()
        logger.info(f"Vector store reloaded ({self.get_chunk_count()} chunks)")
        return True

    def _write_atomic(self, payload: str) -> FileSignature:
        directory = self.store_path.parent
        directory.mkdir(parents=True, exist_ok=True)

        fd, tmp_path = tempfile.mkstemp(
            dir=str(directory), prefix=f".{self.store_path.name}.", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(payload)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, self.store_path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise

        return self._stat_signature()

    def _read_file(self) -> Tuple[str, FileSignature]:
        signature = self._stat_signature()
        return self.store_path.read_text(encoding="utf-8"), signature

    def _stat_signature(self) -> FileSignature:
        st = os.stat(self.store_path)
        return (st.st_mtime_ns, st.st_ino, st.st_size)

    @staticmethod
    def _parse_snapshot(raw: str) -> VectorStoreSnapshot:
        data = json.loads(raw)

        # Snapshots written before versioning are a bare list of chunks
        if isinstance(data, list):
            return VectorStoreSnapshot(version=0, chunks=data)

        snapshot = VectorStoreSnapshot.model_validate(data)
        if snapshot.version > SNAPSHOT_VERSION:
            raise ValueError(f"Unsupported snapshot version {snapshot.version}")
        return snapshot

    def _check_snapshot(self, snapshot: VectorStoreSnapshot) -> None:
        if snapshot.embedding_model and snapshot.embedding_model != self._embedding_model:
            raise ValueError(
                f"Snapshot was built with {snapshot.embedding_model}, "
                f"provider is {self._embedding_model}"
            )

        expected = snapshot.dimensions or self._provider_dimensions()
        if expected is None and snapshot.chunks:
            expected = len(snapshot.chunks[0].embedding)

        for chunk in snapshot.chunks:
            if len(chunk.embedding) != expected:
                raise EmbeddingDimensionError(
                    expected=expected, actual=len(chunk.embedding), chunk_id=chunk.id
                )

        provider_dimensions = self._provider_dimensions()
        if provider_dimensions and expected and expected != provider_dimensions:
            raise EmbeddingDimensionError(expected=provider_dimensions, actual=expected)

    def _reset(self, keep_signature: bool = False) -> None:
        self._chunks = []
        self._dimensions = None
        self._content_hashes = {}
        if not keep_signature:
            self._file_signature = None

    # =========================================================================
    # Helpers
    # =========================================================================

    async def _embed(self, text: str, operation: str) -> List[float]:
        try:
            embedding = await self._provider.generate_embedding(text)
        except RAGError:
            raise
        except Exception as e:
            logger.error(f"Embedding provider {self._embedding_model} failed during {operation}: {e}")
            raise UpstreamUnavailableError(
                f"Embedding provider unavailable: {e}",
                provider=self._embedding_model,
                operation=operation,
            ) from e

        return [float(x) for x in embedding]

    async def _embed_batch(self, chunks: Sequence[Chunk]) -> List[StoredChunk]:
        logger.info(f"Generating embeddings for {len(chunks)} chunks...")

        batch: List[StoredChunk] = []
        for chunk in chunks:
            embedding = await self._embed(chunk.text, operation="add_chunks")
            self._check_dimensions(embedding, chunk.id)
            batch.append(
                StoredChunk(
                    id=chunk.id,
                    text=chunk.text,
                    metadata=chunk.metadata,
                    embedding=embedding,
                )
            )
        return batch

    def _check_dimensions(self, embedding: List[float], chunk_id: Optional[str] = None) -> None:
        expected = self.dimensions
        if expected is not None and len(embedding) != expected:
            raise EmbeddingDimensionError(expected=expected, actual=len(embedding), chunk_id=chunk_id)

    def _validate_batch(self, batch: Sequence[StoredChunk], dimensions: Optional[int]) -> None:
        # The store may have been cleared or reloaded while the batch was embedded
        expected = dimensions or self._provider_dimensions()
        for chunk in batch:
            if expected is None:
                expected = len(chunk.embedding)
            elif len(chunk.embedding) != expected:
                raise EmbeddingDimensionError(
                    expected=expected, actual=len(chunk.embedding), chunk_id=chunk.id
                )

    # =========================================================================
    # Introspection
    # =========================================================================

    def get_chunk_count(self) -> int:
        return len(self._chunks)

    def get_sources(self) -> List[str]:
        """Distinct sources in insertion order."""
        return list(dict.fromkeys(c.metadata.source for c in self._chunks))

    def has_source(self, source: str) -> bool:
        return any(c.metadata.source == source for c in self._chunks)

    def get_stats(self) -> VectorStoreStats:
        """Summary of the store's contents and its query embedding cache."""
        cache_stats = self._embedding_cache.get_stats()
        return VectorStoreStats(
            chunk_count=self.get_chunk_count(),
            sources=self.get_sources(),
            dimensions=self.dimensions,
            embedding_model=self._embedding_model,
            store_path=str(self.store_path),
            query_embedding_cache=CacheStatsView(**cache_stats.to_dict()),
        )
