"""Main ingestion pipeline orchestrator."""

from typing import Iterable, List, Optional

from docchat.core.errors import DuplicateDocumentError
from docchat.core.logging import get_logger
from docchat.core.vectorstore import VectorStore
from docchat.models.documents import ClearResult, DocumentInput, IngestionResult
from docchat.pipelines.ingestion.chunker import DocumentChunker
from docchat.pipelines.ingestion.deduplicator import DocumentDeduplicator
from docchat.services.cache_events import CacheInvalidationBus

logger = get_logger(__name__)

DUPLICATE_POLICIES = ("replace", "reject", "accumulate")


class IngestionOrchestrator:
    """Orchestrates the document ingestion pipeline.

    Coordinates deduplication, chunking, embedding and persistence, and
    announces corpus changes on the event bus once the snapshot has been
    written.

    ``duplicate_policy`` decides what happens when a source that is already
    indexed is ingested again:

    - ``replace``: the source's previous chunks are swapped for the new
      ones once those are embedded; a failed embedding keeps the old ones.
    - ``reject``: ``DuplicateDocumentError`` is raised.
    - ``accumulate``: new chunks are appended next to the old ones.
    """

    def __init__(
        self,
        vector_store: VectorStore,
        chunker: DocumentChunker,
        event_bus: CacheInvalidationBus,
        deduplicator: Optional[DocumentDeduplicator] = None,
        duplicate_policy: str = "replace",
        name: str = "IngestionOrchestrator",
    ):
        """Initialize ingestion orchestrator.

        Args:
            vector_store: Store receiving the chunks.
            chunker: Splits documents into chunks.
            event_bus: Bus notified after every persisted change.
            deduplicator: Optional exact-content duplicate detector.
            duplicate_policy: One of ``replace``, ``reject``, ``accumulate``.
            name: Emitter name used in bus logs.
        """
        if duplicate_policy not in DUPLICATE_POLICIES:
            raise ValueError(
                f"duplicate_policy must be one of {', '.join(DUPLICATE_POLICIES)}, "
                f"got {duplicate_policy!r}"
            )

        self._vector_store = vector_store
        self._chunker = chunker
        self._event_bus = event_bus
        self._deduplicator = deduplicator
        self.duplicate_policy = duplicate_policy
        self.name = name

    async def ingest(self, content: str, source: str) -> IngestionResult:
        """Ingest a single document and persist the store.

        Args:
            content: Clean document text.
            source: Source name, usually the original filename.

        Returns:
            Ingestion result. Content already indexed under another source
            is reported as a duplicate and not indexed again.

        Raises:
            DuplicateDocumentError: If the source exists and the policy is
                ``reject``.
            UpstreamUnavailableError: If embedding fails.
            SnapshotError: If the store cannot be saved.
        """
        result = await self._ingest(content, source)
        if result.chunks_added or result.chunks_replaced:
            await self._persist_and_notify()
        return result

    async def ingest_many(self, documents: Iterable[DocumentInput]) -> List[IngestionResult]:
        """Ingest several documents with a single save at the end.

        If one document fails, the documents ingested before it are still
        persisted and announced before the error propagates.
        """
        results: List[IngestionResult] = []
        try:
            for document in documents:
                results.append(await self._ingest(document.content, document.source))
        finally:
            if any(r.chunks_added or r.chunks_replaced for r in results):
                await self._persist_and_notify()

        total = sum(r.chunks_added for r in results)
        logger.info(f"Ingested {len(results)} documents ({total} chunks)")
        return results

    async def clear_documents(self) -> ClearResult:
        """Remove every chunk, persist the empty store and announce it."""
        removed = await self._vector_store.clear_all()
        await self._vector_store.save()

        if self._deduplicator is not None:
            self._deduplicator.clear()

        self._event_bus.emit_documents_changed(self.name)
        return ClearResult(chunks_removed=removed)

    async def _ingest(self, content: str, source: str) -> IngestionResult:
        content_hash = DocumentDeduplicator.content_hash(content)
        if self._deduplicator is not None:
            check = self._deduplicator.check_duplicate(content, source)
            if check.is_duplicate:
                return IngestionResult(
                    source=source,
                    content_hash=content_hash,
                    duplicate=True,
                    existing_source=check.existing_source,
                )

        exists = self._vector_store.has_source(source)
        if exists and self.duplicate_policy == "reject":
            raise DuplicateDocumentError(
                f"Source {source} is already indexed",
                source=source,
                existing_source=source,
            )

        chunks = self._chunker.chunk_document(content, source)
        if not chunks:
            logger.warning(f"No content to index in {source}")

        replaced = 0
        if exists and self.duplicate_policy == "replace":
            # Old chunks are only dropped once the new ones are embedded
            replaced = await self._vector_store.replace_source(source, chunks, content_hash=content_hash)
            added = len(chunks)
            if self._deduplicator is not None:
                self._deduplicator.unregister_source(source)
        else:
            added = await self._vector_store.add_chunks(chunks)
            if added:
                self._vector_store.set_content_hash(source, content_hash)

        if self._deduplicator is not None and added:
            self._deduplicator.register(content_hash, source)

        logger.info(f"Processed {source}: {added} chunks added, {replaced} replaced")
        return IngestionResult(
            source=source,
            chunks_added=added,
            chunks_replaced=replaced,
            content_hash=content_hash,
        )

    async def _persist_and_notify(self) -> None:
        # Subscribers only hear about changes that survived to disk
        await self._vector_store.save()
        self._event_bus.emit_documents_changed(self.name)
