"""Tests for the ingestion orchestrator."""

import pytest

from docchat.core.errors import DuplicateDocumentError, SnapshotError, UpstreamUnavailableError
from docchat.core.vectorstore import VectorStore
from docchat.models.documents import DocumentInput
from docchat.pipelines.ingestion.deduplicator import DocumentDeduplicator
from docchat.pipelines.ingestion.orchestrator import IngestionOrchestrator


@pytest.fixture
def deduplicator():
    return DocumentDeduplicator()


@pytest.fixture
def changes(event_bus):
    """Record documents:changed notifications."""
    seen = []
    event_bus.on_documents_changed("test", lambda: seen.append(1))
    return seen


@pytest.fixture
def orchestrator(vector_store, chunker, event_bus, deduplicator):
    return IngestionOrchestrator(vector_store, chunker, event_bus, deduplicator=deduplicator)


class TestIngest:
    """Tests for single-document ingestion."""

    @pytest.mark.asyncio
    async def test_ingest_adds_persists_and_notifies(
        self, orchestrator, vector_store, embedding_provider, store_path, node_doc, changes
    ):
        """Test a document is chunked, saved and announced."""
        result = await orchestrator.ingest(node_doc, "node.md")

        assert result.chunks_added == 2
        assert result.duplicate is False
        assert vector_store.get_chunk_count() == 2
        assert changes == [1]

        reloaded = VectorStore(embedding_provider, store_path=store_path)
        assert await reloaded.load() is True
        assert reloaded.get_chunk_count() == 2

    @pytest.mark.asyncio
    async def test_duplicate_content_is_skipped(self, orchestrator, vector_store, node_doc, changes):
        """Test identical content under a new name is not indexed."""
        await orchestrator.ingest(node_doc, "node.md")
        result = await orchestrator.ingest(node_doc, "copy-of-node.md")

        assert result.duplicate is True
        assert result.existing_source == "node.md"
        assert "node.md" in result.message
        assert vector_store.get_sources() == ["node.md"]
        assert changes == [1]

    @pytest.mark.asyncio
    async def test_blank_document(self, orchestrator, vector_store, changes):
        """Test an empty document changes nothing."""
        result = await orchestrator.ingest("   ", "empty.md")
        assert result.chunks_added == 0
        assert vector_store.get_chunk_count() == 0
        assert changes == []

    @pytest.mark.asyncio
    async def test_embedding_failure_does_not_notify(
        self, orchestrator, embedding_provider, node_doc, changes, store_path
    ):
        """Test nothing is saved or announced when embedding fails."""
        embedding_provider.fail_after = 0

        with pytest.raises(UpstreamUnavailableError):
            await orchestrator.ingest(node_doc, "node.md")

        assert changes == []

    @pytest.mark.asyncio
    async def test_save_failure_does_not_notify(
        self, embedding_provider, chunker, event_bus, changes, tmp_path, node_doc
    ):
        """Test subscribers are not told about unsaved changes."""
        blocker = tmp_path / "file"
        blocker.write_text("x")
        store = VectorStore(embedding_provider, store_path=str(blocker / "store.json"))
        orchestrator = IngestionOrchestrator(store, chunker, event_bus)

        with pytest.raises(SnapshotError):
            await orchestrator.ingest(node_doc, "node.md")
        assert changes == []


class TestDuplicatePolicy:
    """Tests for re-ingesting an already indexed source."""

    @pytest.mark.asyncio
    async def test_replace(self, vector_store, chunker, event_bus, node_doc, billing_doc):
        """Test replace swaps the old chunks for the new ones."""
        orchestrator = IngestionOrchestrator(vector_store, chunker, event_bus, duplicate_policy="replace")
        await orchestrator.ingest(node_doc, "doc.md")
        result = await orchestrator.ingest(billing_doc, "doc.md")

        assert result.chunks_replaced == 2
        assert result.chunks_added == 1
        assert vector_store.get_chunk_count() == 1

    @pytest.mark.asyncio
    async def test_failed_replace_keeps_previous_version(
        self, orchestrator, vector_store, embedding_provider, store_path, node_doc, billing_doc, changes
    ):
        """Test a replace that cannot embed keeps the old chunks, also on disk."""
        await orchestrator.ingest(node_doc, "guide.md")

        embedding_provider.fail_after = len(embedding_provider.calls)
        with pytest.raises(UpstreamUnavailableError):
            await orchestrator.ingest(billing_doc, "guide.md")
        assert vector_store.get_sources() == ["guide.md"]
        assert changes == [1]

        embedding_provider.fail_after = None
        await orchestrator.ingest("# Other\nSomething else entirely.", "other.md")

        reloaded = VectorStore(embedding_provider.__class__(), store_path=store_path)
        await reloaded.load()
        assert reloaded.get_sources() == ["guide.md", "other.md"]
        assert reloaded.get_chunk_count() == 3

    @pytest.mark.asyncio
    async def test_replace_updates_recorded_hash(self, orchestrator, vector_store, deduplicator, node_doc, billing_doc):
        """Test the new content is what later duplicates are checked against."""
        await orchestrator.ingest(node_doc, "doc.md")
        await orchestrator.ingest(billing_doc, "doc.md")

        assert vector_store.get_content_hashes() == {"doc.md": DocumentDeduplicator.content_hash(billing_doc)}
        assert deduplicator.check_duplicate(node_doc, "new.md").is_duplicate is False
        assert deduplicator.check_duplicate(billing_doc, "new.md").existing_source == "doc.md"

    @pytest.mark.asyncio
    async def test_replace_unchanged_content(self, orchestrator, vector_store, node_doc):
        """Test re-ingesting the same file does not grow the store."""
        await orchestrator.ingest(node_doc, "node.md")
        await orchestrator.ingest(node_doc, "node.md")
        assert vector_store.get_chunk_count() == 2

    @pytest.mark.asyncio
    async def test_reject(self, vector_store, chunker, event_bus, node_doc, billing_doc):
        """Test reject refuses a known source."""
        orchestrator = IngestionOrchestrator(vector_store, chunker, event_bus, duplicate_policy="reject")
        await orchestrator.ingest(node_doc, "doc.md")

        with pytest.raises(DuplicateDocumentError) as exc_info:
            await orchestrator.ingest(billing_doc, "doc.md")
        assert exc_info.value.source == "doc.md"
        assert vector_store.get_chunk_count() == 2

    @pytest.mark.asyncio
    async def test_accumulate(self, vector_store, chunker, event_bus, node_doc):
        """Test accumulate appends chunks with the same IDs."""
        orchestrator = IngestionOrchestrator(vector_store, chunker, event_bus, duplicate_policy="accumulate")
        await orchestrator.ingest(node_doc, "doc.md")
        await orchestrator.ingest(node_doc, "doc.md")
        assert vector_store.get_chunk_count() == 4

    def test_unknown_policy(self, vector_store, chunker, event_bus):
        """Test an unknown policy is rejected up front."""
        with pytest.raises(ValueError):
            IngestionOrchestrator(vector_store, chunker, event_bus, duplicate_policy="merge")


class TestBatchAndClear:
    """Tests for ingest_many and clear_documents."""

    @pytest.mark.asyncio
    async def test_ingest_many_saves_once(self, orchestrator, vector_store, node_doc, billing_doc, changes):
        """Test a batch is announced once."""
        results = await orchestrator.ingest_many([
            DocumentInput(content=node_doc, source="node.md"),
            DocumentInput(content=billing_doc, source="billing.md"),
        ])

        assert [r.chunks_added for r in results] == [2, 1]
        assert vector_store.get_sources() == ["node.md", "billing.md"]
        assert changes == [1]

    @pytest.mark.asyncio
    async def test_ingest_many_persists_before_failure(
        self, orchestrator, embedding_provider, store_path, node_doc, billing_doc, changes
    ):
        """Test documents ingested before a failure are still saved."""
        embedding_provider.fail_after = 2

        with pytest.raises(UpstreamUnavailableError):
            await orchestrator.ingest_many([
                DocumentInput(content=node_doc, source="node.md"),
                DocumentInput(content=billing_doc, source="billing.md"),
            ])

        assert changes == [1]
        reloaded = VectorStore(embedding_provider.__class__(), store_path=store_path)
        await reloaded.load()
        assert reloaded.get_sources() == ["node.md"]

    @pytest.mark.asyncio
    async def test_clear_documents(self, orchestrator, vector_store, deduplicator, node_doc, changes, store_path):
        """Test clearing empties, persists, resets dedup and notifies."""
        await orchestrator.ingest(node_doc, "node.md")
        result = await orchestrator.clear_documents()

        assert result.chunks_removed == 2
        assert vector_store.get_chunk_count() == 0
        assert deduplicator.get_stats()["total_hashes"] == 0
        assert changes == [1, 1]

        # The same content can be ingested again under any name
        again = await orchestrator.ingest(node_doc, "renamed.md")
        assert again.duplicate is False
