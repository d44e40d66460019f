"""Dependency injection container for service management.

Wires the engine's components together from settings. Nothing in the
engine is a module-level singleton; every collaborator is reached through
a container instance.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional, TYPE_CHECKING

from docchat.core.logging import get_logger

if TYPE_CHECKING:
    from docchat.core.config import Settings
    from docchat.core.interfaces import IEmbeddingProvider, IGenerationProvider
    from docchat.core.vectorstore import VectorStore
    from docchat.pipelines.ingestion.chunker import DocumentChunker
    from docchat.pipelines.ingestion.deduplicator import DocumentDeduplicator
    from docchat.pipelines.ingestion.orchestrator import IngestionOrchestrator
    from docchat.services.cache_events import CacheInvalidationBus
    from docchat.services.chat.orchestrator import RetrievalOrchestrator

logger = get_logger(__name__)


class ServiceNotInitializedError(Exception):
    """Raised when accessing a service that hasn't been initialized."""

    def __init__(self, service_name: str):
        super().__init__(f"Service '{service_name}' has not been initialized. "
                         f"Call container.initialize() first.")
        self.service_name = service_name


@dataclass
class ServiceContainer:
    """Centralized container for dependency injection.

    Usage:
        container = ServiceContainer()
        await container.initialize(settings)

        response = await container.retrieval_orchestrator.ask("How do I start?")

        await container.shutdown()

    Providers default to Ollama; pass others in to use a different backend.
    Providers passed in are owned by the caller and not closed on shutdown.
    """

    _settings: Optional[Settings] = field(default=None, repr=False)
    _event_bus: Optional[CacheInvalidationBus] = field(default=None, repr=False)
    _embedding_provider: Optional[IEmbeddingProvider] = field(default=None, repr=False)
    _generation_provider: Optional[IGenerationProvider] = field(default=None, repr=False)
    _vector_store: Optional[VectorStore] = field(default=None, repr=False)
    _chunker: Optional[DocumentChunker] = field(default=None, repr=False)
    _deduplicator: Optional[DocumentDeduplicator] = field(default=None, repr=False)
    _ingestion_orchestrator: Optional[IngestionOrchestrator] = field(default=None, repr=False)
    _retrieval_orchestrator: Optional[RetrievalOrchestrator] = field(default=None, repr=False)
    _owned_providers: list = field(default_factory=list, repr=False)
    _initialized: bool = field(default=False, repr=True)

    async def initialize(
        self,
        settings: Settings,
        embedding_provider: Optional[IEmbeddingProvider] = None,
        generation_provider: Optional[IGenerationProvider] = None,
    ) -> None:
        """Initialize all services and load the snapshot.

        Args:
            settings: Application settings.
            embedding_provider: Embedding backend; Ollama if omitted.
            generation_provider: Generation backend; Ollama if omitted.

        Raises:
            Exception: If any service fails to initialize.
        """
        if self._initialized:
            logger.warning("Container already initialized, skipping")
            return

        self._settings = settings
        logger.info("Initializing service container...")

        try:
            # Import here to avoid circular imports
            from docchat.core.vectorstore import VectorStore
            from docchat.pipelines.ingestion.chunker import DocumentChunker
            from docchat.pipelines.ingestion.deduplicator import DocumentDeduplicator
            from docchat.pipelines.ingestion.orchestrator import IngestionOrchestrator
            from docchat.providers.ollama import OllamaEmbeddingProvider, OllamaGenerationProvider
            from docchat.services.cache_events import CacheInvalidationBus
            from docchat.services.chat.conversation_memory import ConversationMemory
            from docchat.services.chat.orchestrator import RetrievalOrchestrator
            from docchat.services.unified_cache.embedding_cache import EmbeddingCache
            from docchat.services.unified_cache.query_cache import QueryCache

            if embedding_provider is None:
                embedding_provider = OllamaEmbeddingProvider(
                    model=settings.ollama_embedding_model,
                    dimensions=settings.ollama_embedding_dimensions,
                    host=settings.ollama_host,
                    timeout=settings.ollama_timeout,
                )
                self._owned_providers.append(embedding_provider)
            if generation_provider is None:
                generation_provider = OllamaGenerationProvider(
                    model=settings.ollama_chat_model,
                    host=settings.ollama_host,
                    timeout=settings.ollama_timeout,
                )
                self._owned_providers.append(generation_provider)

            self._embedding_provider = embedding_provider
            self._generation_provider = generation_provider
            logger.info(
                f"Providers: embeddings={embedding_provider.get_model_name()}, "
                f"generation={generation_provider.get_model_name()}"
            )

            self._event_bus = CacheInvalidationBus()

            self._vector_store = VectorStore(
                embedding_provider,
                store_path=settings.vector_store_path,
                embedding_cache=EmbeddingCache(
                    max_size=settings.embedding_cache_max_size,
                    ttl_ms=settings.embedding_cache_ttl_ms,
                    model=embedding_provider.get_model_name(),
                ),
            )
            await self._vector_store.load()
            logger.info(f"Vector store initialized ({self._vector_store.get_chunk_count()} chunks)")

            self._chunker = DocumentChunker(
                max_chunk_size=settings.chunk_size,
                chunk_overlap=settings.chunk_overlap,
            )
            if settings.enable_deduplication:
                self._deduplicator = DocumentDeduplicator()
                self._deduplicator.load_hashes(self._vector_store.get_content_hashes())

            self._ingestion_orchestrator = IngestionOrchestrator(
                self._vector_store,
                self._chunker,
                self._event_bus,
                deduplicator=self._deduplicator,
                duplicate_policy=settings.duplicate_policy,
            )

            memory = None
            if settings.enable_conversation_memory:
                memory = ConversationMemory(
                    max_messages=settings.conversation_max_messages,
                    max_conversations=settings.conversation_max_conversations,
                )

            self._retrieval_orchestrator = RetrievalOrchestrator(
                self._vector_store,
                generation_provider,
                query_cache=QueryCache(
                    max_size=settings.query_cache_max_size,
                    ttl_ms=settings.query_cache_ttl_ms,
                ),
                top_k=settings.retrieval_top_k,
                event_bus=self._event_bus,
                conversation_memory=memory,
                reload_before_ask=settings.reload_on_query,
            )

            self._initialized = True
            logger.info("Service container initialized successfully")

        except Exception as e:
            logger.error(f"Failed to initialize service container: {e}")
            await self.shutdown()
            raise

    async def shutdown(self) -> None:
        """Shutdown all services and cleanup resources."""
        logger.info("Shutting down service container...")

        if self._retrieval_orchestrator:
            self._retrieval_orchestrator.close()

        for provider in self._owned_providers:
            try:
                await provider.aclose()
            except Exception as e:
                logger.error(f"Error closing provider {provider.get_model_name()}: {e}")
        self._owned_providers.clear()

        self._initialized = False
        logger.info("Service container shut down")

    @property
    def is_initialized(self) -> bool:
        """Check if the container is initialized."""
        return self._initialized

    @property
    def settings(self) -> Settings:
        if self._settings is None:
            raise ServiceNotInitializedError("settings")
        return self._settings

    @property
    def event_bus(self) -> CacheInvalidationBus:
        return self._require("event_bus", self._event_bus)

    @property
    def embedding_provider(self) -> IEmbeddingProvider:
        return self._require("embedding_provider", self._embedding_provider)

    @property
    def generation_provider(self) -> IGenerationProvider:
        return self._require("generation_provider", self._generation_provider)

    @property
    def vector_store(self) -> VectorStore:
        return self._require("vector_store", self._vector_store)

    @property
    def chunker(self) -> DocumentChunker:
        return self._require("chunker", self._chunker)

    @property
    def deduplicator(self) -> Optional[DocumentDeduplicator]:
        """Deduplicator, or None when deduplication is disabled."""
        if not self._initialized:
            raise ServiceNotInitializedError("deduplicator")
        return self._deduplicator

    @property
    def ingestion_orchestrator(self) -> IngestionOrchestrator:
        return self._require("ingestion_orchestrator", self._ingestion_orchestrator)

    @property
    def retrieval_orchestrator(self) -> RetrievalOrchestrator:
        return self._require("retrieval_orchestrator", self._retrieval_orchestrator)

    @staticmethod
    def _require(name: str, service: Any) -> Any:
        if service is None:
            raise ServiceNotInitializedError(name)
        return service
