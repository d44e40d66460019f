"""Question answering over the indexed corpus."""

from typing import Optional

from docchat.core.errors import GenerationError
from docchat.core.interfaces import IGenerationProvider
from docchat.core.logging import get_logger
from docchat.core.prompts.rag import PromptBuilder
from docchat.core.vectorstore import VectorStore
from docchat.models.query import NO_DOCUMENTATION_ANSWER, ChatResponse, CacheStatsView
from docchat.services.cache_events import CacheInvalidationBus
from docchat.services.chat.conversation_memory import ConversationMemory
from docchat.services.unified_cache.query_cache import QueryCache

logger = get_logger(__name__)


class RetrievalOrchestrator:
    """Answers questions: cache check, retrieve, augment, generate, cache store.

    The query cache holds answers for the current corpus only. When an
    event bus is given the orchestrator clears it on every corpus change
    event; with ``reload_before_ask`` it also clears it whenever another
    process replaced the snapshot on disk.
    """

    def __init__(
        self,
        vector_store: VectorStore,
        generation_provider: IGenerationProvider,
        query_cache: Optional[QueryCache[ChatResponse]] = None,
        prompt_builder: Optional[PromptBuilder] = None,
        top_k: int = 5,
        event_bus: Optional[CacheInvalidationBus] = None,
        conversation_memory: Optional[ConversationMemory] = None,
        reload_before_ask: bool = False,
        name: str = "RetrievalOrchestrator",
    ):
        """Initialize orchestrator.

        Args:
            vector_store: Store searched for every uncached question.
            generation_provider: Produces answers from prompts.
            query_cache: Answer cache; a default one is created if omitted.
            prompt_builder: Prompt renderer.
            top_k: Number of chunks retrieved per question.
            event_bus: Bus whose invalidation events clear the answer cache.
            conversation_memory: Enables conversation history when given.
            reload_before_ask: Check the snapshot file before every question.
            name: Subscriber name used in bus logs.
        """
        self.vector_store = vector_store
        self.generation_provider = generation_provider
        self.query_cache: QueryCache[ChatResponse] = query_cache or QueryCache()
        self.prompt_builder = prompt_builder or PromptBuilder()
        self.top_k = top_k
        self.conversation_memory = conversation_memory
        self.reload_before_ask = reload_before_ask
        self.name = name

        self._event_bus = event_bus
        if event_bus is not None:
            event_bus.on_documents_changed(name, self.clear_cache)
            event_bus.on_clear_all(name, self.clear_cache)
            event_bus.on_invalidate(name, self._on_invalidate)

    async def ask(self, question: str, conversation_id: Optional[str] = None) -> ChatResponse:
        """Answer ``question`` from the indexed documentation.

        Args:
            question: The user's question.
            conversation_id: Conversation the question belongs to. Only used
                when conversation memory is configured.

        Returns:
            The answer with its source chunks. ``cached`` is True when the
            answer came from the query cache.

        Raises:
            UpstreamUnavailableError: If the question cannot be embedded.
            GenerationError: If the language model fails.
        """
        logger.info(f"Question: {question[:100]}")

        if self.reload_before_ask and await self.vector_store.reload_if_changed():
            # Another process changed the corpus; cached answers may be stale
            self.clear_cache()

        history = self._get_history(conversation_id)

        # Answers depend on history, so they are only shared without it
        if not history:
            cached = self.query_cache.get(question)
            if cached is not None:
                logger.info("Returning cached response")
                response = cached.model_copy(update={"cached": True})
                self._remember(conversation_id, question, response.answer)
                return response

        sources = await self.vector_store.search(question, self.top_k)

        if not sources:
            logger.info("No documentation available for question")
            response = ChatResponse(answer=NO_DOCUMENTATION_ANSWER, sources=[])
            self._remember(conversation_id, question, response.answer)
            return response

        prompt = self.prompt_builder.build_rag_prompt(question, sources, history=history)

        logger.info(f"Generating answer from {len(sources)} chunks...")
        answer = await self._generate(prompt)

        response = ChatResponse(answer=answer, sources=sources, cached=False)
        if not history:
            self.query_cache.set(question, response)

        self._remember(conversation_id, question, answer)
        return response

    async def _generate(self, prompt: str) -> str:
        model = self.generation_provider.get_model_name()
        try:
            return await self.generation_provider.generate(prompt)
        except GenerationError:
            raise
        except Exception as e:
            logger.error(f"Generation with {model} failed: {e}")
            raise GenerationError(f"Failed to generate answer: {e}", provider=model) from e

    def _get_history(self, conversation_id: Optional[str]) -> str:
        if self.conversation_memory is None or not conversation_id:
            return ""
        return self.conversation_memory.format_for_llm(conversation_id)

    def _remember(self, conversation_id: Optional[str], question: str, answer: str) -> None:
        if self.conversation_memory is None or not conversation_id:
            return
        self.conversation_memory.add_message(conversation_id, "user", question)
        self.conversation_memory.add_message(conversation_id, "assistant", answer)

    def _on_invalidate(self, pattern: Optional[str] = None) -> None:
        # Answers are keyed by hashed question, so a pattern cannot be matched
        self.clear_cache()

    def get_cache_stats(self) -> CacheStatsView:
        return CacheStatsView(**self.query_cache.get_stats().to_dict())

    def clear_cache(self) -> None:
        self.query_cache.clear()

    def close(self) -> None:
        """Unsubscribe from the event bus."""
        if self._event_bus is None:
            return
        self._event_bus.off_documents_changed(self.clear_cache)
        self._event_bus.off_clear_all(self.clear_cache)
        self._event_bus.off_invalidate(self._on_invalidate)
        self._event_bus = None
