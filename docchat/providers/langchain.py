"""Adapters exposing LangChain models as engine providers."""

from typing import List, Optional

from langchain_core.embeddings import Embeddings
from langchain_core.runnables import Runnable

from docchat.core.errors import GenerationError, UpstreamUnavailableError
from docchat.core.logging import get_logger

logger = get_logger(__name__)


class LangChainEmbeddingProvider:
    """Wraps any langchain-core ``Embeddings`` implementation."""

    def __init__(self, embeddings: Embeddings, model_name: str, dimensions: Optional[int] = None):
        """Initialize adapter.

        Args:
            embeddings: LangChain embeddings model.
            model_name: Identifier used to namespace cache keys and snapshots.
            dimensions: Vector size, if known up front. Otherwise it is
                learned from the first embedding.
        """
        self.embeddings = embeddings
        self.model_name = model_name
        self.dimensions = dimensions

    async def generate_embedding(self, text: str) -> List[float]:
        try:
            embedding = await self.embeddings.aembed_query(text)
        except Exception as e:
            raise UpstreamUnavailableError(
                f"Embedding failed: {e}",
                provider=self.model_name,
                operation="embed",
            ) from e

        if self.dimensions is None:
            self.dimensions = len(embedding)
        return list(embedding)

    def get_dimensions(self) -> int:
        return self.dimensions or 0

    def get_model_name(self) -> str:
        return self.model_name


class LangChainGenerationProvider:
    """Wraps a LangChain chat model or any string-producing ``Runnable``."""

    def __init__(self, llm: Runnable, model_name: str):
        self.llm = llm
        self.model_name = model_name

    async def generate(self, prompt: str) -> str:
        try:
            response = await self.llm.ainvoke(prompt)
        except Exception as e:
            logger.error(f"LLM generation failed: {e}")
            raise GenerationError(f"Generation failed: {e}", provider=self.model_name) from e

        content = response.content if hasattr(response, "content") else response
        return str(content).strip()

    def get_model_name(self) -> str:
        return self.model_name
