"""Tests for the LangChain provider adapters."""

import pytest
from langchain_core.embeddings import DeterministicFakeEmbedding
from langchain_core.language_models import FakeListChatModel
from langchain_core.runnables import RunnableLambda

from docchat.core.errors import GenerationError, UpstreamUnavailableError
from docchat.providers.langchain import LangChainEmbeddingProvider, LangChainGenerationProvider


class TestLangChainEmbeddingProvider:
    """Tests for LangChainEmbeddingProvider."""

    @pytest.mark.asyncio
    async def test_embeds_with_wrapped_model(self):
        """Test vectors come from the LangChain model."""
        provider = LangChainEmbeddingProvider(DeterministicFakeEmbedding(size=16), model_name="fake")
        first = await provider.generate_embedding("hello")
        second = await provider.generate_embedding("hello")

        assert len(first) == 16
        assert first == second
        assert provider.get_model_name() == "fake"

    @pytest.mark.asyncio
    async def test_learns_dimensions(self):
        """Test unknown dimensions are learned from the first vector."""
        provider = LangChainEmbeddingProvider(DeterministicFakeEmbedding(size=8), model_name="fake")
        assert provider.get_dimensions() == 0
        await provider.generate_embedding("x")
        assert provider.get_dimensions() == 8

    @pytest.mark.asyncio
    async def test_failure_wrapped(self):
        """Test model errors become UpstreamUnavailableError."""

        class Broken(DeterministicFakeEmbedding):
            async def aembed_query(self, text):
                raise RuntimeError("down")

        provider = LangChainEmbeddingProvider(Broken(size=4), model_name="broken")
        with pytest.raises(UpstreamUnavailableError):
            await provider.generate_embedding("x")


class TestLangChainGenerationProvider:
    """Tests for LangChainGenerationProvider."""

    @pytest.mark.asyncio
    async def test_chat_model_content(self):
        """Test message content is extracted from chat models."""
        provider = LangChainGenerationProvider(FakeListChatModel(responses=["  Answer.  "]), model_name="chat")
        assert await provider.generate("prompt") == "Answer."

    @pytest.mark.asyncio
    async def test_plain_runnable(self):
        """Test string-returning runnables work as well."""
        provider = LangChainGenerationProvider(RunnableLambda(lambda p: p.upper()), model_name="upper")
        assert await provider.generate("abc") == "ABC"

    @pytest.mark.asyncio
    async def test_failure_wrapped(self):
        """Test errors become GenerationError."""

        def fail(prompt):
            raise RuntimeError("quota exceeded")

        provider = LangChainGenerationProvider(RunnableLambda(fail), model_name="broken")
        with pytest.raises(GenerationError) as exc_info:
            await provider.generate("x")
        assert exc_info.value.provider == "broken"
