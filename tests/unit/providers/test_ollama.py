"""Tests for the Ollama providers."""

import json

import httpx
import pytest

from docchat.core.errors import GenerationError, UpstreamUnavailableError
from docchat.core.interfaces import IEmbeddingProvider, IGenerationProvider
from docchat.providers.ollama import OllamaEmbeddingProvider, OllamaGenerationProvider


def mock_client(handler):
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


class TestOllamaEmbeddingProvider:
    """Tests for OllamaEmbeddingProvider."""

    @pytest.mark.asyncio
    async def test_generate_embedding(self):
        """Test the request payload and parsed vector."""
        requests = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(200, json={"embedding": [0.1, 0.2, 0.3]})

        async with mock_client(handler) as client:
            provider = OllamaEmbeddingProvider(
                model="nomic-embed-text", dimensions=3, host="http://ollama:11434", client=client
            )
            embedding = await provider.generate_embedding("hello")

        assert embedding == [0.1, 0.2, 0.3]
        assert str(requests[0].url) == "http://ollama:11434/api/embeddings"
        assert json.loads(requests[0].content) == {"model": "nomic-embed-text", "prompt": "hello"}

    @pytest.mark.asyncio
    async def test_http_error(self):
        """Test server errors become UpstreamUnavailableError."""
        async with mock_client(lambda request: httpx.Response(500, text="boom")) as client:
            provider = OllamaEmbeddingProvider(client=client)
            with pytest.raises(UpstreamUnavailableError) as exc_info:
                await provider.generate_embedding("hello")

        assert exc_info.value.provider == "nomic-embed-text"
        assert exc_info.value.operation == "embed"

    @pytest.mark.asyncio
    async def test_connection_error(self):
        """Test an unreachable server becomes UpstreamUnavailableError."""

        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        async with mock_client(handler) as client:
            provider = OllamaEmbeddingProvider(client=client)
            with pytest.raises(UpstreamUnavailableError):
                await provider.generate_embedding("hello")

    @pytest.mark.asyncio
    async def test_missing_embedding(self):
        """Test an empty response is an upstream failure."""
        async with mock_client(lambda request: httpx.Response(200, json={})) as client:
            provider = OllamaEmbeddingProvider(client=client)
            with pytest.raises(UpstreamUnavailableError):
                await provider.generate_embedding("hello")

    def test_metadata(self):
        """Test model name and dimensions are reported."""
        provider = OllamaEmbeddingProvider(model="m", dimensions=12)
        assert provider.get_model_name() == "m"
        assert provider.get_dimensions() == 12
        assert isinstance(provider, IEmbeddingProvider)

    @pytest.mark.asyncio
    async def test_is_available(self):
        """Test the health probe."""
        async with mock_client(lambda request: httpx.Response(200, json={"models": []})) as client:
            assert await OllamaEmbeddingProvider(client=client).is_available() is True

        def down(request):
            raise httpx.ConnectError("refused", request=request)

        async with mock_client(down) as client:
            assert await OllamaEmbeddingProvider(client=client).is_available() is False


class TestOllamaGenerationProvider:
    """Tests for OllamaGenerationProvider."""

    @pytest.mark.asyncio
    async def test_generate(self):
        """Test a non-streaming completion."""
        requests = []

        def handler(request):
            requests.append(json.loads(request.content))
            return httpx.Response(200, json={"response": "The answer."})

        async with mock_client(handler) as client:
            provider = OllamaGenerationProvider(model="llama3.2", client=client)
            assert await provider.generate("prompt") == "The answer."

        assert requests[0] == {"model": "llama3.2", "prompt": "prompt", "stream": False}

    @pytest.mark.asyncio
    async def test_generation_error(self):
        """Test failures raise GenerationError."""
        async with mock_client(lambda request: httpx.Response(503)) as client:
            provider = OllamaGenerationProvider(client=client)
            with pytest.raises(GenerationError):
                await provider.generate("prompt")

    def test_protocol(self):
        """Test the provider satisfies the generation protocol."""
        assert isinstance(OllamaGenerationProvider(), IGenerationProvider)

    @pytest.mark.asyncio
    async def test_injected_client_left_open(self):
        """Test aclose does not close a caller-owned client."""
        client = mock_client(lambda request: httpx.Response(200, json={"response": "ok"}))
        provider = OllamaGenerationProvider(client=client)
        await provider.aclose()

        assert client.is_closed is False
        await client.aclose()
