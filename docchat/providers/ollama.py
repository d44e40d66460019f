"""Ollama HTTP API providers."""

from typing import Any, Dict, List, Optional

import httpx

from docchat.core.errors import GenerationError, UpstreamUnavailableError
from docchat.core.logging import get_logger

logger = get_logger(__name__)

DEFAULT_OLLAMA_HOST = "http://localhost:11434"


class OllamaClient:
    """Thin async wrapper over the Ollama REST API.

    Owns an ``httpx.AsyncClient`` unless one is passed in, in which case the
    caller keeps ownership and ``aclose`` leaves it open.
    """

    def __init__(
        self,
        host: str = DEFAULT_OLLAMA_HOST,
        timeout: float = 120.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.host = host.rstrip("/")
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout)

    async def post(self, path: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        response = await self._client.post(f"{self.host}{path}", json=payload)
        if response.status_code != 200:
            logger.error(f"Ollama {path} error {response.status_code}: {response.text}")
        response.raise_for_status()
        return response.json()

    async def is_available(self) -> bool:
        """Check that the Ollama server answers."""
        try:
            response = await self._client.get(f"{self.host}/api/tags")
            return response.status_code == 200
        except httpx.HTTPError as e:
            logger.warning(f"Ollama not reachable at {self.host}: {e}")
            return False

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()


class OllamaEmbeddingProvider:
    """Embeddings from ``/api/embeddings``."""

    def __init__(
        self,
        model: str = "nomic-embed-text",
        dimensions: int = 768,
        host: str = DEFAULT_OLLAMA_HOST,
        timeout: float = 120.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.model = model
        self.dimensions = dimensions
        self._ollama = OllamaClient(host=host, timeout=timeout, client=client)

    async def generate_embedding(self, text: str) -> List[float]:
        """Embed ``text`` with the configured model.

        Raises:
            UpstreamUnavailableError: If the request fails or the response
                carries no embedding.
        """
        try:
            data = await self._ollama.post(
                "/api/embeddings", {"model": self.model, "prompt": text}
            )
        except httpx.HTTPError as e:
            raise UpstreamUnavailableError(
                f"Ollama embedding request failed: {e}",
                provider=self.model,
                operation="embed",
            ) from e

        embedding = data.get("embedding")
        if not embedding:
            raise UpstreamUnavailableError(
                "Ollama returned no embedding",
                provider=self.model,
                operation="embed",
            )
        return embedding

    def get_dimensions(self) -> int:
        return self.dimensions

    def get_model_name(self) -> str:
        return self.model

    async def is_available(self) -> bool:
        return await self._ollama.is_available()

    async def aclose(self) -> None:
        await self._ollama.aclose()


class OllamaGenerationProvider:
    """Non-streaming completions from ``/api/generate``."""

    def __init__(
        self,
        model: str = "llama3.2",
        host: str = DEFAULT_OLLAMA_HOST,
        timeout: float = 120.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.model = model
        self._ollama = OllamaClient(host=host, timeout=timeout, client=client)

    async def generate(self, prompt: str) -> str:
        """Generate a completion for ``prompt``.

        Raises:
            GenerationError: If the request fails.
        """
        try:
            data = await self._ollama.post(
                "/api/generate",
                {"model": self.model, "prompt": prompt, "stream": False},
            )
        except httpx.HTTPError as e:
            raise GenerationError(f"Ollama generation failed: {e}", provider=self.model) from e

        return data.get("response", "")

    def get_model_name(self) -> str:
        return self.model

    async def is_available(self) -> bool:
        return await self._ollama.is_available()

    async def aclose(self) -> None:
        await self._ollama.aclose()
