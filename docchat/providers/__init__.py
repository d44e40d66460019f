"""Embedding and generation providers."""

from docchat.providers.langchain import LangChainEmbeddingProvider, LangChainGenerationProvider
from docchat.providers.ollama import OllamaClient, OllamaEmbeddingProvider, OllamaGenerationProvider

__all__ = [
    "LangChainEmbeddingProvider",
    "LangChainGenerationProvider",
    "OllamaClient",
    "OllamaEmbeddingProvider",
    "OllamaGenerationProvider",
]
