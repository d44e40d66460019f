"""Shared test fixtures for docchat tests."""

import hashlib
import re
from typing import List, Optional

import pytest

from docchat.core.vectorstore import VectorStore
from docchat.pipelines.ingestion.chunker import DocumentChunker
from docchat.services.cache_events import CacheInvalidationBus


# ============================================================================
# Fake Providers
# ============================================================================

_WORD = re.compile(r"[a-z0-9]+")


class FakeEmbeddingProvider:
    """Deterministic bag-of-words embeddings.

    Each word is hashed into one of ``dimensions`` buckets, so texts sharing
    words point in similar directions.
    """

    def __init__(self, dimensions: int = 64, model: str = "fake-embed"):
        self.dimensions = dimensions
        self.model = model
        self.calls: List[str] = []
        self.fail_after: Optional[int] = None

    async def generate_embedding(self, text: str) -> List[float]:
        if self.fail_after is not None and len(self.calls) >= self.fail_after:
            raise ConnectionError("embedding backend down")
        self.calls.append(text)

        vector = [0.0] * self.dimensions
        for word in _WORD.findall(text.lower()):
            bucket = int(hashlib.md5(word.encode()).hexdigest(), 16) % self.dimensions
            vector[bucket] += 1.0
        return vector

    def get_dimensions(self) -> int:
        return self.dimensions

    def get_model_name(self) -> str:
        return self.model


class FakeGenerationProvider:
    """Echoes a canned answer and records every prompt."""

    def __init__(self, answer: str = "Run the installer and follow the prompts."):
        self.answer = answer
        self.prompts: List[str] = []
        self.error: Optional[Exception] = None

    async def generate(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if self.error is not None:
            raise self.error
        return self.answer

    def get_model_name(self) -> str:
        return "fake-llm"


class FakeClock:
    """Millisecond clock advanced by hand."""

    def __init__(self, start: float = 1_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, ms: float) -> None:
        self.now += ms


# ============================================================================
# Fixtures
# ============================================================================

@pytest.fixture
def embedding_provider():
    """Create a fresh fake embedding provider."""
    return FakeEmbeddingProvider()


@pytest.fixture
def embedding_provider_factory():
    """Build extra embedding providers (e.g. with other dimensions)."""
    return FakeEmbeddingProvider


@pytest.fixture
def generation_provider():
    """Create a fresh fake generation provider."""
    return FakeGenerationProvider()


@pytest.fixture
def clock():
    """Create a manually advanced clock."""
    return FakeClock()


@pytest.fixture
def store_path(tmp_path):
    """Snapshot path inside a per-test directory."""
    return str(tmp_path / "vector-store.json")


@pytest.fixture
def vector_store(embedding_provider, store_path):
    """Create an empty vector store backed by a temp snapshot file."""
    return VectorStore(embedding_provider, store_path=store_path)


@pytest.fixture
def chunker():
    """Create a chunker with default sizes."""
    return DocumentChunker()


@pytest.fixture
def event_bus():
    """Create an isolated cache invalidation bus."""
    return CacheInvalidationBus()


NODE_DOC = """# Installing Node.js

To install Node.js, download the installer from nodejs.org and run it.
Verify the install with node --version.

# Configuring npm

Set the registry with npm config set registry.
"""

BILLING_DOC = """# Billing

Invoices are sent on the first day of every month.
Payment is due within thirty days.
"""


@pytest.fixture
def node_doc():
    return NODE_DOC


@pytest.fixture
def billing_doc():
    return BILLING_DOC
