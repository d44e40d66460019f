"""Protocol definitions for the engine's collaborators.

The core is agnostic to how embeddings and answers are produced; anything
satisfying these protocols can be injected.
"""

from typing import Protocol, List, runtime_checkable


@runtime_checkable
class IEmbeddingProvider(Protocol):
    """Turns text into fixed-dimension vectors.

    Must be deterministic for identical input (the embedding cache relies
    on it) and must always return exactly ``get_dimensions()`` values.
    """

    async def generate_embedding(self, text: str) -> List[float]:
        """Convert text to an embedding vector."""
        ...

    def get_dimensions(self) -> int:
        """Dimension of every vector this provider returns."""
        ...

    def get_model_name(self) -> str:
        """Model identifier, used to namespace cache keys and snapshots."""
        ...


@runtime_checkable
class IGenerationProvider(Protocol):
    """Produces answer text from a prompt. Need not be deterministic."""

    async def generate(self, prompt: str) -> str:
        """Generate text from a prompt."""
        ...

    def get_model_name(self) -> str:
        """Model identifier, for logging and health reporting."""
        ...
