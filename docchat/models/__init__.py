"""Data models shared across the engine."""

from docchat.models.documents import (
    Chunk,
    ChunkMetadata,
    ClearResult,
    DocumentInput,
    IngestionResult,
    StoredChunk,
    VectorStoreSnapshot,
)
from docchat.models.query import (
    NO_DOCUMENTATION_ANSWER,
    CacheStatsView,
    ChatMessage,
    ChatResponse,
    VectorStoreStats,
)

__all__ = [
    "Chunk",
    "ChunkMetadata",
    "ClearResult",
    "DocumentInput",
    "IngestionResult",
    "StoredChunk",
    "VectorStoreSnapshot",
    "NO_DOCUMENTATION_ANSWER",
    "CacheStatsView",
    "ChatMessage",
    "ChatResponse",
    "VectorStoreStats",
]
