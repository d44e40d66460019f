"""Query and chat models for the retrieval engine."""

from pydantic import BaseModel, Field
from typing import List, Literal, Optional
from datetime import datetime, timezone

from docchat.models.documents import Chunk


NO_DOCUMENTATION_ANSWER = (
    "I don't have any documentation to answer that question. "
    "Please add some documents first."
)


class ChatResponse(BaseModel):
    """Answer to a question together with the chunks it was grounded on."""
    answer: str = Field(..., description="Generated answer text")
    sources: List[Chunk] = Field(default_factory=list, description="Retrieved source chunks")
    cached: bool = Field(False, description="Whether the response came from the query cache")

    @property
    def has_sources(self) -> bool:
        """Whether any documentation backed this answer."""
        return bool(self.sources)


class ChatMessage(BaseModel):
    """A single turn of a conversation."""
    role: Literal["user", "assistant"] = Field(..., description="Message role")
    content: str = Field(..., description="Message content")
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class CacheStatsView(BaseModel):
    """Serializable cache statistics, as reported to callers."""
    hits: int
    misses: int
    size: int
    max_size: int
    hit_rate: float


class VectorStoreStats(BaseModel):
    """Serializable vector store statistics."""
    chunk_count: int
    sources: List[str] = Field(default_factory=list)
    dimensions: Optional[int] = None
    embedding_model: Optional[str] = None
    store_path: str
    query_embedding_cache: Optional[CacheStatsView] = None
