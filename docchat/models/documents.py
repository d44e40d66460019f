"""Document and chunk models for the retrieval engine."""

from pydantic import BaseModel, Field, ConfigDict
from typing import Dict, Optional, List


SNAPSHOT_VERSION = 1


class ChunkMetadata(BaseModel):
    """Positional and source metadata carried by every chunk."""
    source: str = Field(..., description="Document the chunk was cut from (usually a filename)")
    heading: Optional[str] = Field(None, description="Section heading the chunk belongs to")
    index: int = Field(..., description="Position of the chunk within its document")

    model_config = ConfigDict(frozen=True)


class Chunk(BaseModel):
    """A bounded unit of document text, the atomic retrieval unit."""
    id: str = Field(..., description="Chunk ID derived from source and index")
    text: str = Field(..., description="Chunk text content")
    metadata: ChunkMetadata = Field(..., description="Chunk metadata")

    model_config = ConfigDict(frozen=True)

    @staticmethod
    def make_id(source: str, index: int) -> str:
        """Build the chunk ID for a source and position."""
        return f"{source}-chunk-{index}"


class StoredChunk(Chunk):
    """A chunk together with its embedding, as held by the vector store."""
    embedding: List[float] = Field(..., description="Embedding vector")

    def to_chunk(self) -> Chunk:
        """Return the chunk without its embedding."""
        return Chunk(id=self.id, text=self.text, metadata=self.metadata)


class VectorStoreSnapshot(BaseModel):
    """On-disk representation of a vector store."""
    version: int = Field(SNAPSHOT_VERSION, description="Snapshot schema version")
    embedding_model: Optional[str] = Field(None, description="Model that produced the embeddings")
    dimensions: Optional[int] = Field(None, description="Embedding dimension shared by all chunks")
    chunks: List[StoredChunk] = Field(default_factory=list)
    content_hashes: Dict[str, str] = Field(
        default_factory=dict, description="Content hash of each ingested source, for deduplication"
    )


class DocumentInput(BaseModel):
    """Clean document text handed to the engine by the pre-processing layer."""
    content: str = Field(..., description="Extracted, sanitized document text")
    source: str = Field(..., description="Source name (usually the original filename)")


class IngestionResult(BaseModel):
    """Outcome of ingesting a single document."""
    source: str
    chunks_added: int = 0
    chunks_replaced: int = 0
    content_hash: Optional[str] = None
    duplicate: bool = False
    existing_source: Optional[str] = None

    @property
    def message(self) -> str:
        """Human readable summary."""
        if self.duplicate:
            return f"Skipped {self.source}: same content already indexed as {self.existing_source}"
        return f"Added {self.source} as {self.chunks_added} chunks"


class ClearResult(BaseModel):
    """Outcome of clearing the corpus."""
    chunks_removed: int = 0

    @property
    def message(self) -> str:
        """Human readable summary."""
        return f"Removed {self.chunks_removed} chunks"
