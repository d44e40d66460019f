"""Document ingestion pipeline.

Components:
- DocumentChunker: Split documents into heading-aware chunks
- DocumentDeduplicator: Detect content already indexed under another source
- IngestionOrchestrator: Chunk, embed, persist and announce changes
"""

from docchat.pipelines.ingestion.chunker import DocumentChunker, chunk_document
from docchat.pipelines.ingestion.deduplicator import DeduplicationResult, DocumentDeduplicator
from docchat.pipelines.ingestion.orchestrator import IngestionOrchestrator

__all__ = [
    "DocumentChunker",
    "chunk_document",
    "DeduplicationResult",
    "DocumentDeduplicator",
    "IngestionOrchestrator",
]
