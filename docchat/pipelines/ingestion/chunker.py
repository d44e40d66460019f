"""Heading-aware document chunking."""

import re
from dataclasses import dataclass
from typing import Iterable, List, Optional

from docchat.core.logging import get_logger
from docchat.models.documents import Chunk, ChunkMetadata, DocumentInput

logger = get_logger(__name__)

HEADING_PATTERN = re.compile(r"^(#{1,6})\s+(.+)$")

DEFAULT_MAX_CHUNK_SIZE = 1000
DEFAULT_CHUNK_OVERLAP = 200


@dataclass
class Section:
    """Run of lines under one heading (or before the first heading)."""

    heading: Optional[str]
    text: str


class DocumentChunker:
    """Splits documents into retrieval-sized, heading-aware chunks.

    A document is first cut into sections at markdown heading lines. Each
    section that is longer than ``max_chunk_size`` (after trimming) is
    further cut into overlapping windows, preferring to break after a
    sentence end or at a newline so sentences are not severed.
    """

    def __init__(
        self,
        max_chunk_size: int = DEFAULT_MAX_CHUNK_SIZE,
        chunk_overlap: int = DEFAULT_CHUNK_OVERLAP,
    ):
        """Initialize chunker.

        Args:
            max_chunk_size: Maximum characters per chunk.
            chunk_overlap: Characters shared by consecutive windows of a
                long section.

        Raises:
            ValueError: If the sizes cannot produce progressing windows.
        """
        if max_chunk_size <= 0:
            raise ValueError("max_chunk_size must be positive")
        if chunk_overlap < 0:
            raise ValueError("chunk_overlap must not be negative")
        if chunk_overlap >= max_chunk_size:
            raise ValueError("chunk_overlap must be smaller than max_chunk_size")

        self.max_chunk_size = max_chunk_size
        self.chunk_overlap = chunk_overlap

    def chunk_document(self, content: str, source: str) -> List[Chunk]:
        """Split a document into chunks.

        Args:
            content: Clean document text.
            source: Source name recorded on every chunk.

        Returns:
            Chunks with indices sequential across the whole document. Empty
            or blank content yields an empty list.
        """
        chunks: List[Chunk] = []

        for section in self.split_by_headings(content):
            for piece in self.split_section(section.text):
                index = len(chunks)
                chunks.append(
                    Chunk(
                        id=Chunk.make_id(source, index),
                        text=piece,
                        metadata=ChunkMetadata(
                            source=source,
                            heading=section.heading,
                            index=index,
                        ),
                    )
                )

        logger.debug(f"Chunked {source} into {len(chunks)} chunks")
        return chunks

    def chunk_documents(self, documents: Iterable[DocumentInput]) -> List[Chunk]:
        """Chunk several documents, concatenating their chunks in order."""
        chunks: List[Chunk] = []
        for document in documents:
            chunks.extend(self.chunk_document(document.content, document.source))
        return chunks

    @staticmethod
    def split_by_headings(content: str) -> List[Section]:
        """Split content into sections at markdown heading lines.

        The heading line stays part of its section's text. Sections with
        only whitespace are dropped.
        """
        sections: List[Section] = []
        current = Section(heading=None, text="")

        for line in content.replace("\r\n", "\n").split("\n"):
            match = HEADING_PATTERN.match(line)
            if match:
                if current.text.strip():
                    sections.append(current)
                current = Section(heading=match.group(2).strip(), text=line + "\n")
            else:
                current.text += line + "\n"

        if current.text.strip():
            sections.append(current)

        return sections

    def split_section(self, text: str) -> List[str]:
        """Split one section's text into size-bounded, overlapping pieces."""
        text = text.strip()
        if not text:
            return []
        if len(text) <= self.max_chunk_size:
            return [text]

        pieces: List[str] = []
        start = 0
        length = len(text)

        while start < length:
            end = min(start + self.max_chunk_size, length)

            if end < length:
                window = text[start:end]
                boundary = max(window.rfind(". "), window.rfind("\n"))
                if boundary > len(window) // 2:
                    end = start + boundary + 1

            piece = text[start:end].strip()
            if piece:
                pieces.append(piece)

            if end >= length:
                break

            # Always advance, even when the overlap reaches back past start
            start = max(end - self.chunk_overlap, start + 1)

        return pieces


def chunk_document(
    content: str,
    source: str,
    max_chunk_size: int = DEFAULT_MAX_CHUNK_SIZE,
    chunk_overlap: int = DEFAULT_CHUNK_OVERLAP,
) -> List[Chunk]:
    """Split ``content`` into chunks using a one-off ``DocumentChunker``."""
    return DocumentChunker(max_chunk_size, chunk_overlap).chunk_document(content, source)
