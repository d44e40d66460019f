"""Custom error types for the retrieval and caching engine."""

from typing import Optional, Dict, Any
from enum import Enum
import traceback
from datetime import datetime, timezone


class ErrorCategory(Enum):
    """Categories of errors for better handling."""
    UPSTREAM = "upstream"
    GENERATION = "generation"
    STORAGE = "storage"
    VALIDATION = "validation"
    DUPLICATE = "duplicate"
    UNKNOWN = "unknown"


class RAGError(Exception):
    """Base exception for engine errors."""

    def __init__(
        self,
        message: str,
        category: ErrorCategory = ErrorCategory.UNKNOWN,
        details: Optional[Dict[str, Any]] = None,
        recoverable: bool = True,
    ):
        """Initialize engine error."""
        super().__init__(message)
        self.message = message
        self.category = category
        self.details = details or {}
        self.recoverable = recoverable
        self.timestamp = datetime.now(timezone.utc)
        self.traceback = traceback.format_exc()

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary for logging/response."""
        return {
            "error": self.message,
            "category": self.category.value,
            "details": self.details,
            "recoverable": self.recoverable,
            "timestamp": self.timestamp.isoformat(),
            "traceback": self.traceback if self.details.get("include_traceback") else None,
        }


class UpstreamUnavailableError(RAGError):
    """An embedding or generation collaborator failed."""

    def __init__(
        self,
        message: str,
        provider: Optional[str] = None,
        operation: Optional[str] = None,
        category: ErrorCategory = ErrorCategory.UPSTREAM,
    ):
        details = {}
        if provider:
            details["provider"] = provider
        if operation:
            details["operation"] = operation

        super().__init__(
            message=message,
            category=category,
            details=details,
            recoverable=True  # Retry policy belongs to the caller
        )
        self.provider = provider
        self.operation = operation


class GenerationError(UpstreamUnavailableError):
    """The language model could not produce an answer."""

    def __init__(self, message: str, provider: Optional[str] = None):
        super().__init__(
            message=message,
            provider=provider,
            operation="generate",
            category=ErrorCategory.GENERATION,
        )


class SnapshotError(RAGError):
    """Vector store snapshot could not be written."""

    def __init__(self, message: str, path: Optional[str] = None, operation: Optional[str] = None):
        details = {}
        if path:
            details["path"] = path
        if operation:
            details["operation"] = operation

        super().__init__(
            message=message,
            category=ErrorCategory.STORAGE,
            details=details,
            recoverable=True
        )


class EmbeddingDimensionError(RAGError):
    """An embedding does not match the dimension of the store."""

    def __init__(self, expected: int, actual: int, chunk_id: Optional[str] = None):
        details = {"expected": expected, "actual": actual}
        if chunk_id:
            details["chunk_id"] = chunk_id

        super().__init__(
            message=f"Embedding dimension mismatch: expected {expected}, got {actual}",
            category=ErrorCategory.VALIDATION,
            details=details,
            recoverable=False  # Mixing embedding models needs a re-index
        )
        self.expected = expected
        self.actual = actual


class DuplicateDocumentError(RAGError):
    """A document was rejected because it is already indexed."""

    def __init__(self, message: str, source: Optional[str] = None, existing_source: Optional[str] = None):
        details = {}
        if source:
            details["source"] = source
        if existing_source:
            details["existing_source"] = existing_source

        super().__init__(
            message=message,
            category=ErrorCategory.DUPLICATE,
            details=details,
            recoverable=False
        )
        self.source = source
        self.existing_source = existing_source
