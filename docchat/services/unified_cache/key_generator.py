"""Cache key generation for the embedding and query caches.

Key format: {layer}:{version}:{...params}:{content_hash}

Examples:
    emb:v1:nomic-embed-text:3f2a9c...   (32 hex chars)
    qry:v1:9b8e71c04d2a5f16            (16 hex chars)
"""

import hashlib
import re

_WHITESPACE_RUN = re.compile(r"\s+")


class CacheKeyGenerator:
    """Key derivation shared by all cache layers.

    All keys include a version prefix so that a change of key format or
    cached value shape invalidates old entries.
    """

    VERSION = "v1"
    EMBEDDING_HASH_LENGTH = 32
    QUERY_HASH_LENGTH = 16

    @classmethod
    def embedding(cls, text: str, model: str = "default") -> str:
        """Generate cache key for an embedding of raw ``text``.

        The text is hashed as-is: embeddings are a function of the exact
        input, so no normalization is applied.
        """
        text_hash = cls.hash_content(text)[: cls.EMBEDDING_HASH_LENGTH]
        return f"emb:{cls.VERSION}:{model}:{text_hash}"

    @classmethod
    def query(cls, question: str) -> str:
        """Generate cache key for a question.

        Case and whitespace differences collapse onto the same key. This is
        literal-string matching only; similar-but-different questions get
        different keys.
        """
        normalized = cls.normalize_question(question)
        question_hash = cls.hash_content(normalized)[: cls.QUERY_HASH_LENGTH]
        return f"qry:{cls.VERSION}:{question_hash}"

    @staticmethod
    def normalize_question(question: str) -> str:
        """Lowercase, trim and collapse internal whitespace runs."""
        return _WHITESPACE_RUN.sub(" ", question.lower().strip())

    @classmethod
    def hash_content(cls, content: str) -> str:
        """SHA-256 hex digest of ``content``."""
        return hashlib.sha256(content.encode("utf-8")).hexdigest()
