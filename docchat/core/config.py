"""Configuration settings for the docchat engine."""

from pydantic_settings import BaseSettings
from typing import Optional
import os


class Settings(BaseSettings):
    """Application settings."""

    app_name: str = "docchat"
    app_version: str = "0.3.0"

    # Vector Store Configuration
    vector_store_path: str = "./vector-store.json"

    # Document Processing
    chunk_size: int = 1000
    chunk_overlap: int = 200

    # Retrieval Configuration
    retrieval_top_k: int = 5
    reload_on_query: bool = True  # pick up snapshots written by other processes

    # Caching Configuration (milliseconds)
    query_cache_max_size: int = 100
    query_cache_ttl_ms: int = 30 * 60 * 1000  # 30 minutes, answers go stale with the corpus
    embedding_cache_max_size: int = 500
    embedding_cache_ttl_ms: int = 60 * 60 * 1000  # 1 hour, embeddings are deterministic

    # Ingestion Configuration
    duplicate_policy: str = "replace"  # replace, reject or accumulate
    enable_deduplication: bool = True

    # Ollama Configuration
    ollama_host: str = "http://localhost:11434"
    ollama_embedding_model: str = "nomic-embed-text"
    ollama_embedding_dimensions: int = 768
    ollama_chat_model: str = "llama3.2"
    ollama_timeout: float = 120.0

    # Conversation Memory
    enable_conversation_memory: bool = False
    conversation_max_messages: int = 20
    conversation_max_conversations: int = 100

    # Logging
    log_level: str = "INFO"
    log_format: str = "json"

    class Config:
        env_file = ".env"
        env_prefix = "RAG_"
        case_sensitive = False
        extra = "ignore"


def get_settings(env_file: Optional[str] = None) -> Settings:
    """Build a fresh settings instance, honoring unprefixed provider variables.

    Args:
        env_file: Optional path to an env file overriding the default ``.env``.

    Returns:
        Settings instance.
    """
    if env_file:
        loaded = Settings(_env_file=env_file)
    else:
        loaded = Settings()

    if os.getenv("OLLAMA_HOST"):
        loaded.ollama_host = os.getenv("OLLAMA_HOST").strip()

    if os.getenv("VECTOR_STORE_PATH"):
        loaded.vector_store_path = os.getenv("VECTOR_STORE_PATH").strip()

    return loaded


# Create settings instance
settings = get_settings()
