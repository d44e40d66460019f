"""Chat services."""

from docchat.services.chat.conversation_memory import ConversationMemory
from docchat.services.chat.orchestrator import RetrievalOrchestrator

__all__ = ["ConversationMemory", "RetrievalOrchestrator"]
