"""Bounded in-process conversation history."""

from collections import OrderedDict, deque
from threading import RLock
from typing import Deque, List, Optional

from docchat.core.logging import get_logger
from docchat.models.query import ChatMessage

logger = get_logger(__name__)


class ConversationMemory:
    """Keeps the most recent messages of the most recent conversations.

    Conversations are evicted least-recently-used once ``max_conversations``
    is reached; within a conversation only the last ``max_messages`` are
    kept.
    """

    def __init__(self, max_messages: int = 20, max_conversations: int = 100):
        if max_messages <= 0 or max_conversations <= 0:
            raise ValueError("max_messages and max_conversations must be positive")

        self.max_messages = max_messages
        self.max_conversations = max_conversations
        self._conversations: "OrderedDict[str, Deque[ChatMessage]]" = OrderedDict()
        self._lock = RLock()

    def add_message(self, conversation_id: str, role: str, content: str) -> ChatMessage:
        message = ChatMessage(role=role, content=content)

        with self._lock:
            messages = self._conversations.get(conversation_id)
            if messages is None:
                if len(self._conversations) >= self.max_conversations:
                    evicted, _ = self._conversations.popitem(last=False)
                    logger.debug(f"Evicted conversation {evicted}")
                messages = deque(maxlen=self.max_messages)
                self._conversations[conversation_id] = messages
            else:
                self._conversations.move_to_end(conversation_id)

            messages.append(message)

        return message

    def get_history(self, conversation_id: str, limit: Optional[int] = None) -> List[ChatMessage]:
        """Messages of a conversation, oldest first.

        Args:
            conversation_id: Conversation to read.
            limit: Only return the last ``limit`` messages.
        """
        with self._lock:
            messages = list(self._conversations.get(conversation_id, ()))

        if limit is not None and limit >= 0:
            messages = messages[len(messages) - limit:] if limit else []
        return messages

    def format_for_llm(self, conversation_id: str, limit: Optional[int] = None) -> str:
        """Render history as ``User: ...`` / ``Assistant: ...`` lines."""
        lines = []
        for message in self.get_history(conversation_id, limit):
            speaker = "User" if message.role == "user" else "Assistant"
            lines.append(f"{speaker}: {message.content}")
        return "\n".join(lines)

    def has_history(self, conversation_id: str) -> bool:
        with self._lock:
            return bool(self._conversations.get(conversation_id))

    def clear(self, conversation_id: str) -> bool:
        with self._lock:
            return self._conversations.pop(conversation_id, None) is not None

    def clear_all(self) -> None:
        with self._lock:
            self._conversations.clear()

    def get_conversation_count(self) -> int:
        with self._lock:
            return len(self._conversations)

    def get_message_count(self, conversation_id: str) -> int:
        with self._lock:
            return len(self._conversations.get(conversation_id, ()))
