"""High-level persistence facade used by the conversation loop.

Binds the conversation and memory stores to the "current" conversation so
callers only deal in turns and facts.
"""

import logging
from typing import Any, Dict, List, Optional

from storage.conversations import ConversationStore, Message
from storage.database import Database
from storage.memories import Memory, MemoryStore

logger = logging.getLogger(__name__)


class MemoryManager:
    """Resumes the most recently updated conversation, or starts a ``normal`` one."""

    def __init__(self, db: Database):
        self.conversations = ConversationStore(db)
        self.memories = MemoryStore(db)
        current = self.conversations.get_current_conversation()
        if current is None:
            current = self.conversations.create_conversation("normal")
            logger.info("Started conversation %d", current)
        self.current_conversation_id: int = current

    def save_turn(self, role: str, content: str, metadata: Optional[Dict[str, Any]] = None) -> int:
        return self.conversations.add_message(self.current_conversation_id, role, content, metadata)

    def load_recent_turns(self, limit: int) -> List[Message]:
        """The last *limit* messages of the current conversation, oldest first."""
        return self.conversations.get_messages(self.current_conversation_id, limit=limit)

    def search_facts(self, category: str = "", min_importance: int = 0, limit: Optional[int] = None) -> List[Memory]:
        return self.memories.search_memories(category, min_importance, limit=limit)

    def start_new_conversation(self, mode: str = "normal") -> int:
        self.current_conversation_id = self.conversations.create_conversation(mode)
        logger.info("Started conversation %d (%s)", self.current_conversation_id, mode)
        return self.current_conversation_id
