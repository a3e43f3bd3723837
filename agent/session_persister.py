"""Turn persistence for the conversation loop.

Conversational continuity comes from the in-memory turn list, not from the
database, so a failed write is logged and dropped rather than surfaced.
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional

from storage.conversations import Message
from storage.database import StorageError
from storage.manager import MemoryManager
from storage.memories import Memory

logger = logging.getLogger(__name__)


class TurnPersister:
    """Mirrors turns into the current stored conversation.

    Args:
        manager: MemoryManager bound to the current conversation. When None,
            every method is a no-op.
    """

    def __init__(self, manager: Optional[MemoryManager] = None):
        self._manager = manager

    def log_turn(self, role: str, content: str, metadata: Optional[Dict[str, Any]] = None) -> bool:
        """Write one turn immediately. Returns False when the write failed."""
        if not self._manager:
            return False
        try:
            self._manager.save_turn(role, content, metadata)
            return True
        except StorageError as e:
            logger.warning("Failed to persist %s turn: %s", role, e)
            return False

    async def save(self, role: str, content: str, metadata: Optional[Dict[str, Any]] = None) -> bool:
        """log_turn() off the event loop."""
        if not self._manager:
            return False
        return await asyncio.to_thread(self.log_turn, role, content, metadata)

    def load_history(self, limit: int) -> List[Message]:
        if not self._manager or limit <= 0:
            return []
        try:
            return self._manager.load_recent_turns(limit)
        except StorageError as e:
            logger.warning("Failed to load conversation history: %s", e)
            return []

    def load_facts(self, min_importance: int, limit: int) -> List[Memory]:
        if not self._manager:
            return []
        try:
            return self._manager.search_facts("", min_importance, limit=limit)
        except StorageError as e:
            logger.warning("Failed to load long-term facts: %s", e)
            return []

    def start_new_conversation(self, mode: str = "normal") -> Optional[int]:
        if not self._manager:
            return None
        try:
            return self._manager.start_new_conversation(mode)
        except StorageError as e:
            logger.warning("Failed to start a new conversation: %s", e)
            return None
