"""SQLite persistence: conversations, long-term facts, the directory allow-list and the text index."""

from storage.allowed_dirs import AllowedDirsStore, is_within, normalize_path
from storage.conversations import Conversation, ConversationStore, Message
from storage.database import Database, StorageError
from storage.manager import MemoryManager
from storage.memories import Memory, MemoryStore
from storage.rag_index import RagIndex

__all__ = [
    "AllowedDirsStore",
    "Conversation",
    "ConversationStore",
    "Database",
    "Memory",
    "MemoryManager",
    "MemoryStore",
    "Message",
    "RagIndex",
    "StorageError",
    "is_within",
    "normalize_path",
]
