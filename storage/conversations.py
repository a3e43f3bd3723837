"""Conversation sessions and their messages."""

import json
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from storage.database import Database, utc_timestamp


@dataclass
class Conversation:
    id: int
    created_at: str
    updated_at: str
    title: Optional[str] = None
    mode: str = "normal"
    metadata: Optional[str] = None


@dataclass
class Message:
    id: int
    conversation_id: int
    role: str
    content: str
    timestamp: str
    metadata: Optional[Dict[str, Any]] = None


def _decode_metadata(raw: Optional[str]) -> Optional[Dict[str, Any]]:
    if not raw:
        return None
    try:
        value = json.loads(raw)
    except (TypeError, ValueError):
        return {"raw": raw}
    return value if isinstance(value, dict) else {"value": value}


class ConversationStore:
    def __init__(self, db: Database):
        self._db = db

    def create_conversation(self, mode: str = "normal", title: Optional[str] = None) -> int:
        now = utc_timestamp()
        cursor = self._db.execute(
            "INSERT INTO conversations (created_at, updated_at, title, mode) VALUES (?, ?, ?, ?)",
            (now, now, title, mode),
        )
        return int(cursor.lastrowid)

    def get_conversation(self, conversation_id: int) -> Optional[Conversation]:
        row = self._db.query_one(
            "SELECT id, created_at, updated_at, title, mode, metadata FROM conversations WHERE id = ?",
            (conversation_id,),
        )
        return Conversation(**dict(row)) if row else None

    def add_message(
        self,
        conversation_id: int,
        role: str,
        content: str,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> int:
        """Append a message and bump the conversation's ``updated_at``."""
        now = utc_timestamp()
        encoded = json.dumps(metadata, ensure_ascii=False) if metadata else None
        with self._db.transaction() as conn:
            cursor = conn.execute(
                "INSERT INTO messages (conversation_id, role, content, timestamp, metadata) "
                "VALUES (?, ?, ?, ?, ?)",
                (conversation_id, role, content, now, encoded),
            )
            conn.execute(
                "UPDATE conversations SET updated_at = ? WHERE id = ?",
                (now, conversation_id),
            )
            return int(cursor.lastrowid)

    def get_messages(self, conversation_id: int, limit: Optional[int] = None) -> List[Message]:
        """Messages of a conversation in chronological order.

        With *limit*, only the most recent *limit* messages are returned (still
        oldest first).
        """
        if limit is not None and limit <= 0:
            return []
        if limit is None:
            rows = self._db.query(
                "SELECT id, conversation_id, role, content, timestamp, metadata FROM messages "
                "WHERE conversation_id = ? ORDER BY id ASC",
                (conversation_id,),
            )
        else:
            rows = self._db.query(
                "SELECT * FROM (SELECT id, conversation_id, role, content, timestamp, metadata "
                "FROM messages WHERE conversation_id = ? ORDER BY id DESC LIMIT ?) ORDER BY id ASC",
                (conversation_id, limit),
            )
        messages = []
        for row in rows:
            data = dict(row)
            data["metadata"] = _decode_metadata(data.get("metadata"))
            messages.append(Message(**data))
        return messages

    def get_current_conversation(self) -> Optional[int]:
        """Id of the most recently updated conversation, or None when there are none."""
        row = self._db.query_one(
            "SELECT id FROM conversations ORDER BY updated_at DESC, id DESC LIMIT 1"
        )
        return int(row["id"]) if row else None

