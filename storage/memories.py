"""Long-term memory facts (preferences, knowledge fragments, context)."""

from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Optional

from storage.database import Database, utc_timestamp

MIN_IMPORTANCE = 0
MAX_IMPORTANCE = 100


@dataclass
class Memory:
    id: int
    key: str
    content: str
    category: str
    created_at: str
    updated_at: str
    importance: int

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def clamp_importance(value: int) -> int:
    return max(MIN_IMPORTANCE, min(MAX_IMPORTANCE, int(value)))


class MemoryStore:
    def __init__(self, db: Database):
        self._db = db

    def store_memory(self, key: str, content: str, category: str = "general", importance: int = 50) -> None:
        """Insert a fact, or replace the fact already stored under *key*."""
        now = utc_timestamp()
        self._db.execute(
            """
            INSERT INTO memories (key, content, category, created_at, updated_at, importance)
            VALUES (?, ?, ?, ?, ?, ?)
            ON CONFLICT(key) DO UPDATE SET
                content = excluded.content,
                category = excluded.category,
                updated_at = excluded.updated_at,
                importance = excluded.importance
            """,
            (key, content, category, now, now, clamp_importance(importance)),
        )

    def get_memory(self, key: str) -> Optional[Memory]:
        row = self._db.query_one(
            "SELECT id, key, content, category, created_at, updated_at, importance "
            "FROM memories WHERE key = ?",
            (key,),
        )
        return Memory(**dict(row)) if row else None

    def search_memories(self, category: str = "", min_importance: int = 0, limit: Optional[int] = None) -> List[Memory]:
        """Facts at or above *min_importance*, most important and most recent first."""
        sql = (
            "SELECT id, key, content, category, created_at, updated_at, importance "
            "FROM memories WHERE importance >= ?"
        )
        params: List[Any] = [min_importance]
        if category:
            sql += " AND category = ?"
            params.append(category)
        sql += " ORDER BY importance DESC, updated_at DESC, id DESC"
        if limit is not None:
            sql += " LIMIT ?"
            params.append(limit)
        return [Memory(**dict(row)) for row in self._db.query(sql, params)]
