"""Minimal text index over small local files.

Matching is a literal, case-insensitive substring test on file name and
content (SQLite ``LIKE``). There are no embeddings and no tokenization.
"""

import hashlib
import logging
import os
from typing import Any, Dict, List

from storage.allowed_dirs import normalize_path
from storage.database import Database

logger = logging.getLogger(__name__)

SNIPPET_CHARS = 160


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def make_snippet(content: str, query: str, max_chars: int = SNIPPET_CHARS) -> str:
    """Window of *content* around the first hit, starting a quarter window early."""
    if not content:
        return ""
    idx = content.lower().find(query.lower()) if query else -1
    if idx < 0:
        return content[:max_chars]
    start = max(0, idx - max_chars // 4)
    return content[start:start + max_chars]


def score(name: str, content: str, query: str) -> float:
    """Name hits weigh five times content hits."""
    if not query:
        return 0.0
    q = query.lower()
    return float(name.lower().count(q) * 5 + content.lower().count(q))


class RagIndex:
    def __init__(self, db: Database):
        self._db = db

    def upsert(self, path: str, name: str, mod_time: str, size: int, content: str) -> None:
        abs_path = normalize_path(path)
        digest = hashlib.sha1(content.encode("utf-8")).hexdigest()
        self._db.execute(
            """
            INSERT INTO rag_index(path, name, mod_time, size, hash, content)
            VALUES(?, ?, ?, ?, ?, ?)
            ON CONFLICT(path) DO UPDATE SET
                name = excluded.name,
                mod_time = excluded.mod_time,
                size = excluded.size,
                hash = excluded.hash,
                content = excluded.content
            """,
            (abs_path, name, mod_time, size, digest, content),
        )

    def search(self, query: str, limit: int = 10, path_prefix: str = "") -> List[Dict[str, Any]]:
        """Entries whose name or content contains *query*, newest first.

        *path_prefix* restricts results to that directory (or file) and its
        descendants; ``/data`` does not match ``/database``.
        """
        if limit <= 0:
            limit = 10
        like = f"%{_escape_like(query)}%"
        sql = (
            "SELECT path, name, mod_time, size, content FROM rag_index "
            "WHERE (name LIKE ? ESCAPE '\\' OR content LIKE ? ESCAPE '\\')"
        )
        params: List[Any] = [like, like]
        if path_prefix:
            root = normalize_path(path_prefix)
            sql += " AND (path = ? OR path LIKE ? ESCAPE '\\')"
            params.extend([root, _escape_like(root.rstrip(os.sep)) + _escape_like(os.sep) + "%"])
        sql += " ORDER BY mod_time DESC LIMIT ?"
        params.append(limit)

        results = []
        for row in self._db.query(sql, params):
            content = row["content"] or ""
            results.append({
                "path": row["path"],
                "name": row["name"],
                "mod_time": row["mod_time"],
                "size": row["size"],
                "snippet": make_snippet(content, query),
                "score": score(row["name"], content, query),
            })
        return results

    def delete_by_path_prefix(self, prefix: str) -> int:
        """Drop every entry at or below *prefix*. Returns the number removed."""
        root = normalize_path(prefix)
        cursor = self._db.execute(
            "DELETE FROM rag_index WHERE path = ? OR path LIKE ? ESCAPE '\\'",
            (root, _escape_like(root.rstrip(os.sep)) + _escape_like(os.sep) + "%"),
        )
        removed = cursor.rowcount
        if removed:
            logger.info("Removed %d text index entries under %s", removed, root)
        return removed
