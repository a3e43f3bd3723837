"""Allowed root directories for the filesystem tools (the sandbox boundary).

The list lives in the ``allowed_directories`` table and is cached in memory as
an immutable tuple. Mutations serialize on a writer lock, write the table,
reload it, and publish the new tuple with a single assignment, so
``is_allowed`` never takes a lock and never sees a half-applied change.

Containment is lexical: paths are made absolute and cleaned, symlinks are not
followed, and ``/data`` does not contain ``/database``.
"""

import logging
import os
import threading
from typing import Iterable, List, Tuple

from storage.database import Database, utc_timestamp

logger = logging.getLogger(__name__)


def normalize_path(path: str) -> str:
    """Absolute, lexically cleaned form of *path* (no ``.``/``..``, no trailing separator)."""
    return os.path.normpath(os.path.abspath(path))


def is_within(path: str, root: str) -> bool:
    """True when normalized *path* equals *root* or lies underneath it."""
    try:
        rel = os.path.relpath(path, root)
    except ValueError:
        # different drives on Windows
        return False
    if os.path.isabs(rel):
        return False
    return rel != os.pardir and not rel.startswith(os.pardir + os.sep)


class AllowedDirsStore:
    """Persistent allow-list with a lock-free read path."""

    def __init__(self, db: Database):
        self._db = db
        self._write_lock = threading.Lock()
        self._cache: Tuple[str, ...] = ()
        self._reload()

    def _reload(self) -> None:
        rows = self._db.query("SELECT path FROM allowed_directories ORDER BY id ASC")
        self._cache = tuple(row["path"] for row in rows)
        logger.debug("Allowed directories reloaded: %d entries", len(self._cache))

    def ensure_seed(self, paths: Iterable[str]) -> None:
        """Insert *paths* only when the table is empty; a populated table wins."""
        with self._write_lock:
            row = self._db.query_one("SELECT COUNT(1) AS n FROM allowed_directories")
            if row is not None and row["n"] > 0:
                self._reload()
                return
            for p in paths:
                if not p:
                    continue
                self._insert(normalize_path(p))
            self._reload()

    def list(self) -> List[str]:
        return list(self._cache)

    def add(self, path: str) -> str:
        """Allow *path*; no-op if already present. Returns the normalized entry."""
        if not path:
            raise ValueError("path must not be empty")
        normalized = normalize_path(path)
        with self._write_lock:
            self._insert(normalized)
            self._reload()
        logger.info("Allowed directory added: %s", normalized)
        return normalized

    def remove(self, path: str) -> str:
        if not path:
            raise ValueError("path must not be empty")
        normalized = normalize_path(path)
        with self._write_lock:
            self._db.execute("DELETE FROM allowed_directories WHERE path = ?", (normalized,))
            self._reload()
        logger.info("Allowed directory removed: %s", normalized)
        return normalized

    def is_allowed(self, path: str) -> bool:
        if not path or not isinstance(path, str):
            return False
        snapshot = self._cache
        if not snapshot:
            return False
        try:
            target = normalize_path(path)
        except ValueError:
            return False
        return any(is_within(target, root) for root in snapshot)

    def _insert(self, normalized: str) -> None:
        self._db.execute(
            "INSERT OR IGNORE INTO allowed_directories(path, added_at) VALUES(?, ?)",
            (normalized, utc_timestamp()),
        )
