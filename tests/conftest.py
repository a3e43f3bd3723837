"""Shared fixtures: a throwaway SQLite database, stores, and a scripted model."""

from typing import Dict, List

import pytest

from storage.allowed_dirs import AllowedDirsStore
from storage.database import Database
from storage.memories import MemoryStore
from storage.rag_index import RagIndex
from tools.registry import build_tool_registry


class ScriptedInference:
    """Stands in for OllamaClient: replays canned replies, two chunks each.

    When the script runs out, the last reply repeats.
    """

    def __init__(self, replies: List[str]):
        self.replies = list(replies)
        self.calls: List[List[Dict[str, str]]] = []

    async def chat(self, messages, on_chunk):
        self.calls.append([dict(m) for m in messages])
        index = min(len(self.calls) - 1, len(self.replies) - 1)
        reply = self.replies[index]
        mid = len(reply) // 2
        for piece in (reply[:mid], reply[mid:]):
            if piece:
                await on_chunk(piece)
        return reply


@pytest.fixture
def db(tmp_path):
    database = Database(tmp_path / "nira.db")
    yield database
    database.close()


@pytest.fixture
def allowed_dirs(db):
    return AllowedDirsStore(db)


@pytest.fixture
def rag_index(db):
    return RagIndex(db)


@pytest.fixture
def memories(db):
    return MemoryStore(db)


@pytest.fixture
def registry(allowed_dirs, rag_index, memories):
    return build_tool_registry(
        allowed_dirs=allowed_dirs,
        rag_index=rag_index,
        memories=memories,
        enable_web=False,
    )


@pytest.fixture
def workspace(tmp_path, allowed_dirs):
    """An allowed directory with a docs/ folder holding two notes."""
    root = tmp_path / "workspace"
    docs = root / "docs"
    docs.mkdir(parents=True)
    (docs / "readme.md").write_text("# Project\nThe gateway listens on port 8080.\n")
    (docs / "todo.txt").write_text("ship the gateway\n")
    allowed_dirs.add(str(root))
    return root


@pytest.fixture
def scripted_model():
    """Factory: ``scripted_model(["reply 1", "reply 2"])``."""
    return ScriptedInference
