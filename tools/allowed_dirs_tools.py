"""Tools that inspect and edit the directory allow-list at runtime."""

import logging
import os
from typing import Any, Dict

from storage.allowed_dirs import AllowedDirsStore
from storage.rag_index import RagIndex

from .base import Tool, ToolError, ToolSchema, require_str

logger = logging.getLogger(__name__)


class AllowedDirsListTool(Tool):
    def __init__(self, store: AllowedDirsStore):
        self._store = store

    @property
    def schema(self) -> ToolSchema:
        return ToolSchema(
            name="allowed_dirs_list",
            description="Lists the directories the filesystem tools may access.",
        )

    def execute(self, args: Dict[str, Any]) -> Any:
        return {"allowed": self._store.list()}


class AllowedDirsAddTool(Tool):
    def __init__(self, store: AllowedDirsStore):
        self._store = store

    @property
    def schema(self) -> ToolSchema:
        return ToolSchema(
            name="allowed_dirs_add",
            description="Grants the filesystem tools access to an existing directory.",
            parameters={"path": {"type": "string", "description": "Directory to allow"}},
            required=["path"],
        )

    def execute(self, args: Dict[str, Any]) -> Any:
        path = require_str(args, "path")
        if not os.path.isdir(path):
            raise ToolError("path must be an existing directory")
        self._store.add(path)
        return {"allowed": self._store.list()}


class AllowedDirsRemoveTool(Tool):
    """Revokes a directory and drops text-index entries under it."""

    def __init__(self, store: AllowedDirsStore, rag_index: RagIndex):
        self._store = store
        self._rag_index = rag_index

    @property
    def schema(self) -> ToolSchema:
        return ToolSchema(
            name="allowed_dirs_remove",
            description="Revokes access to a previously allowed directory.",
            parameters={"path": {"type": "string", "description": "Directory to remove from the allow-list"}},
            required=["path"],
        )

    def execute(self, args: Dict[str, Any]) -> Any:
        path = require_str(args, "path")
        removed = self._store.remove(path)
        self._rag_index.delete_by_path_prefix(removed)
        return {"allowed": self._store.list()}
