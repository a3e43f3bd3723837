"""
Text index tools: index a folder of small text files, then search it.

Search is a literal substring match. Good enough for notes and configs,
not a replacement for semantic retrieval.
"""

import fnmatch
import logging
import os
from typing import Any, Dict

from nira_constants import DEFAULT_RAG_PATTERNS
from storage.database import StorageError
from storage.rag_index import RagIndex

from .base import (
    PathChecker,
    Tool,
    ToolError,
    ToolSchema,
    optional_int,
    optional_str,
    optional_str_list,
    require_str,
)
from .file_tools import format_mod_time, walk_sorted

logger = logging.getLogger(__name__)


class RagIndexFolderTool(Tool):
    def __init__(self, allowed_dirs: PathChecker, rag_index: RagIndex):
        self._allowed_dirs = allowed_dirs
        self._index = rag_index

    @property
    def schema(self) -> ToolSchema:
        return ToolSchema(
            name="rag_index_folder",
            description="Indexes small text files under a folder for later rag_search queries.",
            parameters={
                "root": {"type": "string", "description": "Folder to index"},
                "patterns": {
                    "type": "array",
                    "items": {"type": "string"},
                    "description": "Glob patterns of file names to include (default *.md, *.txt, *.json, *.yaml, *.yml)",
                },
                "max_size_mb": {"type": "integer", "description": "Skip files larger than this (default 2)"},
                "max_files": {"type": "integer", "description": "Stop after indexing this many files (default 500)"},
            },
            required=["root"],
        )

    def execute(self, args: Dict[str, Any]) -> Any:
        root = require_str(args, "root")
        if not self._allowed_dirs.is_allowed(root):
            raise ToolError(f"path '{root}' is not in allowed directories")
        patterns = optional_str_list(args, "patterns") or list(DEFAULT_RAG_PATTERNS)
        max_size_mb = optional_int(args, "max_size_mb", 2)
        max_files = optional_int(args, "max_files", 500)
        if not os.path.isdir(root):
            raise ToolError(f"'{root}' is not a directory")

        max_bytes = max_size_mb * 1024 * 1024
        indexed = 0
        last_error = None
        for entry, is_dir in walk_sorted(root, keep=self._allowed_dirs.is_allowed):
            if indexed >= max_files:
                break
            if is_dir or not any(fnmatch.fnmatch(entry.name, pat) for pat in patterns):
                continue
            try:
                st = entry.stat(follow_symlinks=False)
                if st.st_size > max_bytes:
                    continue
                with open(entry.path, "rb") as f:
                    content = f.read().decode("utf-8", errors="replace")
            except OSError as e:
                logger.debug("Skipping %s: %s", entry.path, e)
                continue
            try:
                self._index.upsert(entry.path, entry.name, format_mod_time(st.st_mtime), st.st_size, content)
            except StorageError as e:
                last_error = e
                logger.warning("Failed to index %s: %s", entry.path, e)
                continue
            indexed += 1

        msg = f"Indexed {indexed} files under {root} (patterns: {', '.join(patterns)})"
        if last_error is not None:
            msg += f"; last error: {last_error}"
        logger.info(msg)
        return msg


class RagSearchTool(Tool):
    def __init__(self, allowed_dirs: PathChecker, rag_index: RagIndex):
        self._allowed_dirs = allowed_dirs
        self._index = rag_index

    @property
    def schema(self) -> ToolSchema:
        return ToolSchema(
            name="rag_search",
            description="Searches indexed files by name and content; returns snippets with a hit-count score, newest files first.",
            parameters={
                "query": {"type": "string", "description": "Text to look for"},
                "limit": {"type": "integer", "description": "Maximum number of results (default 10)"},
                "path_prefix": {"type": "string", "description": "Only search files under this allowed folder"},
            },
            required=["query"],
        )

    def execute(self, args: Dict[str, Any]) -> Any:
        query = require_str(args, "query")
        limit = optional_int(args, "limit", 10)
        path_prefix = optional_str(args, "path_prefix")
        if path_prefix and not self._allowed_dirs.is_allowed(path_prefix):
            raise ToolError(f"path '{path_prefix}' is not in allowed directories")
        return self._index.search(query, limit=limit, path_prefix=path_prefix)
