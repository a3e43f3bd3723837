"""
Filesystem tools.

Every tool here asks the shared AllowedDirsStore before touching the disk and
refuses with "path '<p>' is not in allowed directories" otherwise. Paths in
results are reported the way the caller spelled the root, joined with entry
names.
"""

import fnmatch
import logging
import os
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterator, List, Optional, Tuple

from nira_constants import MAX_READ_FILE_BYTES

from .base import (
    PathChecker,
    Tool,
    ToolError,
    ToolSchema,
    optional_bool,
    optional_int,
    require_str,
)

logger = logging.getLogger(__name__)


def format_mod_time(timestamp: float) -> str:
    return datetime.fromtimestamp(timestamp, tz=timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def _entry(path: str, name: str, st: os.stat_result, is_dir: bool) -> Dict[str, Any]:
    return {
        "name": name,
        "path": path,
        "is_dir": is_dir,
        "size": 0 if is_dir else st.st_size,
        "mod_time": format_mod_time(st.st_mtime),
    }


def walk_sorted(root: str, keep: Optional[Callable[[str], bool]] = None) -> Iterator[Tuple[os.DirEntry, bool]]:
    """Pre-order walk below *root* in name order; symlinked directories are not entered.

    Yields ``(entry, is_dir)``. Entries for which *keep* returns False are
    skipped, and so is everything below them.
    """
    try:
        with os.scandir(root) as it:
            entries = sorted(it, key=lambda e: e.name)
    except OSError as e:
        logger.debug("Skipping unreadable directory %s: %s", root, e)
        return
    for entry in entries:
        if keep is not None and not keep(entry.path):
            continue
        try:
            is_dir = entry.is_dir(follow_symlinks=False)
        except OSError:
            continue
        yield entry, is_dir
        if is_dir:
            yield from walk_sorted(entry.path, keep)


class _SandboxedTool(Tool):
    def __init__(self, allowed_dirs: PathChecker):
        self._allowed_dirs = allowed_dirs

    def _check(self, path: str) -> None:
        if not self._allowed_dirs.is_allowed(path):
            raise ToolError(f"path '{path}' is not in allowed directories")


class ReadFileTool(_SandboxedTool):
    @property
    def schema(self) -> ToolSchema:
        return ToolSchema(
            name="read_file",
            description="Reads the text content of a file inside an allowed directory.",
            parameters={"path": {"type": "string", "description": "The file path to read"}},
            required=["path"],
        )

    def execute(self, args: Dict[str, Any]) -> Any:
        path = require_str(args, "path")
        self._check(path)
        try:
            if os.path.isdir(path):
                raise ToolError(f"'{path}' is a directory")
            size = os.path.getsize(path)
            if size > MAX_READ_FILE_BYTES:
                raise ToolError(f"file is too large to read ({size} bytes, limit {MAX_READ_FILE_BYTES})")
            with open(path, "rb") as f:
                data = f.read()
        except OSError as e:
            raise ToolError(f"failed to read file: {e}") from e
        return {"path": path, "content": data.decode("utf-8", errors="replace")}


class WriteFileTool(_SandboxedTool):
    @property
    def schema(self) -> ToolSchema:
        return ToolSchema(
            name="write_file",
            description="Writes text content to a file inside an allowed directory, creating parent folders.",
            parameters={
                "path": {"type": "string", "description": "The file path to write to"},
                "content": {"type": "string", "description": "The text content to write"},
            },
            required=["path", "content"],
        )

    def execute(self, args: Dict[str, Any]) -> Any:
        path = require_str(args, "path")
        content = args.get("content")
        if not isinstance(content, str):
            raise ToolError("content argument is required and must be a string")
        self._check(path)
        if os.path.isdir(path):
            raise ToolError(f"'{path}' is a directory")

        parent = os.path.dirname(os.path.abspath(path))
        try:
            os.makedirs(parent, exist_ok=True)
            with open(path, "w", encoding="utf-8") as f:
                f.write(content)
        except OSError as e:
            raise ToolError(f"failed to write file: {e}") from e
        logger.info("Wrote %d chars to %s", len(content), path)
        return f"Successfully wrote to {path}"


class ListDirectoryTool(_SandboxedTool):
    @property
    def schema(self) -> ToolSchema:
        return ToolSchema(
            name="list_directory",
            description="Lists files and folders under a directory.",
            parameters={
                "path": {"type": "string", "description": "Directory path to list"},
                "recursive": {"type": "boolean", "description": "Recursively list contents (default false)"},
                "include_files": {"type": "boolean", "description": "Include files in results (default true)"},
                "include_dirs": {"type": "boolean", "description": "Include directories in results (default true)"},
                "max_items": {"type": "integer", "description": "Maximum number of items to return (default 1000)"},
            },
            required=["path"],
        )

    def execute(self, args: Dict[str, Any]) -> Any:
        path = require_str(args, "path")
        self._check(path)
        recursive = optional_bool(args, "recursive", False)
        include_files = optional_bool(args, "include_files", True)
        include_dirs = optional_bool(args, "include_dirs", True)
        max_items = optional_int(args, "max_items", 1000)
        if max_items < 0:
            raise ToolError("max_items argument must not be negative")

        if not os.path.isdir(path):
            raise ToolError(f"failed to read directory: '{path}' is not a directory")

        results: List[Dict[str, Any]] = []
        if recursive:
            source = walk_sorted(path)
        else:
            try:
                with os.scandir(path) as it:
                    entries = sorted(it, key=lambda e: e.name)
            except OSError as e:
                raise ToolError(f"failed to read directory: {e}") from e
            source = ((e, e.is_dir(follow_symlinks=False)) for e in entries)

        for entry, is_dir in source:
            if len(results) >= max_items:
                break
            if (is_dir and not include_dirs) or (not is_dir and not include_files):
                continue
            try:
                st = entry.stat(follow_symlinks=False)
            except OSError:
                continue
            results.append(_entry(entry.path, entry.name, st, is_dir))
        return results


class SearchFilesByNameTool(_SandboxedTool):
    @property
    def schema(self) -> ToolSchema:
        return ToolSchema(
            name="search_files_by_name",
            description="Searches for files by name under a root directory (substring, or glob with * and ?).",
            parameters={
                "root": {"type": "string", "description": "Root directory to search within"},
                "pattern": {"type": "string", "description": "Substring or glob pattern to match against names"},
                "max_results": {"type": "integer", "description": "Maximum number of results (default 200)"},
                "include_dirs": {"type": "boolean", "description": "Include directories in results (default false)"},
                "case_sensitive": {"type": "boolean", "description": "Case-sensitive match (default false)"},
            },
            required=["root", "pattern"],
        )

    def execute(self, args: Dict[str, Any]) -> Any:
        root = require_str(args, "root")
        pattern = require_str(args, "pattern")
        self._check(root)
        max_results = optional_int(args, "max_results", 200)
        include_dirs = optional_bool(args, "include_dirs", False)
        case_sensitive = optional_bool(args, "case_sensitive", False)

        if not os.path.isdir(root):
            raise ToolError(f"'{root}' is not a directory")

        use_glob = "*" in pattern or "?" in pattern
        needle = pattern if case_sensitive else pattern.lower()

        def matches(name: str) -> bool:
            candidate = name if case_sensitive else name.lower()
            if use_glob:
                return fnmatch.fnmatchcase(candidate, needle)
            return needle in candidate

        results: List[Dict[str, Any]] = []
        if max_results <= 0:
            return results

        for entry, is_dir in walk_sorted(root, keep=self._allowed_dirs.is_allowed):
            if (not is_dir or include_dirs) and matches(entry.name):
                try:
                    st = entry.stat(follow_symlinks=False)
                except OSError:
                    continue
                results.append(_entry(entry.path, entry.name, st, is_dir))
                if len(results) >= max_results:
                    break
        return results


class FileMetadataTool(_SandboxedTool):
    @property
    def schema(self) -> ToolSchema:
        return ToolSchema(
            name="file_metadata",
            description="Returns name, size, type and modification time for a path.",
            parameters={"path": {"type": "string", "description": "File or directory path"}},
            required=["path"],
        )

    def execute(self, args: Dict[str, Any]) -> Any:
        path = require_str(args, "path")
        self._check(path)
        try:
            st = os.stat(path)
        except OSError as e:
            raise ToolError(f"failed to stat path: {e}") from e
        is_dir = os.path.isdir(path)
        name = os.path.basename(os.path.normpath(path))
        result = _entry(path, name, st, is_dir)
        result["abs_path"] = os.path.abspath(path)
        return result
