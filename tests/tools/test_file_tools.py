"""Tests for tools.file_tools -- sandboxed filesystem access.

Every tool must refuse paths outside the allow-list before touching the disk,
and must see allow-list changes made after it was constructed.
"""

import os

import pytest

from nira_constants import MAX_READ_FILE_BYTES
from tools.base import ToolError
from tools.file_tools import (
    FileMetadataTool,
    ListDirectoryTool,
    ReadFileTool,
    SearchFilesByNameTool,
    WriteFileTool,
    walk_sorted,
)


def _refused(tool, args, path):
    with pytest.raises(ToolError) as exc:
        tool.execute(args)
    assert str(exc.value) == f"path '{path}' is not in allowed directories"


class TestReadFile:
    def test_reads_allowed_file(self, allowed_dirs, workspace):
        path = str(workspace / "docs" / "todo.txt")
        result = ReadFileTool(allowed_dirs).execute({"path": path})
        assert result == {"path": path, "content": "ship the gateway\n"}

    def test_refuses_outside_allow_list(self, allowed_dirs, workspace, tmp_path):
        secret = tmp_path / "secret.txt"
        secret.write_text("nope")
        _refused(ReadFileTool(allowed_dirs), {"path": str(secret)}, str(secret))

    def test_refuses_dotdot_escape(self, allowed_dirs, workspace, tmp_path):
        (tmp_path / "secret.txt").write_text("nope")
        sneaky = str(workspace / ".." / "secret.txt")
        _refused(ReadFileTool(allowed_dirs), {"path": sneaky}, sneaky)

    def test_missing_path_argument(self, allowed_dirs):
        with pytest.raises(ToolError, match="path argument is required"):
            ReadFileTool(allowed_dirs).execute({})

    def test_missing_file(self, allowed_dirs, workspace):
        with pytest.raises(ToolError, match="failed to read file"):
            ReadFileTool(allowed_dirs).execute({"path": str(workspace / "absent.txt")})

    def test_directory_is_rejected(self, allowed_dirs, workspace):
        with pytest.raises(ToolError, match="is a directory"):
            ReadFileTool(allowed_dirs).execute({"path": str(workspace / "docs")})

    def test_oversized_file_is_rejected(self, allowed_dirs, workspace):
        big = workspace / "big.bin"
        with open(big, "wb") as f:
            f.truncate(MAX_READ_FILE_BYTES + 1)
        with pytest.raises(ToolError, match="too large"):
            ReadFileTool(allowed_dirs).execute({"path": str(big)})

    def test_invalid_utf8_is_replaced(self, allowed_dirs, workspace):
        raw = workspace / "raw.txt"
        raw.write_bytes(b"ok \xff\xfe end")
        content = ReadFileTool(allowed_dirs).execute({"path": str(raw)})["content"]
        assert content.startswith("ok ") and content.endswith(" end")

    def test_sees_grant_made_after_construction(self, allowed_dirs, tmp_path):
        tool = ReadFileTool(allowed_dirs)
        later = tmp_path / "later"
        later.mkdir()
        (later / "a.txt").write_text("hello")
        _refused(tool, {"path": str(later / "a.txt")}, str(later / "a.txt"))
        allowed_dirs.add(str(later))
        assert tool.execute({"path": str(later / "a.txt")})["content"] == "hello"


class TestWriteFile:
    def test_writes_and_creates_parents(self, allowed_dirs, workspace):
        target = workspace / "new" / "deep" / "out.txt"
        result = WriteFileTool(allowed_dirs).execute({"path": str(target), "content": "written"})
        assert result == f"Successfully wrote to {target}"
        assert target.read_text() == "written"

    def test_overwrites(self, allowed_dirs, workspace):
        target = workspace / "docs" / "todo.txt"
        WriteFileTool(allowed_dirs).execute({"path": str(target), "content": "done"})
        assert target.read_text() == "done"

    def test_empty_content_is_allowed(self, allowed_dirs, workspace):
        target = workspace / "empty.txt"
        WriteFileTool(allowed_dirs).execute({"path": str(target), "content": ""})
        assert target.read_text() == ""

    def test_refuses_outside_allow_list(self, allowed_dirs, workspace, tmp_path):
        target = tmp_path / "outside.txt"
        _refused(WriteFileTool(allowed_dirs), {"path": str(target), "content": "x"}, str(target))
        assert not target.exists()

    def test_content_required(self, allowed_dirs, workspace):
        with pytest.raises(ToolError, match="content argument"):
            WriteFileTool(allowed_dirs).execute({"path": str(workspace / "x.txt")})


class TestListDirectory:
    def test_lists_sorted_entries(self, allowed_dirs, workspace):
        (workspace / "b.txt").write_text("b")
        (workspace / "a.txt").write_text("a")
        entries = ListDirectoryTool(allowed_dirs).execute({"path": str(workspace)})
        assert [e["name"] for e in entries] == ["a.txt", "b.txt", "docs"]
        docs = entries[2]
        assert docs["is_dir"] is True
        assert docs["size"] == 0
        assert docs["path"] == os.path.join(str(workspace), "docs")
        assert entries[0]["size"] == 1

    def test_recursive(self, allowed_dirs, workspace):
        entries = ListDirectoryTool(allowed_dirs).execute({"path": str(workspace), "recursive": True})
        assert [e["name"] for e in entries] == ["docs", "readme.md", "todo.txt"]

    def test_filters_and_string_flags(self, allowed_dirs, workspace):
        files_only = ListDirectoryTool(allowed_dirs).execute(
            {"path": str(workspace), "recursive": "true", "include_dirs": "false"}
        )
        assert [e["name"] for e in files_only] == ["readme.md", "todo.txt"]
        dirs_only = ListDirectoryTool(allowed_dirs).execute(
            {"path": str(workspace), "recursive": True, "include_files": False}
        )
        assert [e["name"] for e in dirs_only] == ["docs"]

    def test_max_items(self, allowed_dirs, workspace):
        entries = ListDirectoryTool(allowed_dirs).execute(
            {"path": str(workspace), "recursive": True, "max_items": 2}
        )
        assert len(entries) == 2

    def test_bad_flag_type(self, allowed_dirs, workspace):
        with pytest.raises(ToolError, match="recursive argument must be a boolean"):
            ListDirectoryTool(allowed_dirs).execute({"path": str(workspace), "recursive": "maybe"})

    def test_not_a_directory(self, allowed_dirs, workspace):
        with pytest.raises(ToolError, match="not a directory"):
            ListDirectoryTool(allowed_dirs).execute({"path": str(workspace / "docs" / "todo.txt")})

    def test_refuses_outside_allow_list(self, allowed_dirs, workspace, tmp_path):
        _refused(ListDirectoryTool(allowed_dirs), {"path": str(tmp_path)}, str(tmp_path))


class TestSearchFilesByName:
    def test_substring_is_case_insensitive(self, allowed_dirs, workspace):
        (workspace / "README.txt").write_text("x")
        results = SearchFilesByNameTool(allowed_dirs).execute({"root": str(workspace), "pattern": "readme"})
        assert [r["name"] for r in results] == ["README.txt", "readme.md"]

    def test_case_sensitive(self, allowed_dirs, workspace):
        (workspace / "README.txt").write_text("x")
        results = SearchFilesByNameTool(allowed_dirs).execute(
            {"root": str(workspace), "pattern": "readme", "case_sensitive": True}
        )
        assert [r["name"] for r in results] == ["readme.md"]

    def test_glob(self, allowed_dirs, workspace):
        results = SearchFilesByNameTool(allowed_dirs).execute({"root": str(workspace), "pattern": "*.TXT"})
        assert [r["name"] for r in results] == ["todo.txt"]

    def test_dirs_excluded_by_default(self, allowed_dirs, workspace):
        tool = SearchFilesByNameTool(allowed_dirs)
        assert tool.execute({"root": str(workspace), "pattern": "doc"}) == []
        with_dirs = tool.execute({"root": str(workspace), "pattern": "doc", "include_dirs": True})
        assert [r["name"] for r in with_dirs] == ["docs"]

    def test_max_results(self, allowed_dirs, workspace):
        results = SearchFilesByNameTool(allowed_dirs).execute(
            {"root": str(workspace), "pattern": "*", "max_results": 1}
        )
        assert len(results) == 1

    def test_refuses_outside_allow_list(self, allowed_dirs, workspace, tmp_path):
        _refused(SearchFilesByNameTool(allowed_dirs), {"root": str(tmp_path), "pattern": "x"}, str(tmp_path))


class TestFileMetadata:
    def test_file(self, allowed_dirs, workspace):
        path = str(workspace / "docs" / "todo.txt")
        meta = FileMetadataTool(allowed_dirs).execute({"path": path})
        assert meta["name"] == "todo.txt"
        assert meta["is_dir"] is False
        assert meta["size"] == len("ship the gateway\n")
        assert meta["abs_path"] == os.path.abspath(path)
        assert meta["mod_time"].endswith("Z")

    def test_directory(self, allowed_dirs, workspace):
        meta = FileMetadataTool(allowed_dirs).execute({"path": str(workspace / "docs") + os.sep})
        assert meta["name"] == "docs"
        assert meta["is_dir"] is True

    def test_missing(self, allowed_dirs, workspace):
        with pytest.raises(ToolError, match="failed to stat"):
            FileMetadataTool(allowed_dirs).execute({"path": str(workspace / "nope")})


class TestWalkSorted:
    def test_pre_order_by_name(self, workspace):
        (workspace / "a").mkdir()
        (workspace / "a" / "z.txt").write_text("z")
        names = [entry.name for entry, _ in walk_sorted(str(workspace))]
        assert names == ["a", "z.txt", "docs", "readme.md", "todo.txt"]

    def test_keep_prunes_subtrees(self, workspace):
        names = [
            entry.name
            for entry, _ in walk_sorted(str(workspace), keep=lambda p: not p.endswith("docs"))
        ]
        assert names == []

    @pytest.mark.skipif(not hasattr(os, "symlink"), reason="symlinks unavailable")
    def test_does_not_enter_symlinked_dirs(self, workspace, tmp_path):
        outside = tmp_path / "outside"
        outside.mkdir()
        (outside / "hidden.txt").write_text("x")
        os.symlink(str(outside), str(workspace / "link"))
        names = [entry.name for entry, _ in walk_sorted(str(workspace))]
        assert "hidden.txt" not in names
