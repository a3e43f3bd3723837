"""Tests for tools.registry -- lookup, ordering and the startup factory."""

from typing import Any, Dict

from tools.base import Tool, ToolSchema
from tools.registry import ToolRegistry, build_tool_registry

EXPECTED_TOOLS = [
    "allowed_dirs_add",
    "allowed_dirs_list",
    "allowed_dirs_remove",
    "file_metadata",
    "list_directory",
    "memory_save",
    "memory_search",
    "rag_index_folder",
    "rag_search",
    "read_file",
    "search_files_by_name",
    "write_file",
]


class EchoTool(Tool):
    def __init__(self, name="echo", description="Echoes its input"):
        self._schema = ToolSchema(
            name=name,
            description=description,
            parameters={"text": {"type": "string", "description": "What to echo"}},
            required=["text"],
        )

    @property
    def schema(self) -> ToolSchema:
        return self._schema

    def execute(self, args: Dict[str, Any]) -> Any:
        return args.get("text")


class TestToolRegistry:
    def test_register_and_get(self):
        reg = ToolRegistry()
        tool = EchoTool()
        reg.register(tool)
        assert reg.get("echo") is tool
        assert "echo" in reg
        assert len(reg) == 1
        assert reg.get("missing") is None

    def test_last_registration_wins(self):
        reg = ToolRegistry()
        reg.register(EchoTool(description="first"))
        reg.register(EchoTool(description="second"))
        assert len(reg) == 1
        assert reg.get("echo").description == "second"

    def test_listing_is_sorted(self):
        reg = ToolRegistry()
        for name in ("zeta", "alpha", "mid"):
            reg.register(EchoTool(name=name))
        assert reg.names() == ["alpha", "mid", "zeta"]
        assert [t.name for t in reg.list_tools()] == ["alpha", "mid", "zeta"]
        assert [s.name for s in reg.get_schemas()] == ["alpha", "mid", "zeta"]

    def test_prompt_description(self):
        reg = ToolRegistry()
        reg.register(EchoTool())
        assert reg.get_prompt_description() == (
            "- echo: Echoes its input\n"
            "    text (string, required): What to echo"
        )

    def test_schema_to_dict(self):
        data = EchoTool().schema.to_dict()
        assert data["parameters"]["type"] == "object"
        assert data["parameters"]["required"] == ["text"]


class TestBuildToolRegistry:
    def test_default_tools(self, registry):
        assert registry.names() == EXPECTED_TOOLS

    def test_web_search_is_optional(self, allowed_dirs, rag_index, memories):
        reg = build_tool_registry(allowed_dirs=allowed_dirs, rag_index=rag_index, memories=memories)
        assert "web_search" in reg
        assert len(reg) == len(EXPECTED_TOOLS) + 1

    def test_tools_share_the_allow_list(self, registry, allowed_dirs, tmp_path):
        (tmp_path / "f.txt").write_text("shared")
        registry.get("allowed_dirs_add").execute({"path": str(tmp_path)})
        assert registry.get("read_file").execute({"path": str(tmp_path / "f.txt")})["content"] == "shared"
