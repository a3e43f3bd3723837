"""
Capability registry and the startup factory that fills it.

The registry is populated once by build_tool_registry() and only read
afterwards, so lookups from concurrent connections need no locking.
"""

import logging
from typing import Dict, List, Optional

import httpx

from storage.allowed_dirs import AllowedDirsStore
from storage.memories import MemoryStore
from storage.rag_index import RagIndex

from .base import Tool, ToolSchema

logger = logging.getLogger(__name__)


class ToolRegistry:
    """Registry of available tools."""

    def __init__(self):
        self._tools: Dict[str, Tool] = {}

    def register(self, tool: Tool) -> None:
        """Register a tool. A later tool with the same name replaces the earlier one."""
        if tool.name in self._tools:
            logger.debug("Tool %s re-registered; replacing previous instance", tool.name)
        self._tools[tool.name] = tool

    def get(self, name: str) -> Optional[Tool]:
        return self._tools.get(name)

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)

    def names(self) -> List[str]:
        return sorted(self._tools)

    def list_tools(self) -> List[Tool]:
        """All registered tools, sorted by name."""
        return [self._tools[name] for name in sorted(self._tools)]

    def get_schemas(self) -> List[ToolSchema]:
        return [tool.schema for tool in self.list_tools()]

    def get_prompt_description(self) -> str:
        """Tool descriptions for the system prompt, in name order."""
        return "\n".join(schema.to_prompt_description() for schema in self.get_schemas())


def build_tool_registry(
    *,
    allowed_dirs: AllowedDirsStore,
    rag_index: RagIndex,
    memories: MemoryStore,
    enable_web: bool = True,
    http_client: Optional[httpx.Client] = None,
) -> ToolRegistry:
    """
    Build the ToolRegistry shared by every connection.

    Every filesystem tool gets the same AllowedDirsStore, so a grant or
    revocation made through one connection is seen by all of them.
    """
    from .allowed_dirs_tools import AllowedDirsAddTool, AllowedDirsListTool, AllowedDirsRemoveTool
    from .file_tools import (
        FileMetadataTool,
        ListDirectoryTool,
        ReadFileTool,
        SearchFilesByNameTool,
        WriteFileTool,
    )
    from .memory_tool import MemorySaveTool, MemorySearchTool
    from .rag_tools import RagIndexFolderTool, RagSearchTool
    from .web_search import WebSearchTool

    reg = ToolRegistry()
    for tool in (
        ReadFileTool(allowed_dirs),
        WriteFileTool(allowed_dirs),
        ListDirectoryTool(allowed_dirs),
        SearchFilesByNameTool(allowed_dirs),
        FileMetadataTool(allowed_dirs),
        AllowedDirsListTool(allowed_dirs),
        AllowedDirsAddTool(allowed_dirs),
        AllowedDirsRemoveTool(allowed_dirs, rag_index),
        RagIndexFolderTool(allowed_dirs, rag_index),
        RagSearchTool(allowed_dirs, rag_index),
        MemorySearchTool(memories),
        MemorySaveTool(memories),
    ):
        reg.register(tool)

    if enable_web:
        reg.register(WebSearchTool(client=http_client))

    logger.info("Tool registry built with %d tools: %s", len(reg), ", ".join(reg.names()))
    return reg
