"""
Tools Package

Capabilities the model can invoke by emitting a tool call in its reply:

- file_tools: read, write, list and search files inside allowed directories
- allowed_dirs_tools: inspect and edit the directory allow-list
- rag_tools: index small text files and search them by substring
- memory_tool: long-term facts that persist across conversations
- web_search: DuckDuckGo Instant Answer lookups

build_tool_registry() in registry.py wires them to the shared stores.
"""

from .base import Tool, ToolCall, ToolError, ToolSchema
from .registry import ToolRegistry, build_tool_registry

__all__ = [
    "Tool",
    "ToolCall",
    "ToolError",
    "ToolRegistry",
    "ToolSchema",
    "build_tool_registry",
]
