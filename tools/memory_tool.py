"""
Long-term memory tools.

Facts are keyed strings with a category and an importance from 0 to 100.
Saving under an existing key replaces the fact. Facts with importance >= 30
are also injected into the system prompt when a connection opens.
"""

from typing import Any, Dict

from storage.memories import MemoryStore, clamp_importance

from .base import Tool, ToolError, ToolSchema, optional_int, optional_str, require_str


class MemorySearchTool(Tool):
    def __init__(self, memories: MemoryStore):
        self._memories = memories

    @property
    def schema(self) -> ToolSchema:
        return ToolSchema(
            name="memory_search",
            description="Lists remembered facts, most important first.",
            parameters={
                "category": {"type": "string", "description": "Only facts in this category"},
                "min_importance": {"type": "integer", "description": "Lowest importance to include (default 0)"},
            },
        )

    def execute(self, args: Dict[str, Any]) -> Any:
        category = optional_str(args, "category")
        min_importance = optional_int(args, "min_importance", 0)
        return [
            {
                "key": m.key,
                "content": m.content,
                "category": m.category,
                "importance": m.importance,
                "updated_at": m.updated_at,
            }
            for m in self._memories.search_memories(category, min_importance)
        ]


class MemorySaveTool(Tool):
    def __init__(self, memories: MemoryStore):
        self._memories = memories

    @property
    def schema(self) -> ToolSchema:
        return ToolSchema(
            name="memory_save",
            description="Remembers a fact across conversations. Saving an existing key overwrites it.",
            parameters={
                "key": {"type": "string", "description": "Unique identifier for the fact"},
                "content": {"type": "string", "description": "The fact to remember"},
                "category": {"type": "string", "description": "Grouping such as preference or project (default general)"},
                "importance": {"type": "integer", "description": "0-100, higher is more important (default 50)"},
            },
            required=["key", "content"],
        )

    def execute(self, args: Dict[str, Any]) -> Any:
        key = require_str(args, "key")
        content = require_str(args, "content")
        category = optional_str(args, "category") or "general"
        importance = optional_int(args, "importance", 50)
        importance = clamp_importance(importance)
        if not key.strip():
            raise ToolError("key argument must not be blank")
        self._memories.store_memory(key, content, category, importance)
        return f"Saved memory '{key}' ({category}, importance {importance})"
