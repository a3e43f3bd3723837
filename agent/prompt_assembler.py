"""System prompt assembly with caching.

Caching contract:
    - build() returns cached value on subsequent calls
    - invalidate() clears the cache
    - After invalidate(), the next build() call creates a fresh prompt
"""

from typing import Iterable, Optional

from storage.memories import Memory
from tools.registry import ToolRegistry

DEFAULT_AGENT_IDENTITY = "You are NIRA, a helpful AI assistant. Be concise and friendly."

TOOL_USE_INSTRUCTIONS = (
    "To use a tool, respond with a JSON object like: "
    '{"name": "tool_name", "arguments": {"arg1": "value1"}}\n'
    'Or use the format: tool_name(arg1="value1", arg2="value2")\n'
    "Call at most one tool per reply. When a tool result arrives, use it to answer "
    "or call another tool."
)

MAX_PROMPT_FACTS = 10
MIN_PROMPT_FACT_IMPORTANCE = 30


class PromptAssembler:
    """Assembles the system preamble from the registry and long-term facts.

    Args:
        identity: Opening line of the prompt.
    """

    def __init__(self, *, identity: str = DEFAULT_AGENT_IDENTITY):
        self._identity = identity
        self._cached_prompt: Optional[str] = None

    def build(self, *, registry: ToolRegistry, facts: Iterable[Memory] = ()) -> str:
        """Assemble the prompt. Tools are listed in name order so identical
        registries always render identically.

        CACHING CONTRACT: Returns cached value on subsequent calls.
        Call invalidate() before build() to force a rebuild.
        """
        if self._cached_prompt is not None:
            return self._cached_prompt

        prompt_parts = [self._identity]

        tool_desc = registry.get_prompt_description()
        if tool_desc:
            prompt_parts.append("Available tools:\n" + tool_desc)
            prompt_parts.append(TOOL_USE_INSTRUCTIONS)

        fact_lines = [
            f"- [{m.category}] {m.content}"
            for m in list(facts)[:MAX_PROMPT_FACTS]
        ]
        if fact_lines:
            prompt_parts.append("Things you remember about the user:\n" + "\n".join(fact_lines))

        self._cached_prompt = "\n\n".join(prompt_parts)
        return self._cached_prompt

    @property
    def is_cached(self) -> bool:
        return self._cached_prompt is not None

    def invalidate(self) -> None:
        self._cached_prompt = None
