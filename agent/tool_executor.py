"""Tool call execution and result formatting.

The executor looks a tool up by name, runs it, logs every attempt and folds
whatever the tool raised into a single ToolExecutionError so callers only
have to tell "not found" from "failed". It performs no I/O of its own.
"""

import json
import logging
from dataclasses import dataclass
from typing import Any

from nira_constants import MAX_TOOL_RESULT_CHARS
from tools.base import ToolCall, ToolError
from tools.registry import ToolRegistry

logger = logging.getLogger(__name__)


class ToolNotFoundError(ToolError):
    def __init__(self, tool_name: str):
        self.tool_name = tool_name
        super().__init__(f"capability '{tool_name}' not found")


class ToolExecutionError(ToolError):
    """Uniform failure envelope: ``execution failed: <cause>``."""

    def __init__(self, tool_name: str, cause: BaseException):
        self.tool_name = tool_name
        self.cause = cause
        super().__init__(f"execution failed: {cause}")


@dataclass(frozen=True)
class ToolExecConfig:
    """Immutable execution settings."""

    max_result_chars: int = MAX_TOOL_RESULT_CHARS


def truncate_result(text: str, limit: int = MAX_TOOL_RESULT_CHARS) -> str:
    if len(text) <= limit:
        return text
    return (
        text[:limit]
        + f"\n\n[Truncated: tool response was {len(text):,} chars, "
        f"exceeding the {limit:,} char limit]"
    )


def serialize_result(result: Any) -> str:
    """JSON text for a tool result. Raises TypeError/ValueError when not serializable."""
    return json.dumps(result, ensure_ascii=False)


def format_tool_result(tool_name: str, result: Any, config: ToolExecConfig = ToolExecConfig()) -> str:
    """Text of the synthetic turn that feeds a result back to the model."""
    try:
        payload = serialize_result(result)
    except (TypeError, ValueError):
        return f"Tool {tool_name} returned result (unable to serialize)"
    return truncate_result(f"Tool {tool_name} result: {payload}", config.max_result_chars)


class ToolExecutor:
    """Runs calls against a registry.

    ``execute`` is synchronous and may block on disk or network; async
    callers run it in a worker thread.
    """

    def __init__(self, registry: ToolRegistry, config: ToolExecConfig = ToolExecConfig()):
        self.registry = registry
        self.config = config

    def execute(self, call: ToolCall) -> Any:
        """Execute *call* and return the tool's raw result.

        Raises:
            ToolNotFoundError: no tool is registered under ``call.name``.
            ToolExecutionError: the tool raised; the original is ``.cause``.
        """
        tool = self.registry.get(call.name)
        if tool is None:
            logger.error("Tool %s not found", call.name)
            raise ToolNotFoundError(call.name)

        logger.info("Executing tool %s with args %s", call.name, sorted(call.arguments))
        try:
            result = tool.execute(dict(call.arguments))
        except Exception as e:
            logger.error("Tool %s failed: %s", call.name, e)
            raise ToolExecutionError(call.name, e) from e
        logger.info("Tool %s succeeded", call.name)
        return result
