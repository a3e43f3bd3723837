"""
Base Tool abstraction for the NIRA backend.

Tools follow a simple pattern:
1. Define schema (name, description, parameters)
2. Implement execute(args) returning any JSON-serializable value
3. Raise ToolError to refuse or report a failure

The model asks for a tool inside its free-text reply, e.g.:
{"name": "list_directory", "arguments": {"path": "./docs"}}
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Protocol


class ToolError(Exception):
    """Raised by a tool when it refuses a call or fails to complete it."""


class PathChecker(Protocol):
    """Anything that can answer whether a filesystem path is inside the sandbox."""

    def is_allowed(self, path: str) -> bool:
        ...


@dataclass(frozen=True)
class ToolSchema:
    """JSON Schema for a tool's parameters."""

    name: str
    description: str
    parameters: Dict[str, Any] = field(default_factory=dict)
    required: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "parameters": {
                "type": "object",
                "properties": self.parameters,
                "required": list(self.required),
            },
        }

    def to_prompt_description(self) -> str:
        """Render a one-line summary plus argument list for the system prompt."""
        params_desc = []
        for name, spec in self.parameters.items():
            req = "required" if name in self.required else "optional"
            param_type = spec.get("type", "string")
            desc = spec.get("description", "")
            line = f"    {name} ({param_type}, {req})"
            if desc:
                line += f": {desc}"
            params_desc.append(line)

        header = f"- {self.name}: {self.description}"
        if not params_desc:
            return header
        return header + "\n" + "\n".join(params_desc)


@dataclass
class ToolCall:
    """A structured (name, arguments) request, detected in model text or sent by a client."""

    name: str
    arguments: Dict[str, Any] = field(default_factory=dict)
    raw_text: str = ""


class Tool(ABC):
    """
    Abstract base class for tools.

    Subclasses must implement:
    - schema: ToolSchema describing the tool
    - execute(): performs the action and returns a JSON-serializable result

    execute() may be called concurrently from several connections, so tools
    keep no per-call state on the instance.
    """

    @property
    @abstractmethod
    def schema(self) -> ToolSchema:
        pass

    @property
    def name(self) -> str:
        return self.schema.name

    @property
    def description(self) -> str:
        return self.schema.description

    @abstractmethod
    def execute(self, args: Dict[str, Any]) -> Any:
        """
        Execute the tool with the given arguments.

        Raises:
            ToolError: when the arguments are invalid or the action fails.
        """
        pass


# ---------------------------------------------------------------------------
# Argument helpers
#
# Calls recovered from the function-call syntax carry string values only, so
# booleans and integers are accepted in their string spellings as well.
# ---------------------------------------------------------------------------

_TRUTHY = {"true", "1", "yes", "on"}
_FALSEY = {"false", "0", "no", "off"}

_MISSING = object()


def require_str(args: Dict[str, Any], key: str) -> str:
    value = args.get(key)
    if not isinstance(value, str) or not value:
        raise ToolError(f"{key} argument is required and must be a string")
    return value


def optional_str(args: Dict[str, Any], key: str, default: str = "") -> str:
    value = args.get(key, _MISSING)
    if value is _MISSING or value is None:
        return default
    if not isinstance(value, str):
        raise ToolError(f"{key} argument must be a string")
    return value


def optional_bool(args: Dict[str, Any], key: str, default: bool) -> bool:
    value = args.get(key, _MISSING)
    if value is _MISSING or value is None:
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in _TRUTHY:
            return True
        if lowered in _FALSEY:
            return False
    raise ToolError(f"{key} argument must be a boolean")


def optional_int(args: Dict[str, Any], key: str, default: int) -> int:
    value = args.get(key, _MISSING)
    if value is _MISSING or value is None:
        return default
    # bool is an int subclass; a bare true/false is never a count
    if isinstance(value, bool):
        raise ToolError(f"{key} argument must be an integer")
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str):
        try:
            return int(value.strip(), 10)
        except ValueError:
            pass
    raise ToolError(f"{key} argument must be an integer")


def optional_str_list(args: Dict[str, Any], key: str) -> Optional[List[str]]:
    value = args.get(key, _MISSING)
    if value is _MISSING or value is None:
        return None
    if isinstance(value, str):
        return [part.strip() for part in value.split(",") if part.strip()]
    if isinstance(value, list) and all(isinstance(item, str) for item in value):
        return [item for item in value if item]
    raise ToolError(f"{key} argument must be a list of strings")
