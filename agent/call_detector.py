"""Tool call detection in free-form model output.

The model is asked to reply with ``{"name": ..., "arguments": {...}}`` but in
practice wraps it in tags, prose, or writes ``name(key="value")``. Three
independent strategies are tried in a fixed order and the first one that
yields a call with a non-empty name wins:

1. structured: the smallest balanced ``{...}`` JSON object carrying a
   ``name``, ``tool`` or ``function`` key
2. tagged: ``<tool_call>...</tool_call>`` (or ``<function_call>``), inner
   text parsed as JSON or as ``name{json-args}``
3. function syntax: ``name(key="value", ...)``, flat string arguments

Structured syntaxes always beat the function form, which is easily confused
with prose that merely contains parentheses.
"""

import json
import re
from bisect import bisect_left
from typing import Any, Dict, Iterable, List, Optional, Tuple

from tools.base import ToolCall

NAME_KEYS = ("name", "tool", "function")
ARGUMENT_KEYS = ("arguments", "args", "parameters")

_TAGGED_RE = re.compile(r"<(tool_call|function_call)\b[^>]*>(.*?)</\1>", re.DOTALL)
_NAME_WITH_ARGS_RE = re.compile(r"^([A-Za-z_][\w.\-]*)\s*(\{.*\})$", re.DOTALL)
_FUNCTION_RE = re.compile(r"\b([A-Za-z_]\w*)\s*\(([^()]*)\)")
_QUOTES = "\"'"
_NAME_KEY_RE = re.compile(r'"(?:name|tool|function)"')


def _coerce_arguments(raw: Any) -> Optional[Dict[str, Any]]:
    """Arguments as a dict, or None when they are present but unusable."""
    if raw is None:
        return {}
    if isinstance(raw, dict):
        return raw
    if isinstance(raw, str):
        if not raw.strip():
            return {}
        try:
            decoded = json.loads(raw)
        except json.JSONDecodeError:
            return None
        return decoded if isinstance(decoded, dict) else None
    return None


def call_from_object(obj: Any, raw_text: str = "") -> Optional[ToolCall]:
    """Interpret a decoded JSON value as a call.

    Accepts ``{"name"|"tool"|"function": str, "arguments"|"args"|"parameters": {...}}``
    and the OpenAI-style ``{"function": {"name": ..., "arguments": "<json>"}}``.
    """
    if not isinstance(obj, dict):
        return None

    name = None
    raw_args: Any = None
    for key in NAME_KEYS:
        value = obj.get(key)
        if isinstance(value, str) and value.strip():
            name = value.strip()
            break
        if key == "function" and isinstance(value, dict):
            inner = value.get("name")
            if isinstance(inner, str) and inner.strip():
                name = inner.strip()
                raw_args = value.get("arguments")
                break
    if name is None:
        return None

    if raw_args is None:
        for key in ARGUMENT_KEYS:
            if key in obj:
                raw_args = obj[key]
                break
    arguments = _coerce_arguments(raw_args)
    if arguments is None:
        return None
    return ToolCall(name=name, arguments=arguments, raw_text=raw_text)


def _brace_spans(text: str) -> List[Tuple[int, int]]:
    """Every balanced ``{...}`` span as (start, end) with end exclusive.

    One pass over *text* with a stack of open-brace positions, so unclosed
    braces cost nothing extra. Braces inside JSON string literals do not
    count; quotes outside any brace are prose and ignored.
    """
    spans: List[Tuple[int, int]] = []
    stack: List[int] = []
    in_string = False
    escaped = False
    for pos, c in enumerate(text):
        if in_string:
            if escaped:
                escaped = False
            elif c == "\\":
                escaped = True
            elif c == '"':
                in_string = False
            continue
        if c == "{":
            stack.append(pos)
        elif c == "}":
            if stack:
                spans.append((stack.pop(), pos + 1))
        elif c == '"' and stack:
            in_string = True
    return spans


def detect_structured_call(text: str) -> Optional[ToolCall]:
    """Strategy 1: the smallest JSON object in *text* that reads as a call.

    An object nested inside another call object (typically its arguments) is
    never picked on its own.
    """
    if not text or "{" not in text:
        return None

    key_positions = [m.start() for m in _NAME_KEY_RE.finditer(text)]
    if not key_positions:
        return None

    candidates: List[Tuple[int, int, ToolCall]] = []
    for start, end in _brace_spans(text):
        i = bisect_left(key_positions, start)
        if i == len(key_positions) or key_positions[i] >= end:
            continue
        fragment = text[start:end]
        try:
            obj = json.loads(fragment)
        except json.JSONDecodeError:
            continue
        call = call_from_object(obj, raw_text=fragment)
        if call is not None:
            candidates.append((start, end, call))

    outermost = [
        c for c in candidates
        if not any(o is not c and o[0] <= c[0] and c[1] <= o[1] for o in candidates)
    ]
    if not outermost:
        return None
    best = min(outermost, key=lambda c: (c[1] - c[0], c[0]))
    return best[2]


def detect_tagged_call(text: str) -> Optional[ToolCall]:
    """Strategy 2: a call wrapped in ``<tool_call>`` / ``<function_call>`` tags."""
    if not text or "<" not in text:
        return None
    for match in _TAGGED_RE.finditer(text):
        inner = match.group(2).strip()
        if not inner:
            continue
        try:
            call = call_from_object(json.loads(inner), raw_text=match.group(0))
        except json.JSONDecodeError:
            call = None
        if call is None:
            named = _NAME_WITH_ARGS_RE.match(inner)
            if named:
                try:
                    args = json.loads(named.group(2))
                except json.JSONDecodeError:
                    args = None
                if isinstance(args, dict):
                    call = ToolCall(name=named.group(1), arguments=args, raw_text=match.group(0))
        if call is None:
            call = detect_structured_call(inner)
        if call is not None:
            return call
    return None


def split_top_level(args_text: str, sep: str = ",") -> List[str]:
    """Split on *sep* outside single or double quotes."""
    parts: List[str] = []
    current: List[str] = []
    quote = None
    for ch in args_text:
        if quote:
            if ch == quote:
                quote = None
        elif ch in _QUOTES:
            quote = ch
        elif ch == sep:
            parts.append("".join(current))
            current = []
            continue
        current.append(ch)
    parts.append("".join(current))
    return parts


def parse_simple_args(args_text: str) -> Dict[str, str]:
    """``key="value", key2='v2'`` into a flat str -> str dict; parts without ``=`` are ignored."""
    args: Dict[str, str] = {}
    for part in split_top_level(args_text):
        part = part.strip()
        idx = part.find("=")
        if idx <= 0:
            continue
        key = part[:idx].strip()
        value = part[idx + 1:].strip().strip(_QUOTES)
        if key:
            args[key] = value
    return args


def detect_function_call(text: str, known_tools: Optional[Iterable[str]] = None) -> Optional[ToolCall]:
    """Strategy 3: ``identifier(key="value", ...)``.

    Best effort: no nested parentheses, no escaped quotes. With *known_tools*
    only identifiers naming a registered tool are accepted, so prose such as
    "the result (see above)" is skipped.
    """
    if not text or "(" not in text:
        return None
    allowed = set(known_tools) if known_tools is not None else None
    for match in _FUNCTION_RE.finditer(text):
        name = match.group(1)
        if allowed is not None and name not in allowed:
            continue
        return ToolCall(name=name, arguments=parse_simple_args(match.group(2)), raw_text=match.group(0))
    return None


def detect_tool_call(text: str, known_tools: Optional[Iterable[str]] = None) -> Optional[ToolCall]:
    """Run the three strategies in priority order; None means a plain answer."""
    return (
        detect_structured_call(text)
        or detect_tagged_call(text)
        or detect_function_call(text, known_tools=known_tools)
    )
