"""Wire models for the WebSocket client channel.

Inbound frames::

    {"type": "user", "content": "..."}
    {"type": "tool_call", "id": "...", "name": "...", "arguments": {...}}
    {"id": "...", "name": "...", "arguments": {...}}        # bare direct call
    {"type": "reset"}

Outbound frames are ``{"type", "content", "id"?}``.
"""

from enum import Enum
from typing import Any, Dict, Optional, Union

from pydantic import BaseModel, Field, ValidationError, field_validator


class MessageType(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"
    ERROR = "error"
    CHUNK = "chunk"
    TOOL_CALL = "tool_call"
    TOOL_RESULT = "tool_result"
    RESET = "reset"


class UserMessage(BaseModel):
    type: MessageType = MessageType.USER
    content: str


class DirectCallRequest(BaseModel):
    type: MessageType = MessageType.TOOL_CALL
    id: Optional[str] = None
    name: str = Field(min_length=1)
    arguments: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("id", mode="before")
    @classmethod
    def _id_as_str(cls, value: Any) -> Any:
        # clients may send numeric ids
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        return value


class ResetRequest(BaseModel):
    type: MessageType = MessageType.RESET


InboundMessage = Union[UserMessage, DirectCallRequest, ResetRequest]


class OutboundMessage(BaseModel):
    type: MessageType
    content: str
    id: Optional[str] = None

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", exclude_none=True)


class FrameError(ValueError):
    """An inbound frame that cannot be interpreted."""


def parse_inbound(frame: Any) -> InboundMessage:
    """Classify a decoded JSON frame.

    A frame without ``type`` but with ``name`` is a direct call.

    Raises:
        FrameError: unknown type or missing/invalid fields.
    """
    if not isinstance(frame, dict):
        raise FrameError("message must be a JSON object")

    kind = frame.get("type")
    if kind is None and "name" in frame:
        kind = MessageType.TOOL_CALL.value

    try:
        if kind == MessageType.USER.value:
            return UserMessage.model_validate(frame)
        if kind == MessageType.TOOL_CALL.value:
            return DirectCallRequest.model_validate({**frame, "type": kind})
        if kind == MessageType.RESET.value:
            return ResetRequest.model_validate(frame)
    except ValidationError as e:
        raise FrameError(f"invalid {kind} message: {e.errors()[0].get('msg', e)}") from e
    raise FrameError(f"unsupported message type: {kind!r}")
