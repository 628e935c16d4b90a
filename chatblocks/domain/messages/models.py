"""Domain models for messages.

Assistant and tool messages carry a list of typed content parts. The
serialized shape (``to_dict``) is what gets stored and what the client
receives when a chat is reloaded.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Union

from chatblocks.domain.errors import ValidationError


class MessageRole(Enum):
    """Message role enumeration."""
    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"
    TOOL = "tool"


@dataclass
class TextPart:
    """A run of assistant text."""
    text: str
    type: str = field(default="text", init=False)

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.type, "text": self.text}


@dataclass
class ToolCallPart:
    """A tool invocation requested by the model."""
    tool_call_id: str
    tool_name: str
    args: Dict[str, Any]
    type: str = field(default="tool-call", init=False)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type,
            "toolCallId": self.tool_call_id,
            "toolName": self.tool_name,
            "args": self.args,
        }


@dataclass
class ToolResultPart:
    """The outcome of a tool invocation."""
    tool_call_id: str
    tool_name: str
    result: Any
    type: str = field(default="tool-result", init=False)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type,
            "toolCallId": self.tool_call_id,
            "toolName": self.tool_name,
            "result": self.result,
        }


ContentPart = Union[TextPart, ToolCallPart, ToolResultPart]


def part_from_dict(data: Dict[str, Any]) -> ContentPart:
    """Rebuild a content part from its serialized form.

    Raises:
        ValidationError: unknown part type or a required field is missing
    """
    if not isinstance(data, dict):
        raise ValidationError(f"Content part must be an object, got {type(data).__name__}")
    part_type = data.get("type")
    try:
        if part_type == "text":
            return TextPart(text=data.get("text", ""))
        if part_type == "tool-call":
            return ToolCallPart(
                tool_call_id=data["toolCallId"],
                tool_name=data["toolName"],
                args=data.get("args") or {},
            )
        if part_type == "tool-result":
            return ToolResultPart(
                tool_call_id=data["toolCallId"],
                tool_name=data.get("toolName", ""),
                result=data.get("result"),
            )
    except KeyError as exc:
        raise ValidationError(f"Content part {part_type!r} is missing {exc.args[0]!r}") from exc
    raise ValidationError(f"Unknown content part type: {part_type!r}")


@dataclass
class ResponseMessage:
    """A message produced (or consumed) during a chat turn."""
    role: MessageRole
    content: Union[str, List[ContentPart]] = ""

    @property
    def parts(self) -> List[ContentPart]:
        if isinstance(self.content, str):
            return [TextPart(text=self.content)] if self.content else []
        return list(self.content)

    def text(self) -> str:
        """Concatenated text of all text parts."""
        if isinstance(self.content, str):
            return self.content
        return "".join(p.text for p in self.content if isinstance(p, TextPart))

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        if isinstance(self.content, str):
            content: Any = self.content
        else:
            content = [p.to_dict() for p in self.content]
        return {"role": self.role.value, "content": content}
