"""
Conversions between client (UI) messages, stored messages and the
OpenAI-style message dicts litellm expects.
"""

import json
import logging
from typing import Any, Dict, List, Optional

from chatblocks.domain.errors import ValidationError
from chatblocks.domain.messages.models import (
    MessageRole,
    ResponseMessage,
    TextPart,
    ToolCallPart,
    ToolResultPart,
    part_from_dict,
)

logger = logging.getLogger(__name__)


def _text_of(content: Any) -> str:
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        return "".join(p.get("text", "") for p in content if isinstance(p, dict) and p.get("type") == "text")
    return ""


def _invocation_field(invocation: Dict[str, Any], key: str) -> Any:
    try:
        return invocation[key]
    except (KeyError, TypeError) as exc:
        raise ValidationError(f"Tool invocation is missing {key!r}") from exc


def convert_to_core_messages(ui_messages: List[Dict[str, Any]]) -> List[ResponseMessage]:
    """Convert client messages into turn messages.

    Assistant messages with ``toolInvocations`` become an assistant message
    with tool-call parts followed by a tool message carrying the results
    that are already known.

    Raises:
        ValidationError: a content part or tool invocation is malformed
    """
    core: List[ResponseMessage] = []
    for ui in ui_messages:
        role = ui.get("role")
        content = ui.get("content", "")

        if role == MessageRole.USER.value:
            core.append(ResponseMessage(role=MessageRole.USER, content=_text_of(content)))
        elif role == MessageRole.SYSTEM.value:
            core.append(ResponseMessage(role=MessageRole.SYSTEM, content=_text_of(content)))
        elif role == MessageRole.ASSISTANT.value:
            invocations = ui.get("toolInvocations") or []
            if isinstance(content, list):
                core.append(ResponseMessage(role=MessageRole.ASSISTANT, content=[part_from_dict(p) for p in content]))
                continue
            if not invocations:
                core.append(ResponseMessage(role=MessageRole.ASSISTANT, content=content or ""))
                continue
            parts: List[Any] = [TextPart(text=content)] if content else []
            parts.extend(
                ToolCallPart(
                    tool_call_id=_invocation_field(inv, "toolCallId"),
                    tool_name=_invocation_field(inv, "toolName"),
                    args=inv.get("args") or {},
                )
                for inv in invocations
            )
            core.append(ResponseMessage(role=MessageRole.ASSISTANT, content=parts))
            results = [
                ToolResultPart(
                    tool_call_id=_invocation_field(inv, "toolCallId"),
                    tool_name=_invocation_field(inv, "toolName"),
                    result=inv.get("result"),
                )
                for inv in invocations
                if inv.get("state") == "result"
            ]
            if results:
                core.append(ResponseMessage(role=MessageRole.TOOL, content=results))
        elif role == MessageRole.TOOL.value and isinstance(content, list):
            core.append(ResponseMessage(role=MessageRole.TOOL, content=[part_from_dict(p) for p in content]))
        else:
            logger.debug("Skipping message with unsupported role %r", role)
    return core


def get_most_recent_user_message(messages: List[ResponseMessage]) -> Optional[ResponseMessage]:
    for message in reversed(messages):
        if message.role is MessageRole.USER:
            return message
    return None


def to_llm_messages(messages: List[ResponseMessage]) -> List[Dict[str, Any]]:
    """Render turn messages in the chat-completions format."""
    rendered: List[Dict[str, Any]] = []
    for message in messages:
        if message.role in (MessageRole.USER, MessageRole.SYSTEM):
            rendered.append({"role": message.role.value, "content": message.text()})
        elif message.role is MessageRole.ASSISTANT:
            tool_calls = [
                {
                    "id": part.tool_call_id,
                    "type": "function",
                    "function": {"name": part.tool_name, "arguments": json.dumps(part.args)},
                }
                for part in message.parts
                if isinstance(part, ToolCallPart)
            ]
            entry: Dict[str, Any] = {"role": "assistant", "content": message.text() or None}
            if tool_calls:
                entry["tool_calls"] = tool_calls
            rendered.append(entry)
        elif message.role is MessageRole.TOOL:
            for part in message.parts:
                if isinstance(part, ToolResultPart):
                    rendered.append({
                        "role": "tool",
                        "tool_call_id": part.tool_call_id,
                        "content": json.dumps(part.result, default=str),
                    })
    return rendered


def convert_to_ui_messages(stored: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Fold stored messages into the client's message shape.

    Tool messages are merged into the tool invocations of the assistant
    message that made the call.
    """
    ui_messages: List[Dict[str, Any]] = []
    invocations_by_id: Dict[str, Dict[str, Any]] = {}

    for message in stored:
        content = message.get("content")
        if message.get("role") == MessageRole.TOOL.value:
            for part in content if isinstance(content, list) else []:
                invocation = invocations_by_id.get(part.get("toolCallId"))
                if invocation is not None:
                    invocation["state"] = "result"
                    invocation["result"] = part.get("result")
            continue

        text = _text_of(content)
        tool_invocations = []
        if isinstance(content, list):
            for part in content:
                if part.get("type") == "tool-call":
                    invocation = {
                        "state": "call",
                        "toolCallId": part["toolCallId"],
                        "toolName": part["toolName"],
                        "args": part.get("args") or {},
                    }
                    invocations_by_id[part["toolCallId"]] = invocation
                    tool_invocations.append(invocation)

        ui_messages.append({
            "id": message.get("id"),
            "role": message.get("role"),
            "content": text,
            "toolInvocations": tool_invocations,
            "createdAt": message.get("created_at"),
        })
    return ui_messages
