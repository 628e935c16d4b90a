"""
Response message sanitization - pure functions run before persisting a turn.

Rules:
1. A tool-call part without a matching tool-result is dropped.
2. A text part with empty text is dropped.
3. A message left with no content is dropped.

The function is idempotent: sanitizing its own output changes nothing.
"""

from typing import List, Set

from chatblocks.domain.messages.models import (
    MessageRole,
    ResponseMessage,
    TextPart,
    ToolCallPart,
    ToolResultPart,
)


def collect_tool_result_ids(messages: List[ResponseMessage]) -> Set[str]:
    """Ids of every tool call that has a result somewhere in ``messages``."""
    ids: Set[str] = set()
    for message in messages:
        if message.role is not MessageRole.TOOL or isinstance(message.content, str):
            continue
        for part in message.content:
            if isinstance(part, ToolResultPart):
                ids.add(part.tool_call_id)
    return ids


def _keep_part(part, result_ids: Set[str]) -> bool:
    if isinstance(part, ToolCallPart):
        return part.tool_call_id in result_ids
    if isinstance(part, TextPart):
        return len(part.text) > 0
    return True


def sanitize_response_messages(messages: List[ResponseMessage]) -> List[ResponseMessage]:
    """Return a cleaned copy of ``messages`` (inputs are not mutated)."""
    result_ids = collect_tool_result_ids(messages)

    sanitized: List[ResponseMessage] = []
    for message in messages:
        if isinstance(message.content, str):
            if message.content:
                sanitized.append(ResponseMessage(role=message.role, content=message.content))
            continue

        parts = [part for part in message.content if _keep_part(part, result_ids)]
        if parts:
            sanitized.append(ResponseMessage(role=message.role, content=parts))
    return sanitized
