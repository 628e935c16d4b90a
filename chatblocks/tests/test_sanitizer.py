"""Tests for response message sanitization."""

from chatblocks.application.chat.utilities.sanitizer import (
    collect_tool_result_ids,
    sanitize_response_messages,
)
from chatblocks.domain.messages.models import (
    MessageRole,
    ResponseMessage,
    TextPart,
    ToolCallPart,
    ToolResultPart,
)


def _assistant(*parts):
    return ResponseMessage(role=MessageRole.ASSISTANT, content=list(parts))


def _tool(*parts):
    return ResponseMessage(role=MessageRole.TOOL, content=list(parts))


def _mixed_messages():
    return [
        _assistant(
            TextPart(text="Let me check."),
            ToolCallPart(tool_call_id="c1", tool_name="getWeather", args={"latitude": 1, "longitude": 2}),
            ToolCallPart(tool_call_id="c2", tool_name="createDocument", args={"title": "x", "kind": "text"}),
        ),
        _tool(ToolResultPart(tool_call_id="c1", tool_name="getWeather", result={"temp": 20})),
        _assistant(TextPart(text="")),
        _assistant(ToolCallPart(tool_call_id="c3", tool_name="getWeather", args={})),
        ResponseMessage(role=MessageRole.ASSISTANT, content=""),
        _assistant(TextPart(text="It is 20 degrees.")),
    ]


def test_collect_tool_result_ids():
    assert collect_tool_result_ids(_mixed_messages()) == {"c1"}


def test_tool_call_without_result_is_dropped():
    sanitized = sanitize_response_messages(_mixed_messages())
    first = sanitized[0]
    ids = [p.tool_call_id for p in first.content if isinstance(p, ToolCallPart)]
    assert ids == ["c1"]
    assert first.content[0] == TextPart(text="Let me check.")


def test_empty_messages_are_dropped():
    sanitized = sanitize_response_messages(_mixed_messages())
    # empty text message, orphan-only call message and empty string message are gone
    assert len(sanitized) == 3
    assert sanitized[-1].text() == "It is 20 degrees."
    assert sanitized[1].role is MessageRole.TOOL


def test_sanitize_is_idempotent():
    once = sanitize_response_messages(_mixed_messages())
    twice = sanitize_response_messages(once)
    assert [m.to_dict() for m in once] == [m.to_dict() for m in twice]


def test_inputs_are_not_mutated():
    messages = _mixed_messages()
    before = [m.to_dict() for m in messages]
    sanitize_response_messages(messages)
    assert [m.to_dict() for m in messages] == before


def test_plain_string_content_survives():
    messages = [ResponseMessage(role=MessageRole.ASSISTANT, content="hello")]
    assert sanitize_response_messages(messages)[0].content == "hello"
