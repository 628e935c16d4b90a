"""Tests for client/stored/LLM message conversions."""

import pytest

from chatblocks.application.chat.utilities.message_converter import (
    convert_to_core_messages,
    convert_to_ui_messages,
    get_most_recent_user_message,
    to_llm_messages,
)
from chatblocks.domain.errors import ValidationError
from chatblocks.domain.messages.models import MessageRole, ToolCallPart

UI_MESSAGES = [
    {"role": "user", "content": "Weather in Paris?"},
    {
        "role": "assistant",
        "content": "",
        "toolInvocations": [{
            "state": "result",
            "toolCallId": "call_1",
            "toolName": "getWeather",
            "args": {"latitude": 48.85, "longitude": 2.35},
            "result": {"current": {"temperature_2m": 17}},
        }],
    },
    {"role": "assistant", "content": "It is 17 degrees."},
    {"role": "user", "content": [{"type": "text", "text": "And "}, {"type": "text", "text": "tomorrow?"}]},
]


def test_tool_invocations_become_call_and_result_messages():
    core = convert_to_core_messages(UI_MESSAGES)

    assert [m.role for m in core] == [
        MessageRole.USER, MessageRole.ASSISTANT, MessageRole.TOOL, MessageRole.ASSISTANT, MessageRole.USER,
    ]
    assert isinstance(core[1].parts[0], ToolCallPart)
    assert core[2].parts[0].result == {"current": {"temperature_2m": 17}}
    assert get_most_recent_user_message(core).text() == "And tomorrow?"


def test_llm_messages_pair_calls_with_results():
    rendered = to_llm_messages(convert_to_core_messages(UI_MESSAGES))

    assert rendered[1]["content"] is None
    assert rendered[1]["tool_calls"][0]["id"] == "call_1"
    assert rendered[2] == {
        "role": "tool",
        "tool_call_id": "call_1",
        "content": '{"current": {"temperature_2m": 17}}',
    }


def test_stored_messages_fold_into_ui_shape():
    stored = [
        {"id": "m1", "role": "user", "content": "Weather?", "created_at": None},
        {"id": "m2", "role": "assistant", "created_at": None, "content": [
            {"type": "tool-call", "toolCallId": "call_1", "toolName": "getWeather", "args": {"latitude": 1, "longitude": 2}},
        ]},
        {"id": "m3", "role": "tool", "created_at": None, "content": [
            {"type": "tool-result", "toolCallId": "call_1", "toolName": "getWeather", "result": {"ok": True}},
        ]},
        {"id": "m4", "role": "assistant", "created_at": None, "content": [{"type": "text", "text": "Mild."}]},
    ]

    ui = convert_to_ui_messages(stored)

    assert [m["id"] for m in ui] == ["m1", "m2", "m4"]
    invocation = ui[1]["toolInvocations"][0]
    assert invocation["state"] == "result"
    assert invocation["result"] == {"ok": True}
    assert ui[2]["content"] == "Mild."


@pytest.mark.parametrize(
    "message",
    [
        {"role": "assistant", "content": "", "toolInvocations": [{"toolName": "getWeather", "state": "call"}]},
        {"role": "assistant", "content": "", "toolInvocations": [{"toolCallId": "call_1", "state": "call"}]},
        {"role": "assistant", "content": [{"type": "reasoning", "text": "hmm"}]},
        {"role": "tool", "content": [{"type": "tool-result", "result": 1}]},
        {"role": "tool", "content": ["not a part"]},
    ],
)
def test_malformed_client_messages_are_validation_errors(message):
    with pytest.raises(ValidationError):
        convert_to_core_messages([message])
