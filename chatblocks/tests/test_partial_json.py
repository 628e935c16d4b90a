"""Tests for partial JSON parsing used by structured streams."""

import pytest

from chatblocks.modules.llm.partial_json import parse_partial_json, strip_code_fence


@pytest.mark.parametrize(
    "text,expected",
    [
        ('{"code": "print(1', {"code": "print(1"}),
        ('{"code": "a\\nb', {"code": "a\nb"}),
        ('{"items": [1, 2, ', {"items": [1, 2]}),
        ('{"a": 1, "b"', {"a": 1}),
        ('{"a": 1, "b":', {"a": 1}),
        ('{"elements": [{"x": "1"}, {"x": "2', {"elements": [{"x": "1"}, {"x": "2"}]}),
        ('{"a": {"b": [', {"a": {"b": []}}),
    ],
)
def test_parse_partial_json(text, expected):
    assert parse_partial_json(text) == expected


def test_complete_json_is_returned_unchanged():
    assert parse_partial_json('{"a": [1, {"b": null}]}') == {"a": [1, {"b": None}]}


def test_empty_and_broken_text():
    assert parse_partial_json("") is None
    assert parse_partial_json("   ") is None
    assert parse_partial_json("}") is None


def test_code_fence_is_stripped():
    assert strip_code_fence('```json\n{"a": 1}\n```') == '{"a": 1}'
    assert parse_partial_json('```json\n{"a": "b') == {"a": "b"}
