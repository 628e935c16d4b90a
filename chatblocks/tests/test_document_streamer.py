"""Tests for the document content streamer."""

import pytest

from chatblocks.application.chat.document_streamer import CodeDraft, DocumentContentStreamer
from chatblocks.infrastructure.events.data_stream import DataStream
from chatblocks.infrastructure.events.data_stream_protocol import StreamPart, parse_part
from chatblocks.tests.conftest import FakeModel


def _data_events(stream):
    events = []
    for frame in stream.drain_nowait():
        part, value = parse_part(frame)
        if part is StreamPart.DATA:
            events.extend((item["type"], item["content"]) for item in value)
    return events


@pytest.mark.asyncio
async def test_text_document_event_order():
    stream = DataStream()
    model = FakeModel(text_chunks=["# Title", "\n\nBody", ""])

    draft = await DocumentContentStreamer().write_document(
        stream, model, document_id="d1", title="Notes", kind="text",
        system="write", prompt="Notes",
    )

    assert draft == "# Title\n\nBody"
    events = _data_events(stream)
    assert events[:4] == [("id", "d1"), ("title", "Notes"), ("kind", "text"), ("clear", "")]
    assert events[4:6] == [("text-delta", "# Title"), ("text-delta", "\n\nBody")]
    assert events[-1] == ("finish", "")
    assert [kind for kind, _ in events].count("finish") == 1


@pytest.mark.asyncio
async def test_code_document_sends_full_value_when_it_changes():
    stream = DataStream()
    model = FakeModel(objects=[{}, {"code": "print("}, {"code": "print("}, {"code": "print(1)"}])

    draft = await DocumentContentStreamer().write_document(
        stream, model, document_id="d2", title="Script", kind="code",
        system="code", prompt="Script", clear_with="Old title",
    )

    assert draft == "print(1)"
    events = _data_events(stream)
    assert events[3] == ("clear", "Old title")
    assert events[4:-1] == [("code-delta", "print("), ("code-delta", "print(1)")]
    assert events[-1] == ("finish", "")
    assert model.object_calls[0][2] is CodeDraft


@pytest.mark.asyncio
async def test_finish_is_written_when_generation_fails():
    class FailingModel(FakeModel):
        async def stream_text(self, system, prompt=None, messages=None):
            yield "partial"
            raise RuntimeError("vendor down")

    stream = DataStream()
    with pytest.raises(RuntimeError):
        await DocumentContentStreamer().write_document(
            stream, FailingModel(), document_id="d3", title="T", kind="text", system="s", prompt="p",
        )
    events = _data_events(stream)
    assert events[-2:] == [("text-delta", "partial"), ("finish", "")]


@pytest.mark.asyncio
async def test_unknown_kind_is_rejected():
    with pytest.raises(ValueError):
        await DocumentContentStreamer().stream_content(DataStream(), FakeModel(), "s", "p", "sheet")
