"""Tests for the tool registry and the four chat tools."""

import httpx
import pytest

from chatblocks.application.chat.tools import ToolContext, build_tool_registry
from chatblocks.application.chat.tools import weather as weather_module
from chatblocks.application.chat.tools.suggestions import SuggestionDraft
from chatblocks.domain.errors import ToolArgumentsError, ToolError, UnknownToolError
from chatblocks.infrastructure.events.data_stream import DataStream
from chatblocks.infrastructure.events.data_stream_protocol import StreamPart, parse_part
from chatblocks.modules.config.config_manager import AppSettings, config_manager
from chatblocks.modules.prompts import PromptProvider
from chatblocks.tests.conftest import FakeModel


@pytest.fixture
def registry(repo):
    return build_tool_registry(repo, PromptProvider(config_manager), AppSettings())


def _context(model, stream=None):
    return ToolContext(stream=stream or DataStream(), model=model, user_email="alice@example.com", chat_id="c1")


def _data_events(stream):
    events = []
    for frame in stream.drain_nowait():
        part, value = parse_part(frame)
        if part is StreamPart.DATA:
            events.extend((item["type"], item["content"]) for item in value)
    return events


class TestRegistry:
    def test_tools_schema_lists_all_tools(self, registry):
        schema = {t["function"]["name"]: t for t in registry.tools_schema()}
        assert set(schema) == {"getWeather", "createDocument", "updateDocument", "requestSuggestions"}
        assert schema["getWeather"]["type"] == "function"
        weather_params = schema["getWeather"]["function"]["parameters"]
        assert set(weather_params["required"]) == {"latitude", "longitude"}
        kind = schema["createDocument"]["function"]["parameters"]["properties"]["kind"]
        assert kind["enum"] == ["text", "code"]
        # the model sees the camelCase argument name
        assert "documentId" in schema["requestSuggestions"]["function"]["parameters"]["properties"]

    def test_parse_arguments_validates(self, registry):
        args = registry.parse_arguments("getWeather", '{"latitude": 52.5, "longitude": 13.4}')
        assert args.latitude == 52.5
        args = registry.parse_arguments("requestSuggestions", {"documentId": "d1"})
        assert args.document_id == "d1"

    @pytest.mark.parametrize(
        "name,arguments",
        [
            ("getWeather", '{"latitude": "north"}'),
            ("getWeather", "{not json"),
            ("createDocument", '{"title": "x", "kind": "spreadsheet"}'),
            ("updateDocument", "{}"),
        ],
    )
    def test_invalid_arguments_raise(self, registry, name, arguments):
        with pytest.raises(ToolArgumentsError):
            registry.parse_arguments(name, arguments)

    def test_unknown_tool(self, registry):
        with pytest.raises(UnknownToolError):
            registry.parse_arguments("deleteEverything", "{}")

    def test_duplicate_registration_is_rejected(self, registry):
        tool = registry.get("getWeather")
        with pytest.raises(ValueError):
            registry.register("getWeather", "again", tool.args_model, tool.handler)


class TestWeather:
    @pytest.mark.asyncio
    async def test_fetches_forecast(self, registry, monkeypatch):
        seen = {}

        def handler(request):
            seen["params"] = dict(request.url.params)
            return httpx.Response(200, json={"current": {"temperature_2m": 21.5}})

        real_client = httpx.AsyncClient
        monkeypatch.setattr(
            weather_module.httpx, "AsyncClient",
            lambda **kwargs: real_client(transport=httpx.MockTransport(handler), **kwargs),
        )

        args = registry.parse_arguments("getWeather", {"latitude": 52.52, "longitude": 13.41})
        result = await registry.dispatch("getWeather", args, _context(FakeModel()))

        assert result == {"current": {"temperature_2m": 21.5}}
        assert seen["params"]["latitude"] == "52.52"
        assert seen["params"]["current"] == "temperature_2m"
        assert seen["params"]["daily"] == "sunrise,sunset"
        assert seen["params"]["timezone"] == "auto"

    @pytest.mark.asyncio
    async def test_http_failure_raises_tool_error(self, registry, monkeypatch):
        real_client = httpx.AsyncClient
        monkeypatch.setattr(
            weather_module.httpx, "AsyncClient",
            lambda **kwargs: real_client(transport=httpx.MockTransport(lambda r: httpx.Response(503)), **kwargs),
        )
        args = registry.parse_arguments("getWeather", {"latitude": 0, "longitude": 0})
        with pytest.raises(ToolError):
            await registry.dispatch("getWeather", args, _context(FakeModel()))


class TestDocuments:
    @pytest.mark.asyncio
    async def test_create_document_streams_and_persists(self, registry, repo):
        stream = DataStream()
        model = FakeModel(text_chunks=["Roses ", "are red."])
        args = registry.parse_arguments("createDocument", {"title": "Poem", "kind": "text"})

        result = await registry.dispatch("createDocument", args, _context(model, stream))

        assert result["title"] == "Poem"
        assert result["kind"] == "text"
        assert result["content"] == "A document was created and is now visible to the user."
        stored = repo.get_document_by_id(result["id"])
        assert stored["content"] == "Roses are red."
        assert stored["user_id"] == "alice@example.com"

        kinds = [kind for kind, _ in _data_events(stream)]
        assert kinds == ["id", "title", "kind", "clear", "text-delta", "text-delta", "finish"]

    @pytest.mark.asyncio
    async def test_update_document_writes_new_revision(self, registry, repo):
        repo.save_document("doc-1", "Poem", "text", "Old text", "alice@example.com")
        stream = DataStream()
        model = FakeModel(text_chunks=["New text"])
        args = registry.parse_arguments("updateDocument", {"id": "doc-1", "description": "rewrite"})

        result = await registry.dispatch("updateDocument", args, _context(model, stream))

        assert result["content"] == "The document has been updated successfully."
        revisions = repo.get_documents_by_id("doc-1")
        assert [r["content"] for r in revisions] == ["Old text", "New text"]
        # the current content is part of the system prompt, the change request is the prompt
        system, prompt = model.text_prompts[0]
        assert "Old text" in system
        assert prompt == "rewrite"
        events = _data_events(stream)
        assert events[3] == ("clear", "Poem")

    @pytest.mark.asyncio
    async def test_update_missing_document_writes_nothing(self, registry, repo):
        stream = DataStream()
        model = FakeModel(text_chunks=["never"])
        args = registry.parse_arguments("updateDocument", {"id": "missing", "description": "x"})

        result = await registry.dispatch("updateDocument", args, _context(model, stream))

        assert result == {"error": "Document not found"}
        assert repo.get_documents_by_id("missing") == []
        assert stream.frames_written == 0
        assert model.text_prompts == []


class TestSuggestions:
    @pytest.mark.asyncio
    async def test_suggestions_are_streamed_and_persisted(self, registry, repo):
        doc = repo.save_document("doc-2", "Story", "text", "The cat sat.", "alice@example.com")
        stream = DataStream()
        model = FakeModel(objects=[
            {"originalSentence": "The cat sat.", "suggestedSentence": "The cat sat down.", "description": "clearer"},
        ])
        args = registry.parse_arguments("requestSuggestions", {"documentId": "doc-2"})

        result = await registry.dispatch("requestSuggestions", args, _context(model, stream))

        assert result == {
            "id": "doc-2",
            "title": "Story",
            "kind": "text",
            "message": "Suggestions have been added to the document",
        }
        events = _data_events(stream)
        assert len(events) == 1
        kind, streamed = events[0]
        assert kind == "suggestion"
        assert streamed["originalText"] == "The cat sat."
        assert streamed["isResolved"] is False

        stored = repo.get_suggestions_by_document_id("doc-2")
        assert len(stored) == 1
        assert stored[0]["id"] == streamed["id"]
        assert stored[0]["suggested_text"] == streamed["suggestedText"]
        assert stored[0]["document_created_at"] == doc["created_at"]
        assert model.object_calls[0][2] is SuggestionDraft
        assert model.object_calls[0][3] == "array"

    @pytest.mark.asyncio
    async def test_at_most_five_suggestions(self, registry, repo):
        repo.save_document("doc-3", "Story", "text", "Some text.", "alice@example.com")
        element = {"originalSentence": "a", "suggestedSentence": "b", "description": "c"}
        model = FakeModel(objects=[dict(element) for _ in range(8)])
        args = registry.parse_arguments("requestSuggestions", {"documentId": "doc-3"})

        await registry.dispatch("requestSuggestions", args, _context(model))

        assert len(repo.get_suggestions_by_document_id("doc-3")) == 5

    @pytest.mark.asyncio
    async def test_zero_suggestions(self, registry, repo):
        repo.save_document("doc-4", "Story", "text", "Fine as is.", "alice@example.com")
        args = registry.parse_arguments("requestSuggestions", {"documentId": "doc-4"})

        result = await registry.dispatch("requestSuggestions", args, _context(FakeModel(objects=[])))

        assert result["message"] == "Suggestions have been added to the document"
        assert repo.get_suggestions_by_document_id("doc-4") == []

    @pytest.mark.asyncio
    async def test_missing_document_or_content(self, registry, repo):
        repo.save_document("empty", "Blank", "text", "", "alice@example.com")
        for document_id in ("nope", "empty"):
            stream = DataStream()
            args = registry.parse_arguments("requestSuggestions", {"documentId": document_id})
            result = await registry.dispatch("requestSuggestions", args, _context(FakeModel(), stream))
            assert result == {"error": "Document not found"}
            assert stream.frames_written == 0


class TestDocumentOwnership:
    @pytest.mark.asyncio
    async def test_update_of_foreign_document_is_not_found(self, registry, repo):
        repo.save_document("doc-b", "Bob's notes", "text", "Private.", "bob@example.com")
        stream = DataStream()
        model = FakeModel(text_chunks=["overwritten"])
        args = registry.parse_arguments("updateDocument", {"id": "doc-b", "description": "rewrite"})

        result = await registry.dispatch("updateDocument", args, _context(model, stream))

        assert result == {"error": "Document not found"}
        assert [d["content"] for d in repo.get_documents_by_id("doc-b")] == ["Private."]
        assert stream.frames_written == 0

    @pytest.mark.asyncio
    async def test_suggestions_for_foreign_document_are_not_found(self, registry, repo):
        repo.save_document("doc-b", "Bob's notes", "text", "Private.", "bob@example.com")
        element = {"originalSentence": "Private.", "suggestedSentence": "Secret.", "description": "x"}
        args = registry.parse_arguments("requestSuggestions", {"documentId": "doc-b"})

        result = await registry.dispatch("requestSuggestions", args, _context(FakeModel(objects=[element])))

        assert result == {"error": "Document not found"}
        assert repo.get_suggestions_by_document_id("doc-b") == []
