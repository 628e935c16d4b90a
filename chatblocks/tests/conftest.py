"""Shared fixtures: temporary DuckDB repository and scripted model handles."""

from types import SimpleNamespace

import pytest

from chatblocks.modules.llm.models import LLMResponse
from chatblocks.modules.persistence.database import reset_engine


@pytest.fixture(autouse=True)
def _clean_engine():
    """Reset the global engine (and services built on it) around each test."""
    from chatblocks.infrastructure.app_factory import app_factory

    reset_engine()
    app_factory.reset()
    yield
    reset_engine()
    app_factory.reset()


@pytest.fixture
def db_url(tmp_path):
    return f"duckdb:///{tmp_path / 'test_chatblocks.db'}"


@pytest.fixture
def repo(db_url):
    """ChatRepository backed by a temp DuckDB file."""
    from chatblocks.modules.persistence import ChatRepository, get_session_factory, init_database

    init_database(db_url)
    return ChatRepository(get_session_factory())


def tool_call(call_id, name, arguments):
    """A tool call as accumulated by the streaming adapter."""
    return SimpleNamespace(
        id=call_id,
        type="function",
        function=SimpleNamespace(name=name, arguments=arguments),
    )


def final(content="", tool_calls=None, usage=None):
    """The LLMResponse that ends one model step."""
    return LLMResponse(
        content=content,
        tool_calls=tool_calls,
        model_used="fake-model",
        finish_reason="tool-calls" if tool_calls else "stop",
        usage=usage or {"promptTokens": 3, "completionTokens": 5},
    )


class FakeModel:
    """Scripted stand-in for a gateway model handle.

    ``steps`` is a list of item lists for ``stream_with_tools``: text chunks
    followed by a closing LLMResponse. ``text_chunks`` and ``objects`` feed
    the document and suggestion streams.
    """

    def __init__(self, steps=None, text_chunks=None, objects=None, title="Greeting"):
        self.model_id = "fake-model"
        self.steps = list(steps or [])
        self.text_chunks = list(text_chunks or [])
        self.objects = list(objects or [])
        self.title = title
        self.tool_step_messages = []
        self.text_prompts = []
        self.object_calls = []

    async def stream_with_tools(self, system, messages, tools_schema):
        self.tool_step_messages.append(messages)
        for item in self.steps.pop(0):
            yield item

    async def stream_text(self, system, prompt=None, messages=None):
        self.text_prompts.append((system, prompt))
        for chunk in self.text_chunks:
            yield chunk

    async def stream_object(self, system, prompt, schema, output="object"):
        self.object_calls.append((system, prompt, schema, output))
        for obj in self.objects:
            yield obj

    async def generate_text(self, system, prompt):
        return self.title


@pytest.fixture
def fake_model():
    return FakeModel
