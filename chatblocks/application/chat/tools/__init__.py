"""Tools the model can call during a chat turn."""

from typing import Optional

from chatblocks.application.chat.document_streamer import DocumentContentStreamer
from chatblocks.modules.config.config_manager import AppSettings
from chatblocks.modules.persistence.chat_repository import ChatRepository
from chatblocks.modules.prompts.prompt_provider import PromptProvider

from .documents import (
    CREATE_DESCRIPTION,
    UPDATE_DESCRIPTION,
    CreateDocumentArgs,
    CreateDocumentTool,
    UpdateDocumentArgs,
    UpdateDocumentTool,
)
from .registry import RegisteredTool, ToolContext, ToolRegistry
from .suggestions import DESCRIPTION as SUGGESTIONS_DESCRIPTION
from .suggestions import RequestSuggestionsArgs, RequestSuggestionsTool
from .weather import DESCRIPTION as WEATHER_DESCRIPTION
from .weather import GetWeatherArgs, WeatherTool


def build_tool_registry(
    repository: ChatRepository,
    prompts: PromptProvider,
    settings: AppSettings,
    streamer: Optional[DocumentContentStreamer] = None,
) -> ToolRegistry:
    """Registry with getWeather, createDocument, updateDocument and requestSuggestions."""
    streamer = streamer or DocumentContentStreamer()
    registry = ToolRegistry()
    registry.register(
        "getWeather", WEATHER_DESCRIPTION, GetWeatherArgs,
        WeatherTool(settings.weather_api_url, settings.weather_timeout_seconds),
    )
    registry.register(
        "createDocument", CREATE_DESCRIPTION, CreateDocumentArgs,
        CreateDocumentTool(repository, prompts, streamer),
    )
    registry.register(
        "updateDocument", UPDATE_DESCRIPTION, UpdateDocumentArgs,
        UpdateDocumentTool(repository, prompts, streamer),
    )
    registry.register(
        "requestSuggestions", SUGGESTIONS_DESCRIPTION, RequestSuggestionsArgs,
        RequestSuggestionsTool(repository, prompts),
    )
    return registry


__all__ = [
    "RegisteredTool",
    "ToolContext",
    "ToolRegistry",
    "build_tool_registry",
    "GetWeatherArgs",
    "CreateDocumentArgs",
    "UpdateDocumentArgs",
    "RequestSuggestionsArgs",
]
