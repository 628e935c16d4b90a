"""Application factory for dependency injection and wiring."""

import logging
from typing import Optional

from chatblocks.application.chat.document_streamer import DocumentContentStreamer
from chatblocks.application.chat.orchestrator import ChatOrchestrator
from chatblocks.application.chat.service import ChatService
from chatblocks.application.chat.tools import ToolRegistry, build_tool_registry
from chatblocks.modules.config import ConfigManager
from chatblocks.modules.config.config_manager import config_manager as default_config_manager
from chatblocks.modules.llm import ModelGateway, StripNullCharsMiddleware
from chatblocks.modules.persistence import ChatRepository, get_session_factory
from chatblocks.modules.prompts import PromptProvider

logger = logging.getLogger(__name__)


class AppFactory:
    """Application factory that wires dependencies (simple in-memory DI).

    The repository is built lazily so that the database engine is only
    created once the application (or a test) has chosen its URL.
    """

    def __init__(self, config_manager: Optional[ConfigManager] = None) -> None:
        # Configuration
        self.config_manager = config_manager or default_config_manager
        self.prompt_provider = PromptProvider(self.config_manager)

        # Model access
        self.model_gateway = ModelGateway(self.config_manager, middleware=StripNullCharsMiddleware())
        self.document_streamer = DocumentContentStreamer()

        self._repository: Optional[ChatRepository] = None
        self._tool_registry: Optional[ToolRegistry] = None
        self._chat_service: Optional[ChatService] = None

        logger.info("AppFactory initialized")

    def _build_services(self) -> None:
        settings = self.config_manager.app_settings
        self._repository = ChatRepository(get_session_factory())
        self._tool_registry = build_tool_registry(
            repository=self._repository,
            prompts=self.prompt_provider,
            settings=settings,
            streamer=self.document_streamer,
        )
        orchestrator = ChatOrchestrator(
            tool_registry=self._tool_registry,
            repository=self._repository,
            prompt_provider=self.prompt_provider,
            max_steps=settings.max_steps,
        )
        self._chat_service = ChatService(
            config_manager=self.config_manager,
            gateway=self.model_gateway,
            repository=self._repository,
            orchestrator=orchestrator,
            prompt_provider=self.prompt_provider,
        )
        logger.info("Chat services wired (max_steps=%d)", settings.max_steps)

    def reset(self) -> None:
        """Drop the lazily built services (used after the engine is reset)."""
        self._repository = None
        self._tool_registry = None
        self._chat_service = None

    # Accessors
    def get_config_manager(self) -> ConfigManager:  # noqa: D401
        return self.config_manager

    def get_prompt_provider(self) -> PromptProvider:  # noqa: D401
        return self.prompt_provider

    def get_model_gateway(self) -> ModelGateway:  # noqa: D401
        return self.model_gateway

    def get_repository(self) -> ChatRepository:  # noqa: D401
        if self._repository is None:
            self._build_services()
        return self._repository

    def get_tool_registry(self) -> ToolRegistry:  # noqa: D401
        if self._tool_registry is None:
            self._build_services()
        return self._tool_registry

    def get_chat_service(self) -> ChatService:  # noqa: D401
        if self._chat_service is None:
            self._build_services()
        return self._chat_service


# Temporary global instance during migration away from singletons
app_factory = AppFactory()
