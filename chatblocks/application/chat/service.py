"""Chat service - request-level business logic for chat turns and chat deletion.

A turn runs in two phases. ``prepare_turn`` does everything that can still
fail with a plain HTTP status (authentication, model validation, loading or
creating the chat, saving the user message). Only then is a DataStream
opened; ``stream_turn`` runs the orchestrator in a task and yields the
encoded frames to the HTTP response.
"""

import asyncio
import logging
import re
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, AsyncIterator, Dict, List, Optional

from chatblocks.core.auth import is_chat_owner
from chatblocks.core.log_sanitizer import sanitize_for_logging
from chatblocks.core.metrics_logger import log_metric
from chatblocks.domain.errors import (
    AuthenticationError,
    AuthorizationError,
    ChatNotFoundError,
    DomainError,
    ModelNotFoundError,
    TurnTimeoutError,
    ValidationError,
)
from chatblocks.domain.messages.models import ResponseMessage
from chatblocks.infrastructure.events.data_stream import DataStream
from chatblocks.interfaces.events import DataKind
from chatblocks.interfaces.llm import ModelHandleProtocol
from chatblocks.modules.config.config_manager import ConfigManager
from chatblocks.modules.llm.gateway import ModelGateway
from chatblocks.modules.persistence.chat_repository import ChatRepository
from chatblocks.modules.prompts.prompt_provider import PromptProvider

from .orchestrator import ChatOrchestrator
from .utilities import error_handler
from .utilities.message_converter import convert_to_core_messages, get_most_recent_user_message

logger = logging.getLogger(__name__)

MAX_TITLE_LENGTH = 80
_TITLE_STRIP_RE = re.compile(r"[\"'`:\u201c\u201d\u2018\u2019]")


def clean_title(raw: Optional[str]) -> str:
    """Single line, no quotes or colons, at most 80 characters."""
    if not raw:
        return ""
    title = _TITLE_STRIP_RE.sub("", raw)
    title = " ".join(title.split())
    return title[:MAX_TITLE_LENGTH].strip()


@dataclass
class PreparedTurn:
    """A validated turn whose stream is open and ready to run."""
    chat_id: str
    user_email: str
    model: ModelHandleProtocol
    history: List[ResponseMessage]
    stream: DataStream
    user_message_id: str


class ChatService:
    """
    Core chat service: entry point of a chat turn and of chat deletion.
    Transport-agnostic; the routes only translate its results to HTTP.
    """

    def __init__(
        self,
        config_manager: ConfigManager,
        gateway: ModelGateway,
        repository: ChatRepository,
        orchestrator: ChatOrchestrator,
        prompt_provider: PromptProvider,
    ):
        self.config_manager = config_manager
        self.gateway = gateway
        self.repository = repository
        self.orchestrator = orchestrator
        self.prompt_provider = prompt_provider

    @property
    def turn_timeout(self) -> float:
        return self.config_manager.app_settings.turn_timeout_seconds

    # ------------------------------------------------------------------
    # Turn
    # ------------------------------------------------------------------
    async def prepare_turn(
        self,
        chat_id: str,
        messages: List[Dict[str, Any]],
        model_id: str,
        user_email: Optional[str],
    ) -> PreparedTurn:
        """Validate the request and open the turn's data stream.

        Raises:
            AuthenticationError: no user
            ModelNotFoundError: ``model_id`` is not in the catalogue
            ValidationError: the request carries no user message
            AuthorizationError: the chat exists and belongs to someone else
            LLMConfigurationError: the model handle could not be built
        """
        if not user_email:
            raise AuthenticationError("Unauthorized")

        if self.config_manager.get_model(model_id) is None:
            logger.warning("Unknown model requested: %s", sanitize_for_logging(model_id))
            raise ModelNotFoundError("Model not found")

        history = convert_to_core_messages(messages)
        user_message = get_most_recent_user_message(history)
        if user_message is None:
            raise ValidationError("No user message found")

        chat = self.repository.get_chat_by_id(chat_id)
        if chat is None:
            title = await self.generate_title(user_message.text())
            self.repository.save_chat(chat_id=chat_id, user_id=user_email, title=title)
            logger.info("Created chat %s", sanitize_for_logging(chat_id))
        elif not is_chat_owner(chat, user_email):
            raise AuthorizationError("Unauthorized")

        user_message_id = str(uuid.uuid4())
        self.repository.save_messages([{
            "id": user_message_id,
            "chat_id": chat_id,
            "role": user_message.role.value,
            "content": user_message.to_dict()["content"],
            "created_at": datetime.now(timezone.utc),
        }])

        model = self.gateway.resolve(model_id)

        stream = DataStream(stream_id=chat_id)
        stream.write_data(DataKind.USER_MESSAGE_ID, user_message_id)
        return PreparedTurn(
            chat_id=chat_id,
            user_email=user_email,
            model=model,
            history=history,
            stream=stream,
            user_message_id=user_message_id,
        )

    async def run_turn(self, turn: PreparedTurn) -> None:
        """Run the orchestrator under the turn budget; always closes the stream.

        Failures after the stream opened become one error frame with a
        user-safe message.
        """
        stream = turn.stream
        try:
            await asyncio.wait_for(
                self.orchestrator.run(stream, turn.model, turn.chat_id, turn.user_email, turn.history),
                timeout=self.turn_timeout,
            )
        except asyncio.TimeoutError:
            logger.error("Chat turn for %s exceeded %.0fs", sanitize_for_logging(turn.chat_id), self.turn_timeout)
            log_metric("error", turn.user_email, error_type="turn_timeout")
            self._write_error(stream, TurnTimeoutError("Turn timed out"))
        except asyncio.CancelledError:
            logger.info("Chat turn for %s cancelled", sanitize_for_logging(turn.chat_id))
            raise
        except Exception as exc:
            logger.error("Chat turn for %s failed: %s", sanitize_for_logging(turn.chat_id), exc, exc_info=True)
            log_metric("error", turn.user_email, error_type=type(exc).__name__)
            self._write_error(stream, exc)
        finally:
            stream.close()

    @staticmethod
    def _write_error(stream: DataStream, error: Exception) -> None:
        if not stream.is_closed:
            stream.write_error(error_handler.user_message_for(error))

    async def stream_turn(self, turn: PreparedTurn) -> AsyncIterator[str]:
        """Yield the turn's frames while the turn runs in its own task.

        If the consumer goes away, the task is cancelled: outstanding model
        and HTTP calls are aborted and nothing more is written or persisted.
        """
        task = asyncio.create_task(self.run_turn(turn))
        try:
            async for frame in turn.stream.frames():
                yield frame
            await task
        finally:
            if not task.done():
                logger.info("Client disconnected; cancelling turn for %s", sanitize_for_logging(turn.chat_id))
                task.cancel()

    async def generate_title(self, user_text: str) -> str:
        """Summarize the first user message into a chat title.

        Falls back to the (cleaned, truncated) message itself when the
        title model is unavailable.
        """
        settings = self.config_manager.app_settings
        raw = ""
        try:
            model = self.gateway.resolve(settings.title_model)
            raw = await model.generate_text(self.prompt_provider.get_title_prompt(), user_text)
        except DomainError as exc:
            logger.warning("Title generation failed, using the message text: %s", exc)
        return clean_title(raw) or clean_title(user_text) or "New chat"

    # ------------------------------------------------------------------
    # Deletion
    # ------------------------------------------------------------------
    def delete_chat(self, chat_id: Optional[str], user_email: Optional[str]) -> None:
        """Delete a chat with its votes and messages.

        Raises:
            AuthenticationError: no user
            ChatNotFoundError: no id or no such chat
            AuthorizationError: the chat belongs to someone else (nothing deleted)
        """
        if not user_email:
            raise AuthenticationError("Unauthorized")
        if not chat_id:
            raise ChatNotFoundError("Not Found")

        chat = self.repository.get_chat_by_id(chat_id)
        if chat is None:
            raise ChatNotFoundError("Chat not found")
        if not is_chat_owner(chat, user_email):
            logger.warning("User attempted to delete a chat they do not own: %s", sanitize_for_logging(chat_id))
            raise AuthorizationError("Unauthorized to delete this chat")

        self.repository.delete_chat_by_id(chat_id)
        log_metric("chat_deleted", user_email)
        logger.info("Deleted chat %s", sanitize_for_logging(chat_id))
