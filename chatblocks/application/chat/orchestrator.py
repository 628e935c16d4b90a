"""Chat turn orchestrator - the bounded model/tool loop of one chat turn.

The loop is an explicit state machine::

    AWAITING_MODEL -> EXECUTING_TOOLS -> AWAITING_MODEL -> ... -> DONE

Every model call is one step. Steps are capped at ``max_steps``; tool calls
of the last allowed step still run, but no further model call is made.
When the loop is done the produced messages go through the completion
protocol: sanitize, assign ids, annotate, persist as one batch.
"""

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from chatblocks.core.log_sanitizer import sanitize_for_logging
from chatblocks.core.metrics_logger import log_metric
from chatblocks.domain.errors import PersistenceError
from chatblocks.domain.messages.models import (
    MessageRole,
    ResponseMessage,
    TextPart,
    ToolCallPart,
    ToolResultPart,
)
from chatblocks.interfaces.events import DataStreamWriter
from chatblocks.interfaces.llm import LLMResponse, ModelHandleProtocol
from chatblocks.modules.persistence.chat_repository import ChatRepository
from chatblocks.modules.prompts.prompt_provider import PromptProvider

from .tools import ToolContext, ToolRegistry
from .utilities.message_converter import to_llm_messages
from .utilities.sanitizer import sanitize_response_messages

logger = logging.getLogger(__name__)

DEFAULT_MAX_STEPS = 5


class TurnState(Enum):
    AWAITING_MODEL = "awaiting_model"
    EXECUTING_TOOLS = "executing_tools"
    DONE = "done"


@dataclass
class TurnResult:
    """Outcome of a completed turn."""
    messages: List[ResponseMessage]
    message_ids: List[str]
    steps: int
    finish_reason: str
    usage: Dict[str, int] = field(default_factory=dict)


def _add_usage(total: Dict[str, int], usage: Optional[Dict[str, int]]) -> None:
    for key in ("promptTokens", "completionTokens"):
        total[key] = total.get(key, 0) + int((usage or {}).get(key, 0) or 0)


class ChatOrchestrator:
    """Runs the model/tool loop of a chat turn against an explicit data stream."""

    def __init__(
        self,
        tool_registry: ToolRegistry,
        repository: ChatRepository,
        prompt_provider: PromptProvider,
        max_steps: int = DEFAULT_MAX_STEPS,
    ):
        if max_steps < 1:
            raise ValueError("max_steps must be at least 1")
        self.tool_registry = tool_registry
        self.repository = repository
        self.prompt_provider = prompt_provider
        self.max_steps = max_steps

    async def run(
        self,
        stream: DataStreamWriter,
        model: ModelHandleProtocol,
        chat_id: str,
        user_email: str,
        history: List[ResponseMessage],
    ) -> TurnResult:
        """Drive the turn to completion and persist its response messages.

        ``history`` is the conversation up to and including the new user
        message. The stream is left open; the caller owns closing it.
        """
        system = self.prompt_provider.get_system_prompt()
        context = ToolContext(stream=stream, model=model, user_email=user_email, chat_id=chat_id)
        tools_schema = self.tool_registry.tools_schema()

        produced: List[ResponseMessage] = []
        usage: Dict[str, int] = {"promptTokens": 0, "completionTokens": 0}
        finish_reason = "stop"
        steps = 0
        response: Optional[LLMResponse] = None
        state = TurnState.AWAITING_MODEL

        while state is not TurnState.DONE:
            if state is TurnState.AWAITING_MODEL:
                steps += 1
                stream.write_step_start(f"msg-{uuid.uuid4()}")
                response = await self._call_model(
                    stream, model, system, history + produced, tools_schema, user_email,
                )
                _add_usage(usage, response.usage)
                finish_reason = response.finish_reason

                if response.has_tool_calls():
                    state = TurnState.EXECUTING_TOOLS
                else:
                    produced.append(ResponseMessage(
                        role=MessageRole.ASSISTANT,
                        content=[TextPart(text=response.content or "")],
                    ))
                    stream.write_step_finish(finish_reason, response.usage, is_continued=False)
                    state = TurnState.DONE

            elif state is TurnState.EXECUTING_TOOLS:
                assistant, tool_message = await self._execute_tools(stream, context, response)
                produced.append(assistant)
                produced.append(tool_message)

                continued = steps < self.max_steps
                stream.write_step_finish("tool-calls", response.usage, is_continued=continued)
                if continued:
                    state = TurnState.AWAITING_MODEL
                else:
                    logger.info("Step limit of %d reached for chat %s", self.max_steps, sanitize_for_logging(chat_id))
                    state = TurnState.DONE

        message_ids = self.save_response_messages(stream, chat_id, produced)
        stream.write_finish(finish_reason, usage)
        log_metric("chat_turn", user_email, model=model.model_id, steps=steps, tool_messages=sum(
            1 for m in produced if m.role is MessageRole.TOOL
        ))
        return TurnResult(
            messages=produced,
            message_ids=message_ids,
            steps=steps,
            finish_reason=finish_reason,
            usage=usage,
        )

    async def _call_model(
        self,
        stream: DataStreamWriter,
        model: ModelHandleProtocol,
        system: str,
        conversation: List[ResponseMessage],
        tools_schema: List[Dict[str, Any]],
        user_email: str,
    ) -> LLMResponse:
        """Stream one model step, forwarding text tokens as they arrive.

        The returned response carries exactly the text that was forwarded.
        """
        log_metric("llm_call", user_email, model=model.model_id, message_count=len(conversation))
        response: Optional[LLMResponse] = None
        forwarded: List[str] = []
        async for item in model.stream_with_tools(system, to_llm_messages(conversation), tools_schema):
            if isinstance(item, str):
                if item:
                    stream.write_text(item)
                    forwarded.append(item)
            else:
                response = item
        if response is None:
            # the adapter always ends with an LLMResponse; tolerate one that does not
            response = LLMResponse(content="", model_used=model.model_id)
        if not forwarded and response.content:
            # text that only arrived on the closing response
            stream.write_text(response.content)
            forwarded.append(response.content)
        response.content = "".join(forwarded)
        return response

    async def _execute_tools(
        self,
        stream: DataStreamWriter,
        context: ToolContext,
        response: LLMResponse,
    ):
        """Run the step's tool calls in model order.

        Returns the assistant message of the step and the tool message
        holding one result per call.
        """
        parts: List[Any] = []
        if response.content:
            parts.append(TextPart(text=response.content))
        results: List[ToolResultPart] = []

        for tool_call in response.tool_calls:
            name = tool_call.function.name
            tool_call_id = tool_call.id or f"call_{uuid.uuid4().hex[:24]}"
            args = self.tool_registry.parse_arguments(name, tool_call.function.arguments)
            args_dict = args.model_dump(by_alias=True)

            parts.append(ToolCallPart(tool_call_id=tool_call_id, tool_name=name, args=args_dict))
            stream.write_tool_call(tool_call_id, name, args_dict)

            result = await self.tool_registry.dispatch(name, args, context)

            stream.write_tool_result(tool_call_id, result)
            results.append(ToolResultPart(tool_call_id=tool_call_id, tool_name=name, result=result))

        assistant = ResponseMessage(role=MessageRole.ASSISTANT, content=parts)
        tool_message = ResponseMessage(role=MessageRole.TOOL, content=results)
        return assistant, tool_message

    def save_response_messages(
        self,
        stream: DataStreamWriter,
        chat_id: str,
        messages: List[ResponseMessage],
    ) -> List[str]:
        """Sanitize, annotate and persist the response messages of a turn as one batch.

        Each assistant message gets its server id announced on the stream
        before the batch is written. Returns the assigned ids.

        Raises:
            PersistenceError: the batch could not be stored (already logged)
        """
        sanitized = sanitize_response_messages(messages)
        created_at = datetime.now(timezone.utc)

        records: List[Dict[str, Any]] = []
        for message in sanitized:
            message_id = str(uuid.uuid4())
            if message.role is MessageRole.ASSISTANT:
                stream.write_message_annotation({"messageIdFromServer": message_id})
            records.append({
                "id": message_id,
                "chat_id": chat_id,
                "role": message.role.value,
                "content": message.to_dict()["content"],
                "created_at": created_at,
            })

        try:
            self.repository.save_messages(records)
        except PersistenceError:
            logger.error("Failed to save %d response messages for chat %s", len(records), sanitize_for_logging(chat_id))
            raise
        logger.info("Saved %d response messages for chat %s", len(records), sanitize_for_logging(chat_id))
        return [record["id"] for record in records]
