"""Streaming methods for the LiteLLM adapter.

These methods are mixed into LiteLLMAdapter via LiteLLMStreamingMixin.
"""

import asyncio
import json
import logging
from types import SimpleNamespace
from typing import Any, AsyncGenerator, Dict, List, Optional, Type, Union

from litellm import acompletion
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from chatblocks.domain.errors import LLMServiceError

from .models import LLMResponse
from .partial_json import parse_partial_json, strip_code_fence

logger = logging.getLogger(__name__)


def _with_system(system: Optional[str], messages: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    if not system:
        return list(messages)
    return [{"role": "system", "content": system}] + list(messages)


def _usage_from_chunk(chunk: Any) -> Optional[Dict[str, int]]:
    usage = getattr(chunk, "usage", None)
    if not usage:
        return None
    return {
        "promptTokens": getattr(usage, "prompt_tokens", 0) or 0,
        "completionTokens": getattr(usage, "completion_tokens", 0) or 0,
    }


def _object_schema_for(schema: Type[BaseModel], output: str) -> Dict[str, Any]:
    """JSON schema sent to the vendor; arrays are wrapped in ``{"elements": [...]}``."""
    item_schema = schema.model_json_schema()
    if output == "array":
        return {
            "type": "object",
            "properties": {"elements": {"type": "array", "items": item_schema}},
            "required": ["elements"],
        }
    return item_schema


class LiteLLMStreamingMixin:
    """Mixin providing streaming LLM methods for LiteLLMAdapter.

    Expects the host class to provide:
      - _get_litellm_model_name() -> str
      - _get_model_kwargs(temperature) -> dict
      - model_id attribute
    """

    async def _open_stream(self, messages: List[Dict[str, Any]], **extra: Any):
        model_kwargs = self._get_model_kwargs(extra.pop("temperature", None))
        model_kwargs.update(extra)
        return await acompletion(
            model=self._get_litellm_model_name(),
            messages=messages,
            stream=True,
            **model_kwargs,
        )

    async def stream_text(
        self,
        system: Optional[str],
        prompt: Optional[str] = None,
        messages: Optional[List[Dict[str, Any]]] = None,
        temperature: Optional[float] = None,
    ) -> AsyncGenerator[str, None]:
        """Stream a free-form completion token-by-token.

        Pass either ``prompt`` (sent as a single user message) or a full
        ``messages`` list.
        """
        if messages is None:
            messages = [{"role": "user", "content": prompt or ""}]
        conversation = _with_system(system, messages)

        try:
            logger.info("Streaming text call: %d messages", len(conversation))
            response = await self._open_stream(conversation, temperature=temperature)

            chunk_count = 0
            async for chunk in response:
                delta = chunk.choices[0].delta if chunk.choices else None
                if not delta or not delta.content:
                    continue
                yield delta.content
                chunk_count += 1
                # Yield control periodically to prevent backpressure buildup
                if chunk_count % 50 == 0:
                    await asyncio.sleep(0)

        except Exception as exc:
            logger.error("Error in streaming text call: %s", exc, exc_info=True)
            raise LLMServiceError(f"Failed to stream text from {self.model_id}: {exc}") from exc

    async def stream_object(
        self,
        system: Optional[str],
        prompt: str,
        schema: Type[BaseModel],
        output: str = "object",
        schema_name: Optional[str] = None,
    ) -> AsyncGenerator[Dict[str, Any], None]:
        """Stream a JSON object constrained to ``schema``.

        With ``output="object"`` every changed partial object is yielded as
        a plain dict (fields may be incomplete). With ``output="array"`` each
        element is yielded once, as soon as it is complete, validated against
        ``schema``. Elements that fail validation are logged and skipped.
        """
        if output not in ("object", "array"):
            raise ValueError(f"Unsupported output mode: {output!r}")

        json_schema = _object_schema_for(schema, output)
        name = schema_name or schema.__name__
        instructions = (
            "Respond only with a JSON object that matches this JSON schema:\n"
            f"{json.dumps(json_schema)}"
        )
        full_system = f"{system}\n\n{instructions}" if system else instructions
        conversation = _with_system(full_system, [{"role": "user", "content": prompt}])

        try:
            logger.info("Streaming object call: schema=%s output=%s", name, output)
            response = await self._open_stream(
                conversation,
                response_format={
                    "type": "json_schema",
                    "json_schema": {"name": name, "schema": json_schema, "strict": False},
                },
            )

            raw = ""
            last_partial: Any = None
            emitted = 0
            async for chunk in response:
                delta = chunk.choices[0].delta if chunk.choices else None
                if not delta or not delta.content:
                    continue
                raw += delta.content
                partial = parse_partial_json(raw)
                if not isinstance(partial, dict) or partial == last_partial:
                    continue
                last_partial = partial

                if output == "object":
                    yield partial
                    continue

                elements = partial.get("elements")
                if not isinstance(elements, list):
                    continue
                # The last element may still be growing
                while emitted < len(elements) - 1:
                    element = self._validated_element(schema, elements[emitted])
                    emitted += 1
                    if element is not None:
                        yield element

            if output == "array":
                final = self._parse_final(raw)
                elements = final.get("elements", []) if isinstance(final, dict) else []
                while emitted < len(elements):
                    element = self._validated_element(schema, elements[emitted])
                    emitted += 1
                    if element is not None:
                        yield element

        except Exception as exc:
            logger.error("Error in streaming object call: %s", exc, exc_info=True)
            raise LLMServiceError(f"Failed to stream object from {self.model_id}: {exc}") from exc

    @staticmethod
    def _parse_final(raw: str) -> Any:
        text = strip_code_fence(raw).strip()
        try:
            return json.loads(text)
        except ValueError:
            logger.warning("Structured output was not valid JSON; using partial parse")
            return parse_partial_json(text)

    @staticmethod
    def _validated_element(schema: Type[BaseModel], element: Any) -> Optional[Dict[str, Any]]:
        try:
            return schema.model_validate(element).model_dump()
        except PydanticValidationError as exc:
            logger.warning("Dropping streamed element that does not match %s: %s", schema.__name__, exc)
            return None

    async def stream_with_tools(
        self,
        system: Optional[str],
        messages: List[Dict[str, Any]],
        tools_schema: List[Dict[str, Any]],
        tool_choice: str = "auto",
        temperature: Optional[float] = None,
    ) -> AsyncGenerator[Union[str, LLMResponse], None]:
        """Stream LLM response with tool support.

        Yields str chunks for text content as they arrive.
        Accumulates tool_calls fragments across chunks.
        Yields a final LLMResponse with accumulated tool_calls at the end.
        """
        conversation = _with_system(system, messages)
        extra: Dict[str, Any] = {"temperature": temperature}
        if tools_schema:
            extra["tools"] = tools_schema
            extra["tool_choice"] = tool_choice

        try:
            logger.info(
                "Streaming LLM call with tools: %d messages, %d tools",
                len(conversation), len(tools_schema or []),
            )
            response = await self._open_stream(conversation, **extra)

            accumulated_content = ""
            accumulated_tool_calls: Dict[int, Dict[str, Any]] = {}
            finish_reason = "stop"
            usage: Dict[str, int] = {}
            chunk_count = 0

            async for chunk in response:
                usage = _usage_from_chunk(chunk) or usage
                choice = chunk.choices[0] if chunk.choices else None
                if choice is None:
                    continue
                if getattr(choice, "finish_reason", None):
                    finish_reason = choice.finish_reason
                delta = choice.delta
                if not delta:
                    continue

                # Yield text content as it arrives
                if delta.content:
                    accumulated_content += delta.content
                    yield delta.content
                    chunk_count += 1
                    if chunk_count % 50 == 0:
                        await asyncio.sleep(0)

                # Accumulate tool call fragments
                if getattr(delta, "tool_calls", None):
                    for tc_delta in delta.tool_calls:
                        idx = getattr(tc_delta, "index", None) or 0
                        if idx not in accumulated_tool_calls:
                            accumulated_tool_calls[idx] = {
                                "id": getattr(tc_delta, "id", None) or "",
                                "type": "function",
                                "function": {"name": "", "arguments": ""},
                            }
                        entry = accumulated_tool_calls[idx]
                        if getattr(tc_delta, "id", None):
                            entry["id"] = tc_delta.id
                        function = getattr(tc_delta, "function", None)
                        if function:
                            if getattr(function, "name", None):
                                entry["function"]["name"] += function.name
                            if getattr(function, "arguments", None):
                                entry["function"]["arguments"] += function.arguments

            tool_calls_list = None
            if accumulated_tool_calls:
                tool_calls_list = [
                    SimpleNamespace(
                        id=tc["id"],
                        type=tc["type"],
                        function=SimpleNamespace(
                            name=tc["function"]["name"],
                            arguments=tc["function"]["arguments"],
                        ),
                    )
                    for _, tc in sorted(accumulated_tool_calls.items())
                ]

            yield LLMResponse(
                content=accumulated_content,
                tool_calls=tool_calls_list,
                model_used=self.model_id,
                finish_reason="tool-calls" if tool_calls_list else _normalize_finish_reason(finish_reason),
                usage=usage,
            )

        except Exception as exc:
            logger.error("Error in streaming LLM call with tools: %s", exc, exc_info=True)
            raise LLMServiceError(f"Failed to stream LLM with tools: {exc}") from exc


def _normalize_finish_reason(reason: Optional[str]) -> str:
    """Map vendor finish reasons onto the data stream protocol vocabulary."""
    mapping = {
        "stop": "stop",
        "end_turn": "stop",
        "length": "length",
        "max_tokens": "length",
        "tool_calls": "tool-calls",
        "function_call": "tool-calls",
        "content_filter": "content-filter",
    }
    return mapping.get(reason or "stop", "other")
