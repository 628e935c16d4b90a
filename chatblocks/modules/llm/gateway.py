"""
Model gateway: resolve a model id to a ready-to-call model handle.

Routing is a closed dispatch. ``Vendor.for_model`` turns the model name
into a vendor tag once, and ``_CONSTRUCTORS`` maps the tag to the function
that builds the vendor adapter. Every adapter is wrapped in a
``TelemetryModelHandle`` that logs masked credentials, opens a span per
call and runs the configured middleware.
"""

import logging
from dataclasses import replace
from enum import Enum
from typing import Any, AsyncGenerator, Callable, Dict, List, Optional, Type, Union

from pydantic import BaseModel

from chatblocks.core.log_sanitizer import mask_secret, sanitize_for_logging
from chatblocks.core.otel_config import get_tracer
from chatblocks.domain.errors import LLMConfigurationError
from chatblocks.modules.config.config_manager import AppSettings, ConfigManager, ModelDescriptor

from .litellm_caller import LiteLLMAdapter
from .middleware import ModelMiddleware
from .models import LLMResponse

logger = logging.getLogger(__name__)
tracer = get_tracer(__name__)


class Vendor(str, Enum):
    """Model provider families."""
    OPENAI = "openai"
    ANTHROPIC = "anthropic"
    GOOGLE = "google"

    @classmethod
    def for_model(cls, model_name: str) -> "Vendor":
        """Pick the vendor from the model name prefix; anything unknown is OpenAI."""
        name = (model_name or "").lower()
        for prefix, vendor in _VENDOR_PREFIXES:
            if name.startswith(prefix):
                return vendor
        return cls.OPENAI


_VENDOR_PREFIXES = (
    ("claude", Vendor.ANTHROPIC),
    ("gemini", Vendor.GOOGLE),
)


def _build_openai(descriptor: ModelDescriptor, settings: AppSettings) -> LiteLLMAdapter:
    return LiteLLMAdapter(
        provider="openai",
        model_id=descriptor.id,
        api_identifier=descriptor.api_identifier,
        api_key=settings.openai_api_key,
        api_base=descriptor.api_base or settings.openai_api_base,
        max_tokens=descriptor.max_tokens,
        temperature=descriptor.temperature,
    )


def _build_anthropic(descriptor: ModelDescriptor, settings: AppSettings) -> LiteLLMAdapter:
    return LiteLLMAdapter(
        provider="anthropic",
        model_id=descriptor.id,
        api_identifier=descriptor.api_identifier,
        api_key=settings.anthropic_api_key,
        api_base=descriptor.api_base,
        # Anthropic requires max_tokens on every request
        max_tokens=descriptor.max_tokens or 4096,
        temperature=descriptor.temperature,
    )


def _build_google(descriptor: ModelDescriptor, settings: AppSettings) -> LiteLLMAdapter:
    return LiteLLMAdapter(
        provider="gemini",
        model_id=descriptor.id,
        api_identifier=descriptor.api_identifier,
        api_key=settings.google_api_key,
        api_base=descriptor.api_base,
        max_tokens=descriptor.max_tokens,
        temperature=descriptor.temperature,
    )


_CONSTRUCTORS: Dict[Vendor, Callable[[ModelDescriptor, AppSettings], LiteLLMAdapter]] = {
    Vendor.OPENAI: _build_openai,
    Vendor.ANTHROPIC: _build_anthropic,
    Vendor.GOOGLE: _build_google,
}


class TelemetryModelHandle:
    """Decorator around a vendor adapter.

    Exposes the same call surface as the adapter. Each call is traced and
    passes through the middleware (request params on the way out, text on
    the way back).
    """

    def __init__(self, adapter: LiteLLMAdapter, vendor: Vendor, middleware: Optional[ModelMiddleware] = None):
        self._adapter = adapter
        self.vendor = vendor
        self.middleware = middleware or ModelMiddleware()
        logger.info(
            "Model handle created: model=%s vendor=%s api_key=%s",
            sanitize_for_logging(adapter.model_id), vendor.value, mask_secret(adapter.api_key),
        )

    @property
    def model_id(self) -> str:
        return self._adapter.model_id

    def _span(self, operation: str):
        span = tracer.start_span(f"llm.{operation}")
        span.set_attribute("llm.vendor", self.vendor.value)
        span.set_attribute("llm.model", self._adapter.model_id)
        return span

    def _params(self, **params: Any) -> Dict[str, Any]:
        return self.middleware.transform_params(params)

    async def stream_text(
        self,
        system: Optional[str],
        prompt: Optional[str] = None,
        messages: Optional[List[Dict[str, Any]]] = None,
    ) -> AsyncGenerator[str, None]:
        params = self._params(system=system, prompt=prompt, messages=messages)
        span = self._span("stream_text")
        try:
            async for chunk in self._adapter.stream_text(**params):
                yield self.middleware.transform_text(chunk)
        except Exception as exc:
            span.record_exception(exc)
            raise
        finally:
            span.end()

    async def stream_object(
        self,
        system: Optional[str],
        prompt: str,
        schema: Type[BaseModel],
        output: str = "object",
    ) -> AsyncGenerator[Dict[str, Any], None]:
        params = self._params(system=system, prompt=prompt, schema=schema, output=output)
        span = self._span("stream_object")
        try:
            async for value in self._adapter.stream_object(**params):
                yield value
        except Exception as exc:
            span.record_exception(exc)
            raise
        finally:
            span.end()

    async def stream_with_tools(
        self,
        system: Optional[str],
        messages: List[Dict[str, Any]],
        tools_schema: List[Dict[str, Any]],
    ) -> AsyncGenerator[Union[str, LLMResponse], None]:
        params = self._params(system=system, messages=messages, tools_schema=tools_schema)
        span = self._span("stream_with_tools")
        try:
            async for item in self._adapter.stream_with_tools(**params):
                if isinstance(item, str):
                    yield self.middleware.transform_text(item)
                else:
                    span.set_attribute("llm.tool_calls", len(item.tool_calls or []))
                    yield replace(item, content=self.middleware.transform_text(item.content or ""))
        except Exception as exc:
            span.record_exception(exc)
            raise
        finally:
            span.end()

    async def generate_text(self, system: Optional[str], prompt: str) -> str:
        params = self._params(system=system, prompt=prompt)
        span = self._span("generate_text")
        try:
            text = await self._adapter.generate_text(**params)
            return self.middleware.transform_text(text)
        except Exception as exc:
            span.record_exception(exc)
            raise
        finally:
            span.end()


class ModelGateway:
    """Resolve model ids from the catalogue into wrapped model handles."""

    def __init__(self, config_manager: ConfigManager, middleware: Optional[ModelMiddleware] = None):
        self._config_manager = config_manager
        self._middleware = middleware or ModelMiddleware()

    def resolve(self, model_id: str) -> TelemetryModelHandle:
        """Build a handle for ``model_id``.

        Ids missing from the catalogue are treated as raw vendor model names.

        Raises:
            LLMConfigurationError: the vendor adapter could not be constructed.
        """
        descriptor = self._config_manager.get_model(model_id)
        if descriptor is None:
            descriptor = ModelDescriptor(id=model_id, label=model_id, api_identifier=model_id)

        vendor = Vendor.for_model(descriptor.api_identifier)
        constructor = _CONSTRUCTORS[vendor]
        try:
            adapter = constructor(descriptor, self._config_manager.app_settings)
        except Exception as exc:
            logger.error(
                "Failed to create %s model adapter for %s: %s",
                vendor.value, sanitize_for_logging(model_id), exc, exc_info=True,
            )
            raise LLMConfigurationError(
                f"Failed to create {vendor.value} model '{model_id}': {exc}",
                vendor=vendor.value,
            ) from exc

        return TelemetryModelHandle(adapter, vendor, self._middleware)
