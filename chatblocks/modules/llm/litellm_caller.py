"""
LiteLLM-based adapter for one configured model.

The gateway builds one adapter per resolved model. The adapter knows the
litellm provider prefix, the credentials and the sampling defaults; the
streaming entry points live in LiteLLMStreamingMixin.
"""

import logging
import warnings
from typing import Any, Dict, List, Optional

# litellm touches Pydantic attributes deprecated in 2.11 on every streamed
# chunk; the resulting warnings are noise.
try:
    from pydantic import PydanticDeprecatedSince211
    warnings.filterwarnings("ignore", category=PydanticDeprecatedSince211)
except ImportError:
    pass  # Pydantic <2.11 does not define this category

import litellm
from litellm import acompletion

from chatblocks.domain.errors import LLMServiceError

from .litellm_streaming import LiteLLMStreamingMixin

logger = logging.getLogger(__name__)

# Configure LiteLLM settings
litellm.drop_params = True  # Drop unsupported params instead of erroring


class LiteLLMAdapter(LiteLLMStreamingMixin):
    """Calls one model through litellm.

    Args:
        provider: litellm provider prefix ("openai", "anthropic", "gemini")
        model_id: catalogue id of the model (used in logs and responses)
        api_identifier: the vendor's own model name
        api_key: credential passed per call (never written to os.environ)
        api_base: optional endpoint override
        max_tokens / temperature: sampling defaults
    """

    def __init__(
        self,
        provider: str,
        model_id: str,
        api_identifier: str,
        api_key: Optional[str] = None,
        api_base: Optional[str] = None,
        max_tokens: Optional[int] = None,
        temperature: Optional[float] = None,
    ):
        self.provider = provider
        self.model_id = model_id
        self.api_identifier = api_identifier
        self.api_key = api_key
        self.api_base = api_base
        self.max_tokens = max_tokens
        self.temperature = temperature

        # Fails for provider/model combinations litellm cannot route
        litellm.get_llm_provider(self._get_litellm_model_name())

    def _get_litellm_model_name(self) -> str:
        """Convert the vendor model name to litellm's ``provider/model`` form."""
        return f"{self.provider}/{self.api_identifier}"

    def _get_model_kwargs(self, temperature: Optional[float] = None) -> Dict[str, Any]:
        kwargs: Dict[str, Any] = {}
        if self.max_tokens:
            kwargs["max_tokens"] = self.max_tokens
        effective_temperature = temperature if temperature is not None else self.temperature
        if effective_temperature is not None:
            kwargs["temperature"] = effective_temperature
        if self.api_key:
            kwargs["api_key"] = self.api_key
        if self.api_base:
            kwargs["api_base"] = self.api_base
        return kwargs

    async def generate_text(
        self,
        system: Optional[str],
        prompt: str,
        temperature: Optional[float] = None,
    ) -> str:
        """One-shot completion returning the full text."""
        messages: List[Dict[str, Any]] = []
        if system:
            messages.append({"role": "system", "content": system})
        messages.append({"role": "user", "content": prompt})

        try:
            logger.info("Plain LLM call: %d messages", len(messages))
            response = await acompletion(
                model=self._get_litellm_model_name(),
                messages=messages,
                **self._get_model_kwargs(temperature),
            )
            return response.choices[0].message.content or ""
        except Exception as exc:
            logger.error("Error calling LLM: %s", exc, exc_info=True)
            raise LLMServiceError(f"Failed to call LLM: {exc}") from exc
