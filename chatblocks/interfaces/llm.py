"""LLM interface protocols."""

from typing import Any, AsyncGenerator, Dict, List, Optional, Protocol, Type, Union, runtime_checkable

from pydantic import BaseModel

from chatblocks.modules.llm.models import LLMResponse as LLMResponse


@runtime_checkable
class ModelHandleProtocol(Protocol):
    """A resolved model, as returned by the model gateway."""

    model_id: str

    def stream_text(
        self,
        system: Optional[str],
        prompt: Optional[str] = None,
        messages: Optional[List[Dict[str, Any]]] = None,
    ) -> AsyncGenerator[str, None]:
        """Stream free-form text fragments."""
        ...

    def stream_object(
        self,
        system: Optional[str],
        prompt: str,
        schema: Type[BaseModel],
        output: str = "object",
    ) -> AsyncGenerator[Dict[str, Any], None]:
        """Stream partial objects (``object``) or complete elements (``array``)."""
        ...

    def stream_with_tools(
        self,
        system: Optional[str],
        messages: List[Dict[str, Any]],
        tools_schema: List[Dict[str, Any]],
    ) -> AsyncGenerator[Union[str, LLMResponse], None]:
        """Stream text fragments, then one LLMResponse carrying any tool calls."""
        ...

    async def generate_text(self, system: Optional[str], prompt: str) -> str:
        """One-shot completion."""
        ...
