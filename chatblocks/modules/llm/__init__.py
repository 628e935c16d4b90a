"""LLM module for the chat backend.

This module provides:
- The model gateway (vendor routing and the telemetry decorator)
- The litellm adapter with text, object and tool-calling streams
- Response models and partial JSON parsing for structured streams
"""

from .gateway import ModelGateway, TelemetryModelHandle, Vendor
from .litellm_caller import LiteLLMAdapter
from .middleware import ModelMiddleware, StripNullCharsMiddleware
from .models import LLMResponse

__all__ = [
    "LiteLLMAdapter",
    "LLMResponse",
    "ModelGateway",
    "ModelMiddleware",
    "StripNullCharsMiddleware",
    "TelemetryModelHandle",
    "Vendor",
]
