"""Interfaces layer - protocols and contracts."""

from .events import DataKind, DataStreamWriter
from .llm import LLMResponse, ModelHandleProtocol

__all__ = [
    "DataKind",
    "DataStreamWriter",
    "LLMResponse",
    "ModelHandleProtocol",
]
