"""Domain layer - pure business models and logic."""

from .errors import (
    AuthenticationError,
    AuthorizationError,
    ChatNotFoundError,
    DocumentNotFoundError,
    DomainError,
    LLMConfigurationError,
    LLMError,
    ModelNotFoundError,
    NotFoundError,
    PersistenceError,
    ToolError,
    ValidationError,
)
from .messages.models import MessageRole, ResponseMessage, TextPart, ToolCallPart, ToolResultPart

__all__ = [
    # Errors
    "DomainError",
    "ValidationError",
    "AuthenticationError",
    "AuthorizationError",
    "ModelNotFoundError",
    "NotFoundError",
    "ChatNotFoundError",
    "DocumentNotFoundError",
    "LLMError",
    "LLMConfigurationError",
    "ToolError",
    "PersistenceError",
    # Messages
    "MessageRole",
    "ResponseMessage",
    "TextPart",
    "ToolCallPart",
    "ToolResultPart",
]
