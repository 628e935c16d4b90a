"""
Error handling utilities - pure functions for exception handling patterns.

This module provides stateless utility functions for consistent error handling
across chat operations without maintaining any state.
"""

import logging
from typing import Tuple

from chatblocks.domain.errors import (
    DomainError,
    LLMAuthenticationError,
    LLMConfigurationError,
    LLMServiceError,
    LLMTimeoutError,
    PersistenceError,
    RateLimitError,
    TurnTimeoutError,
)

logger = logging.getLogger(__name__)

GENERIC_ERROR_MESSAGE = "An error occurred while processing your request. Please try again."


def _error_chain_text(error: BaseException) -> Tuple[str, str]:
    """Lowercased message and type names of ``error`` and its causes."""
    messages = []
    type_names = []
    current = error
    while current is not None and len(type_names) < 5:
        messages.append(str(current))
        type_names.append(type(current).__name__)
        current = current.__cause__
    return " ".join(messages).lower(), " ".join(type_names)


def classify_llm_error(error: Exception) -> Tuple[type, str, str]:
    """
    Classify LLM errors and return appropriate error type, user message, and log message.

    The exception's cause chain is inspected, so vendor errors wrapped by the
    adapter still classify by their original type.

    Returns:
        Tuple of (error_class, user_message, log_message).

    NOTE: user_message MUST NOT contain raw exception details or sensitive data.
    """
    error_str = str(error)
    chain_text, chain_types = _error_chain_text(error)

    if "RateLimitError" in chain_types or "rate limit" in chain_text or "high traffic" in chain_text:
        user_msg = "The AI service is experiencing high traffic. Please try again in a moment."
        log_msg = f"Rate limit error: {error_str}"
        return (RateLimitError, user_msg, log_msg)

    if "Timeout" in chain_types or "timeout" in chain_text or "timed out" in chain_text:
        user_msg = "The AI service request timed out. Please try again."
        log_msg = f"Timeout error: {error_str}"
        return (LLMTimeoutError, user_msg, log_msg)

    if "AuthenticationError" in chain_types or any(
        keyword in chain_text for keyword in ["unauthorized", "invalid api key", "invalid_api_key", "api key"]
    ):
        user_msg = "There was an authentication issue with the AI service. Please contact your administrator."
        log_msg = f"Authentication error: {error_str}"
        return (LLMAuthenticationError, user_msg, log_msg)

    user_msg = "The AI service encountered an error. Please try again or contact support if the issue persists."
    log_msg = f"LLM error: {error_str}"
    return (LLMServiceError, user_msg, log_msg)


def user_message_for(error: Exception) -> str:
    """Client-safe message for a failure that aborts a streaming turn."""
    if isinstance(error, TurnTimeoutError):
        return "The response took too long and was stopped. Please try again."
    if isinstance(error, LLMConfigurationError):
        return "The selected model is not available right now."
    if isinstance(error, PersistenceError):
        return "The response could not be saved."
    if isinstance(error, DomainError) and not isinstance(error, LLMServiceError):
        return GENERIC_ERROR_MESSAGE
    _, user_msg, _ = classify_llm_error(error)
    return user_msg
