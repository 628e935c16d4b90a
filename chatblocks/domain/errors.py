"""Domain-level errors and exceptions."""

from typing import Optional


class DomainError(Exception):
    """Base domain error."""
    status_code = 500

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.code = code


class ValidationError(DomainError):
    """Validation error."""
    status_code = 400


class AuthenticationError(DomainError):
    """Authentication error."""
    status_code = 401


class AuthorizationError(DomainError):
    """Authorization error.

    Chat ownership failures are reported as 401 to match the turn and
    delete endpoint contracts.
    """
    status_code = 401


class ModelNotFoundError(ValidationError):
    """Raised when a requested model id is not in the configured catalogue."""
    status_code = 404


class NotFoundError(DomainError):
    """A referenced record does not exist."""
    status_code = 404


class ChatNotFoundError(NotFoundError):
    """Raised when a chat cannot be found."""
    pass


class DocumentNotFoundError(NotFoundError):
    """Raised when a document (or its current revision) cannot be found."""
    pass


class ConfigurationError(DomainError):
    """Configuration error."""
    pass


class LLMError(DomainError):
    """LLM-related error."""
    pass


class LLMConfigurationError(ConfigurationError):
    """Raised when a vendor adapter cannot be constructed."""

    def __init__(self, message: str, vendor: Optional[str] = None, code: Optional[str] = None):
        super().__init__(message, code)
        self.vendor = vendor


class LLMServiceError(LLMError):
    """Upstream vendor call failed."""
    pass


class RateLimitError(LLMError):
    """Vendor rate limit exceeded."""
    status_code = 429


class LLMTimeoutError(LLMError):
    """Vendor call timed out."""
    status_code = 504


class LLMAuthenticationError(LLMError):
    """Vendor rejected our credentials."""
    pass


class ToolError(DomainError):
    """Tool execution error."""
    pass


class UnknownToolError(ToolError):
    """The model asked for a tool that is not registered."""
    pass


class ToolArgumentsError(ToolError):
    """Tool arguments failed schema validation."""
    pass


class PersistenceError(DomainError):
    """A storage call failed."""
    pass


class StreamClosedError(DomainError):
    """An event was written to a data stream that is already closed."""
    pass


class TurnTimeoutError(DomainError):
    """A chat turn exceeded its wall-clock budget."""
    status_code = 504
