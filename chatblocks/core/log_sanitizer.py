"""
Log hygiene helpers and the request-user dependency.
"""

import logging
import re
from typing import Any, Optional

from fastapi import Request

from chatblocks.domain.errors import AuthenticationError

logger = logging.getLogger(__name__)

_CONTROL_CHARS_RE = re.compile(r'[\x00-\x1f\x7f-\x9f]')
# Matches Unicode line separators (LINE SEPARATOR and PARAGRAPH SEPARATOR)
_UNICODE_NEWLINES_RE = re.compile(r'[\u2028\u2029]')
# Matches explicit CR, LF, and CRLF for maximal coverage
_STANDARD_NEWLINES_RE = re.compile(r'(\r\n|\r|\n)')


def sanitize_for_logging(value: Any) -> str:
    """
    Sanitize a value for safe logging by removing ALL newlines (including Unicode and CRLF)
    and control characters, to defend against log injection.

    Args:
        value: Any value to sanitize. If not a string, it will be converted
               to string representation first.

    Returns:
        str: Sanitized string with all control and newline characters removed.

    Examples:
        >>> sanitize_for_logging("Hello\\nWorld")
        'HelloWorld'
        >>> sanitize_for_logging("Test\\x1b[31mRed\\x1b[0m")
        'TestRed'
        >>> sanitize_for_logging(123)
        '123'
    """
    if value is None:
        return ''
    if not isinstance(value, str):
        value = str(value)
    value = _CONTROL_CHARS_RE.sub('', value)
    value = _UNICODE_NEWLINES_RE.sub('', value)
    value = _STANDARD_NEWLINES_RE.sub('', value)
    return value


def mask_secret(secret: Optional[str], visible: int = 4) -> str:
    """Render a credential for logs showing only its first and last characters.

    Secrets too short to mask meaningfully are fully hidden.

    Examples:
        >>> mask_secret("sk-abcdefghijklmnop")
        'sk-a...mnop'
        >>> mask_secret("short")
        '****'
        >>> mask_secret(None)
        '<not set>'
    """
    if not secret:
        return "<not set>"
    if len(secret) <= visible * 2:
        return "****"
    return f"{secret[:visible]}...{secret[-visible:]}"


async def get_current_user(request: Request) -> str:
    """Get current user from request state (set by middleware)."""
    user_email = getattr(request.state, 'user_email', None)
    if not user_email:
        raise AuthenticationError("Unauthorized")
    return user_email
