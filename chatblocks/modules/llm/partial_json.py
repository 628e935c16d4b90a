"""
Parse JSON text that is still being streamed.

Structured-output calls stream raw JSON a few characters at a time. The
text received so far is parsed in pydantic-core's partial mode: open
objects and arrays are closed, a key without a value is dropped and an
unfinished string value is kept, so a growing ``code`` field stays visible
while it streams.
"""

import logging
import re
from typing import Any, Optional

from pydantic_core import from_json

logger = logging.getLogger(__name__)

_FENCE_OPEN_RE = re.compile(r"^\s*```[a-zA-Z]*\s*")
_FENCE_CLOSE_RE = re.compile(r"\s*```\s*$")


def strip_code_fence(text: str) -> str:
    """Remove a surrounding ```json fence some models add despite JSON mode."""
    text = _FENCE_OPEN_RE.sub("", text, count=1)
    return _FENCE_CLOSE_RE.sub("", text)


def parse_partial_json(text: str) -> Optional[Any]:
    """Best-effort parse of an incomplete JSON document.

    Returns None when nothing parseable has arrived yet.

    Examples:
        >>> parse_partial_json('{"code": "print(1')
        {'code': 'print(1'}
        >>> parse_partial_json('{"items": [1, 2, ')
        {'items': [1, 2]}
    """
    text = strip_code_fence(text).strip()
    if not text:
        return None
    try:
        return from_json(text, allow_partial="trailing-strings")
    except ValueError:
        logger.debug("Partial JSON could not be parsed (%d chars)", len(text))
        return None
