"""Line codec for the AI data stream protocol.

Every event is one line ``<code>:<json>\\n``. Clients that speak the
protocol (header ``X-Vercel-AI-Data-Stream: v1``) dispatch on the code.
"""

import json
from enum import Enum
from typing import Any, Tuple

DATA_STREAM_HEADERS = {
    "X-Vercel-AI-Data-Stream": "v1",
    "Cache-Control": "no-cache",
    "X-Accel-Buffering": "no",
}
DATA_STREAM_MEDIA_TYPE = "text/plain; charset=utf-8"


class StreamPart(str, Enum):
    """Protocol codes."""
    TEXT = "0"
    DATA = "2"
    ERROR = "3"
    MESSAGE_ANNOTATIONS = "8"
    TOOL_CALL = "9"
    TOOL_RESULT = "a"
    FINISH_MESSAGE = "d"
    FINISH_STEP = "e"
    START_STEP = "f"


_PARTS_BY_CODE = {p.value: p for p in StreamPart}


def format_part(part: StreamPart, value: Any) -> str:
    """Encode one event as a protocol line."""
    return f"{part.value}:{json.dumps(value, separators=(',', ':'), ensure_ascii=False, default=str)}\n"


def parse_part(line: str) -> Tuple[StreamPart, Any]:
    """Decode one protocol line.

    Raises:
        ValueError: the line is not a protocol event.
    """
    code, sep, payload = line.rstrip("\n").partition(":")
    if not sep or code not in _PARTS_BY_CODE:
        raise ValueError(f"Not a data stream line: {line[:40]!r}")
    return _PARTS_BY_CODE[code], json.loads(payload)
