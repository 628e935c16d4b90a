"""Event transport implementations."""

from .data_stream import DataStream, StreamState
from .data_stream_protocol import DATA_STREAM_HEADERS, DATA_STREAM_MEDIA_TYPE, StreamPart, format_part, parse_part

__all__ = [
    "DataStream",
    "StreamState",
    "StreamPart",
    "DATA_STREAM_HEADERS",
    "DATA_STREAM_MEDIA_TYPE",
    "format_part",
    "parse_part",
]
