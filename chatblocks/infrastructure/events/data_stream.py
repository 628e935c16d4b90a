"""Per-turn output channel (the stream multiplexer).

One ``DataStream`` is opened per chat turn. The turn and the tools write to
it synchronously; the HTTP response drains it through ``frames()``. Events
are delivered exactly in write order. The channel moves ``open`` ->
``closed`` once; writes after that raise StreamClosedError.
"""

import asyncio
import logging
from enum import Enum
from typing import Any, AsyncIterator, Dict, List, Optional

from chatblocks.domain.errors import StreamClosedError
from chatblocks.interfaces.events import DataKind

from .data_stream_protocol import StreamPart, format_part

logger = logging.getLogger(__name__)

_EMPTY_USAGE = {"promptTokens": 0, "completionTokens": 0}


class StreamState(Enum):
    OPEN = "open"
    CLOSED = "closed"


class DataStream:
    """Single-writer, append-only, ordered event channel."""

    def __init__(self, stream_id: Optional[str] = None):
        self.stream_id = stream_id
        self._queue: "asyncio.Queue[Optional[str]]" = asyncio.Queue()
        self._state = StreamState.OPEN
        self._written = 0

    @property
    def state(self) -> StreamState:
        return self._state

    @property
    def is_closed(self) -> bool:
        return self._state is StreamState.CLOSED

    @property
    def frames_written(self) -> int:
        return self._written

    def _write(self, part: StreamPart, value: Any) -> None:
        if self._state is StreamState.CLOSED:
            raise StreamClosedError(f"Cannot write {part.name} to a closed data stream")
        self._queue.put_nowait(format_part(part, value))
        self._written += 1

    # ------------------------------------------------------------------
    # Writers
    # ------------------------------------------------------------------
    def write_data(self, kind: DataKind, content: Any) -> None:
        self._write(StreamPart.DATA, [{"type": DataKind(kind).value, "content": content}])

    def write_message_annotation(self, annotation: Dict[str, Any]) -> None:
        self._write(StreamPart.MESSAGE_ANNOTATIONS, [annotation])

    def write_text(self, text: str) -> None:
        if text:
            self._write(StreamPart.TEXT, text)

    def write_tool_call(self, tool_call_id: str, tool_name: str, args: Dict[str, Any]) -> None:
        self._write(StreamPart.TOOL_CALL, {"toolCallId": tool_call_id, "toolName": tool_name, "args": args})

    def write_tool_result(self, tool_call_id: str, result: Any) -> None:
        self._write(StreamPart.TOOL_RESULT, {"toolCallId": tool_call_id, "result": result})

    def write_step_start(self, message_id: str) -> None:
        self._write(StreamPart.START_STEP, {"messageId": message_id})

    def write_step_finish(
        self,
        finish_reason: str,
        usage: Optional[Dict[str, int]] = None,
        is_continued: bool = False,
    ) -> None:
        self._write(StreamPart.FINISH_STEP, {
            "finishReason": finish_reason,
            "usage": usage or _EMPTY_USAGE,
            "isContinued": is_continued,
        })

    def write_finish(self, finish_reason: str, usage: Optional[Dict[str, int]] = None) -> None:
        self._write(StreamPart.FINISH_MESSAGE, {"finishReason": finish_reason, "usage": usage or _EMPTY_USAGE})

    def write_error(self, message: str) -> None:
        self._write(StreamPart.ERROR, message)

    def close(self) -> None:
        """Close the channel. Closing twice is a no-op."""
        if self._state is StreamState.CLOSED:
            return
        self._state = StreamState.CLOSED
        self._queue.put_nowait(None)
        logger.debug("Data stream %s closed after %d frames", self.stream_id, self._written)

    # ------------------------------------------------------------------
    # Reader
    # ------------------------------------------------------------------
    async def frames(self) -> AsyncIterator[str]:
        """Yield encoded frames in write order until the stream is closed."""
        while True:
            frame = await self._queue.get()
            if frame is None:
                return
            yield frame

    def drain_nowait(self) -> List[str]:
        """Frames already written and not yet consumed (without waiting)."""
        drained: List[str] = []
        while not self._queue.empty():
            frame = self._queue.get_nowait()
            if frame is None:
                # keep the close marker for any later reader
                self._queue.put_nowait(None)
                break
            drained.append(frame)
        return drained
