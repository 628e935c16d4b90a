"""Data stream writer interface used by the chat turn and the tools."""

from enum import Enum
from typing import Any, Dict, Optional, Protocol


class DataKind(str, Enum):
    """Discriminator of the custom data events multiplexed into a turn."""
    USER_MESSAGE_ID = "user-message-id"
    ID = "id"
    TITLE = "title"
    KIND = "kind"
    CLEAR = "clear"
    TEXT_DELTA = "text-delta"
    CODE_DELTA = "code-delta"
    FINISH = "finish"
    SUGGESTION = "suggestion"


class DataStreamWriter(Protocol):
    """
    Protocol for the per-turn output channel.

    Writes are synchronous: they enqueue an event and never suspend the
    caller. Writing after ``close()`` raises StreamClosedError.

    This interface lives in the interfaces layer so the application layer
    does not depend on the transport implementation.
    """

    @property
    def is_closed(self) -> bool:
        ...

    def write_data(self, kind: DataKind, content: Any) -> None:
        """Emit one ``{type, content}`` data event."""
        ...

    def write_message_annotation(self, annotation: Dict[str, Any]) -> None:
        """Attach an annotation to the assistant message being streamed."""
        ...

    def write_text(self, text: str) -> None:
        """Emit an assistant text token."""
        ...

    def write_tool_call(self, tool_call_id: str, tool_name: str, args: Dict[str, Any]) -> None:
        ...

    def write_tool_result(self, tool_call_id: str, result: Any) -> None:
        ...

    def write_step_start(self, message_id: str) -> None:
        ...

    def write_step_finish(self, finish_reason: str, usage: Optional[Dict[str, int]] = None, is_continued: bool = False) -> None:
        ...

    def write_finish(self, finish_reason: str, usage: Optional[Dict[str, int]] = None) -> None:
        """Emit the terminal message-finish event."""
        ...

    def write_error(self, message: str) -> None:
        """Emit a user-safe error message."""
        ...

    def close(self) -> None:
        ...
