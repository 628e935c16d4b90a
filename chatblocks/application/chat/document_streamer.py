"""
Document content streamer.

Drives a model call that writes a whole document and forwards the content
to the turn's data stream while it is being generated:

- ``text`` documents use a token stream; every fragment is forwarded as a
  ``text-delta`` and appended to the draft.
- ``code`` documents use a structured stream with a single ``code`` field;
  every time the partial ``code`` value changes, the full new value is
  forwarded as a ``code-delta`` and replaces the draft.

The content is framed by ``id``, ``title``, ``kind`` and ``clear`` events
before the first delta and one ``finish`` event after the last.
"""

import logging
from typing import Optional

from pydantic import BaseModel, Field

from chatblocks.interfaces.events import DataKind, DataStreamWriter
from chatblocks.interfaces.llm import ModelHandleProtocol

logger = logging.getLogger(__name__)

DOCUMENT_KINDS = ("text", "code")


class CodeDraft(BaseModel):
    """Structured output schema for code documents."""
    code: str = Field(description="The complete code of the document")


class DocumentContentStreamer:
    """Streams document content from a model into a data stream."""

    async def stream_content(
        self,
        stream: DataStreamWriter,
        model: ModelHandleProtocol,
        system: str,
        prompt: str,
        kind: str,
    ) -> str:
        """Generate the content and return the final draft."""
        draft = ""
        if kind == "text":
            async for delta in model.stream_text(system, prompt=prompt):
                if not delta:
                    continue
                draft += delta
                stream.write_data(DataKind.TEXT_DELTA, delta)
        elif kind == "code":
            async for partial in model.stream_object(system, prompt, CodeDraft):
                code = partial.get("code")
                if not isinstance(code, str) or not code or code == draft:
                    continue
                draft = code
                stream.write_data(DataKind.CODE_DELTA, code)
        else:
            raise ValueError(f"Unknown document kind: {kind!r}")
        return draft

    async def write_document(
        self,
        stream: DataStreamWriter,
        model: ModelHandleProtocol,
        document_id: str,
        title: str,
        kind: str,
        system: str,
        prompt: str,
        clear_with: Optional[str] = "",
    ) -> str:
        """Announce the document, stream its content and close it with ``finish``.

        ``clear_with`` is the previous title when rewriting an existing
        document and the empty string for a new one.
        """
        stream.write_data(DataKind.ID, document_id)
        stream.write_data(DataKind.TITLE, title)
        stream.write_data(DataKind.KIND, kind)
        stream.write_data(DataKind.CLEAR, clear_with or "")

        try:
            draft = await self.stream_content(stream, model, system, prompt, kind)
        finally:
            if not stream.is_closed:
                stream.write_data(DataKind.FINISH, "")

        logger.info("Document %s streamed: kind=%s chars=%d", document_id, kind, len(draft))
        return draft
