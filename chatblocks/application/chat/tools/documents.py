"""createDocument / updateDocument tools.

Both stream the generated content into the turn's data stream through the
DocumentContentStreamer and store the final draft as a document revision.
"""

import logging
import uuid
from typing import Any, Dict, Literal

from pydantic import BaseModel, Field

from chatblocks.application.chat.document_streamer import DocumentContentStreamer
from chatblocks.core.metrics_logger import log_metric
from chatblocks.modules.persistence.chat_repository import ChatRepository
from chatblocks.modules.prompts.prompt_provider import PromptProvider

from .registry import ToolContext

logger = logging.getLogger(__name__)

CREATE_DESCRIPTION = (
    "Create a document for a writing activity. This tool will call other functions "
    "that will generate the contents of the document based on the title and kind."
)
UPDATE_DESCRIPTION = "Update a document with the given description."

DOCUMENT_NOT_FOUND = {"error": "Document not found"}


class CreateDocumentArgs(BaseModel):
    title: str = Field(min_length=1)
    kind: Literal["text", "code"]


class UpdateDocumentArgs(BaseModel):
    id: str = Field(description="The ID of the document to update")
    description: str = Field(description="The description of changes that need to be made")


class CreateDocumentTool:
    def __init__(self, repository: ChatRepository, prompts: PromptProvider, streamer: DocumentContentStreamer):
        self.repository = repository
        self.prompts = prompts
        self.streamer = streamer

    async def __call__(self, context: ToolContext, args: CreateDocumentArgs) -> Dict[str, Any]:
        document_id = str(uuid.uuid4())
        content = await self.streamer.write_document(
            context.stream,
            context.model,
            document_id=document_id,
            title=args.title,
            kind=args.kind,
            system=self.prompts.get_document_prompt(args.kind),
            prompt=args.title,
        )
        self.repository.save_document(
            document_id=document_id,
            title=args.title,
            kind=args.kind,
            content=content,
            user_id=context.user_email,
        )
        log_metric("document_saved", context.user_email, kind=args.kind, content_length=len(content))

        return {
            "id": document_id,
            "title": args.title,
            "kind": args.kind,
            "content": "A document was created and is now visible to the user.",
        }


class UpdateDocumentTool:
    def __init__(self, repository: ChatRepository, prompts: PromptProvider, streamer: DocumentContentStreamer):
        self.repository = repository
        self.prompts = prompts
        self.streamer = streamer

    async def __call__(self, context: ToolContext, args: UpdateDocumentArgs) -> Dict[str, Any]:
        document = self.repository.get_document_by_id(args.id)
        if document is None or document["user_id"] != context.user_email:
            logger.info("updateDocument: document %s not found", args.id)
            return dict(DOCUMENT_NOT_FOUND)

        # The previous title doubles as the clear marker for the client
        content = await self.streamer.write_document(
            context.stream,
            context.model,
            document_id=document["id"],
            title=document["title"],
            kind=document["kind"],
            system=self.prompts.get_update_document_prompt(document["content"]),
            prompt=args.description,
            clear_with=document["title"],
        )
        self.repository.save_document(
            document_id=document["id"],
            title=document["title"],
            kind=document["kind"],
            content=content,
            user_id=context.user_email,
        )
        log_metric("document_saved", context.user_email, kind=document["kind"], content_length=len(content))

        return {
            "id": document["id"],
            "title": document["title"],
            "kind": document["kind"],
            "content": "The document has been updated successfully.",
        }
