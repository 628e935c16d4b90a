"""requestSuggestions tool: streams edit suggestions for a stored document."""

import logging
import uuid
from contextlib import aclosing
from datetime import datetime, timezone
from typing import Any, Dict, List

from pydantic import BaseModel, ConfigDict, Field

from chatblocks.core.metrics_logger import log_metric
from chatblocks.interfaces.events import DataKind
from chatblocks.modules.persistence.chat_repository import ChatRepository
from chatblocks.modules.prompts.prompt_provider import PromptProvider

from .documents import DOCUMENT_NOT_FOUND
from .registry import ToolContext

logger = logging.getLogger(__name__)

DESCRIPTION = "Request suggestions for a document"
MAX_SUGGESTIONS = 5


class RequestSuggestionsArgs(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    document_id: str = Field(alias="documentId", description="The ID of the document to request edits")


class SuggestionDraft(BaseModel):
    """Element schema of the structured suggestion stream."""
    originalSentence: str = Field(description="The original sentence")
    suggestedSentence: str = Field(description="The suggested sentence")
    description: str = Field(description="The description of the suggestion")


class RequestSuggestionsTool:
    def __init__(self, repository: ChatRepository, prompts: PromptProvider, max_suggestions: int = MAX_SUGGESTIONS):
        self.repository = repository
        self.prompts = prompts
        self.max_suggestions = max_suggestions

    async def __call__(self, context: ToolContext, args: RequestSuggestionsArgs) -> Dict[str, Any]:
        document = self.repository.get_document_by_id(args.document_id)
        if document is None or document["user_id"] != context.user_email or not document.get("content"):
            logger.info("requestSuggestions: document %s not found", args.document_id)
            return dict(DOCUMENT_NOT_FOUND)

        suggestions: List[Dict[str, Any]] = []
        elements = context.model.stream_object(
            self.prompts.get_suggestions_prompt(),
            document["content"],
            SuggestionDraft,
            output="array",
        )
        async with aclosing(elements):
            async for element in elements:
                suggestion = {
                    "originalText": element["originalSentence"],
                    "suggestedText": element["suggestedSentence"],
                    "description": element["description"],
                    "id": str(uuid.uuid4()),
                    "documentId": document["id"],
                    "isResolved": False,
                }
                context.stream.write_data(DataKind.SUGGESTION, suggestion)
                suggestions.append(suggestion)
                if len(suggestions) >= self.max_suggestions:
                    break

        if suggestions:
            now = datetime.now(timezone.utc)
            self.repository.save_suggestions([
                {
                    "id": s["id"],
                    "document_id": document["id"],
                    "document_created_at": document["created_at"],
                    "original_text": s["originalText"],
                    "suggested_text": s["suggestedText"],
                    "description": s["description"],
                    "is_resolved": False,
                    "user_id": context.user_email,
                    "created_at": now,
                }
                for s in suggestions
            ])
        log_metric("suggestions_saved", context.user_email, count=len(suggestions))

        return {
            "id": document["id"],
            "title": document["title"],
            "kind": document["kind"],
            "message": "Suggestions have been added to the document",
        }
