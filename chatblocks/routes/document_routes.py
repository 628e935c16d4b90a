"""Document revision and suggestion routes."""

import logging
from datetime import datetime
from typing import List, Literal

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel

from chatblocks.core.log_sanitizer import get_current_user, sanitize_for_logging
from chatblocks.core.metrics_logger import log_metric
from chatblocks.infrastructure.app_factory import app_factory

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["documents"])


class SaveDocumentRequest(BaseModel):
    title: str
    kind: Literal["text", "code"] = "text"
    content: str


class DeleteRevisionsRequest(BaseModel):
    timestamp: datetime


def _require_id(document_id: str) -> str:
    if not document_id:
        raise HTTPException(status_code=400, detail="Missing id")
    return document_id


def _check_owner(revisions: List[dict], current_user: str) -> None:
    if revisions and revisions[0]["user_id"] != current_user:
        raise HTTPException(status_code=401, detail="Unauthorized")


@router.get("/document")
async def get_document_revisions(
    id: str = Query(default=""),
    current_user: str = Depends(get_current_user),
):
    """All revisions of a document, oldest first."""
    revisions = app_factory.get_repository().get_documents_by_id(_require_id(id))
    if not revisions:
        raise HTTPException(status_code=404, detail="Not Found")
    _check_owner(revisions, current_user)
    return revisions


@router.post("/document")
async def save_document_revision(
    body: SaveDocumentRequest,
    id: str = Query(default=""),
    current_user: str = Depends(get_current_user),
):
    """Store a new revision (edits made in the client)."""
    repo = app_factory.get_repository()
    document_id = _require_id(id)
    _check_owner(repo.get_documents_by_id(document_id), current_user)
    document = repo.save_document(
        document_id=document_id,
        title=body.title,
        kind=body.kind,
        content=body.content,
        user_id=current_user,
    )
    log_metric("document_saved", current_user, kind=body.kind, content_length=len(body.content))
    return document


@router.patch("/document")
async def delete_later_revisions(
    body: DeleteRevisionsRequest,
    id: str = Query(default=""),
    current_user: str = Depends(get_current_user),
):
    """Delete revisions (and their suggestions) created after ``timestamp``."""
    repo = app_factory.get_repository()
    document_id = _require_id(id)
    revisions = repo.get_documents_by_id(document_id)
    if not revisions:
        raise HTTPException(status_code=404, detail="Not Found")
    _check_owner(revisions, current_user)
    deleted = repo.delete_documents_by_id_after_timestamp(document_id, body.timestamp)
    logger.info("Deleted %d revisions of document %s", deleted, sanitize_for_logging(document_id))
    return {"deleted": deleted}


@router.get("/suggestions")
async def get_suggestions(
    document_id: str = Query(default="", alias="documentId"),
    current_user: str = Depends(get_current_user),
):
    if not document_id:
        raise HTTPException(status_code=400, detail="Missing documentId")
    suggestions = app_factory.get_repository().get_suggestions_by_document_id(document_id)
    if suggestions and suggestions[0]["user_id"] != current_user:
        raise HTTPException(status_code=401, detail="Unauthorized")
    return suggestions
