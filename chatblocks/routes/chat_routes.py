"""Chat turn, chat deletion and chat read routes."""

import logging
from typing import Any, Dict, List, Literal

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import StreamingResponse
from pydantic import BaseModel, ConfigDict, Field

from chatblocks.application.chat.utilities.message_converter import convert_to_ui_messages
from chatblocks.core.auth import can_read_chat, is_chat_owner
from chatblocks.core.log_sanitizer import get_current_user, sanitize_for_logging
from chatblocks.infrastructure.app_factory import app_factory
from chatblocks.infrastructure.events.data_stream_protocol import DATA_STREAM_HEADERS, DATA_STREAM_MEDIA_TYPE

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["chat"])


class ChatRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True, protected_namespaces=())

    id: str = Field(min_length=1)
    messages: List[Dict[str, Any]]
    model_id: str = Field(alias="modelId")


class VisibilityRequest(BaseModel):
    visibility: Literal["private", "public"]


@router.post("/chat")
async def post_chat(
    body: ChatRequest,
    current_user: str = Depends(get_current_user),
):
    """Run one chat turn and stream its events."""
    chat_service = app_factory.get_chat_service()
    turn = await chat_service.prepare_turn(
        chat_id=body.id,
        messages=body.messages,
        model_id=body.model_id,
        user_email=current_user,
    )
    logger.info(
        "Starting chat turn: chat=%s model=%s messages=%d",
        sanitize_for_logging(body.id), sanitize_for_logging(body.model_id), len(body.messages),
    )
    return StreamingResponse(
        chat_service.stream_turn(turn),
        media_type=DATA_STREAM_MEDIA_TYPE,
        headers=DATA_STREAM_HEADERS,
    )


@router.delete("/chat")
async def delete_chat(
    id: str = Query(default=""),
    current_user: str = Depends(get_current_user),
):
    """Delete a chat with its messages and votes."""
    app_factory.get_chat_service().delete_chat(id, current_user)
    return {"detail": "Chat deleted"}


@router.get("/history")
async def get_history(current_user: str = Depends(get_current_user)):
    """List the caller's chats, newest first."""
    return app_factory.get_repository().get_chats_by_user_id(current_user)


@router.get("/chat/{chat_id}")
async def get_chat(
    chat_id: str,
    current_user: str = Depends(get_current_user),
):
    """Get a chat with its messages in client form."""
    repo = app_factory.get_repository()
    chat = repo.get_chat_by_id(chat_id)
    # Private chats of other users are indistinguishable from missing ones
    if not can_read_chat(chat, current_user):
        raise HTTPException(status_code=404, detail="Chat not found")
    messages = convert_to_ui_messages(repo.get_messages_by_chat_id(chat_id))
    return {"chat": chat, "messages": messages}


@router.patch("/chat/{chat_id}/visibility")
async def update_chat_visibility(
    chat_id: str,
    body: VisibilityRequest,
    current_user: str = Depends(get_current_user),
):
    repo = app_factory.get_repository()
    chat = repo.get_chat_by_id(chat_id)
    if chat is None:
        raise HTTPException(status_code=404, detail="Chat not found")
    if not is_chat_owner(chat, current_user):
        raise HTTPException(status_code=401, detail="Unauthorized")
    repo.update_chat_visibility_by_id(chat_id, body.visibility)
    return {"id": chat_id, "visibility": body.visibility}


@router.delete("/chat/messages/{message_id}/trailing")
async def delete_trailing_messages(
    message_id: str,
    current_user: str = Depends(get_current_user),
):
    """Delete a message and every later message of its chat."""
    repo = app_factory.get_repository()
    message = repo.get_message_by_id(message_id)
    if message is None:
        raise HTTPException(status_code=404, detail="Message not found")
    chat = repo.get_chat_by_id(message["chat_id"])
    if not is_chat_owner(chat, current_user):
        raise HTTPException(status_code=401, detail="Unauthorized")
    deleted = repo.delete_messages_by_chat_id_after_timestamp(message["chat_id"], message["created_at"])
    logger.info("Deleted %d trailing messages in chat %s", deleted, sanitize_for_logging(message["chat_id"]))
    return {"deleted": deleted}
