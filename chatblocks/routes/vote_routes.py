"""Message vote routes."""

import logging
from typing import Literal

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, ConfigDict, Field

from chatblocks.core.auth import is_chat_owner
from chatblocks.core.log_sanitizer import get_current_user
from chatblocks.infrastructure.app_factory import app_factory

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/vote", tags=["votes"])


class VoteRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    chat_id: str = Field(alias="chatId")
    message_id: str = Field(alias="messageId")
    type: Literal["up", "down"]


def _owned_chat(chat_id: str, current_user: str) -> dict:
    chat = app_factory.get_repository().get_chat_by_id(chat_id)
    if chat is None:
        raise HTTPException(status_code=404, detail="Chat not found")
    if not is_chat_owner(chat, current_user):
        raise HTTPException(status_code=401, detail="Unauthorized")
    return chat


@router.get("")
async def get_votes(
    chat_id: str = Query(default="", alias="chatId"),
    current_user: str = Depends(get_current_user),
):
    if not chat_id:
        raise HTTPException(status_code=400, detail="chatId is required")
    _owned_chat(chat_id, current_user)
    return app_factory.get_repository().get_votes_by_chat_id(chat_id)


@router.patch("")
async def vote(
    body: VoteRequest,
    current_user: str = Depends(get_current_user),
):
    _owned_chat(body.chat_id, current_user)
    app_factory.get_repository().vote_message(body.chat_id, body.message_id, body.type)
    return {"detail": "Message voted"}
