"""Authentication helpers for the reverse-proxy header scheme."""

import logging
from typing import Optional

logger = logging.getLogger(__name__)


def get_user_from_header(x_email_header: Optional[str]) -> Optional[str]:
    """Extract user email from authentication header value."""
    if not x_email_header:
        return None
    value = x_email_header.strip()
    return value or None


def is_chat_owner(chat: Optional[dict], user_email: str) -> bool:
    """True when the chat record exists and belongs to the user."""
    return bool(chat) and chat.get("user_id") == user_email


def can_read_chat(chat: Optional[dict], user_email: str) -> bool:
    """Visibility gate: private chats are readable only by their owner."""
    if not chat:
        return False
    if chat.get("visibility") == "public":
        return True
    return is_chat_owner(chat, user_email)
