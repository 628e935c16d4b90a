"""Repository for chats, messages, documents, suggestions and votes.

Every public method opens one session and commits at most once, so each
call is all-or-nothing. Referential integrity (cascades) is enforced here
rather than via database FK constraints for DuckDB compatibility.
"""

import functools
import json
import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import and_, delete, desc
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from chatblocks.domain.errors import PersistenceError

from .models import ChatRecord, DocumentRecord, MessageRecord, SuggestionRecord, VoteRecord

logger = logging.getLogger(__name__)

VISIBILITIES = ("private", "public")
DOCUMENT_KINDS = ("text", "code")


def _storage_call(func):
    """Turn driver/ORM failures into PersistenceError after logging them."""

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except SQLAlchemyError as exc:
            logger.error("Storage call %s failed: %s", func.__name__, exc, exc_info=True)
            raise PersistenceError(f"Failed to {func.__name__.replace('_', ' ')}") from exc

    return wrapper


class ChatRepository:
    """Persistence façade used by the chat service, the tools and the routes."""

    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory

    def _get_session(self) -> Session:
        return self._session_factory()

    # ------------------------------------------------------------------
    # Chats
    # ------------------------------------------------------------------
    @_storage_call
    def save_chat(self, chat_id: str, user_id: str, title: str, visibility: str = "private") -> Dict[str, Any]:
        with self._get_session() as session:
            chat = ChatRecord(id=chat_id, user_id=user_id, title=title, visibility=visibility)
            session.add(chat)
            session.commit()
            return _chat_to_dict(chat)

    @_storage_call
    def get_chat_by_id(self, chat_id: str) -> Optional[Dict[str, Any]]:
        with self._get_session() as session:
            chat = session.get(ChatRecord, chat_id)
            return _chat_to_dict(chat) if chat else None

    @_storage_call
    def get_chats_by_user_id(self, user_id: str) -> List[Dict[str, Any]]:
        """All chats of a user, newest first."""
        with self._get_session() as session:
            chats = session.query(ChatRecord).filter(
                ChatRecord.user_id == user_id,
            ).order_by(desc(ChatRecord.created_at)).all()
            return [_chat_to_dict(c) for c in chats]

    @_storage_call
    def delete_chat_by_id(self, chat_id: str) -> bool:
        """Delete a chat with its votes and messages. Returns False if it did not exist."""
        with self._get_session() as session:
            if session.get(ChatRecord, chat_id) is None:
                return False
            session.execute(delete(VoteRecord).where(VoteRecord.chat_id == chat_id))
            session.execute(delete(MessageRecord).where(MessageRecord.chat_id == chat_id))
            session.execute(delete(ChatRecord).where(ChatRecord.id == chat_id))
            session.commit()
            return True

    @_storage_call
    def update_chat_visibility_by_id(self, chat_id: str, visibility: str) -> bool:
        if visibility not in VISIBILITIES:
            raise ValueError(f"Unknown visibility: {visibility!r}")
        with self._get_session() as session:
            chat = session.get(ChatRecord, chat_id)
            if chat is None:
                return False
            chat.visibility = visibility
            session.commit()
            return True

    # ------------------------------------------------------------------
    # Messages
    # ------------------------------------------------------------------
    @_storage_call
    def save_messages(self, messages: Iterable[Dict[str, Any]]) -> int:
        """Insert a batch of messages.

        Each dict carries ``id``, ``chat_id``, ``role``, ``content`` and an
        optional ``created_at``. The batch order is kept as the tiebreaker for
        identical timestamps.
        """
        with self._get_session() as session:
            count = 0
            for i, msg in enumerate(messages):
                session.add(MessageRecord(
                    id=msg.get("id") or str(uuid.uuid4()),
                    chat_id=msg["chat_id"],
                    role=msg["role"],
                    content=json.dumps(msg.get("content", "")),
                    created_at=msg.get("created_at") or datetime.now(timezone.utc),
                    sequence_number=i,
                ))
                count += 1
            session.commit()
            return count

    @_storage_call
    def get_messages_by_chat_id(self, chat_id: str) -> List[Dict[str, Any]]:
        """Messages of a chat in creation order."""
        with self._get_session() as session:
            records = session.query(MessageRecord).filter(
                MessageRecord.chat_id == chat_id,
            ).order_by(MessageRecord.created_at, MessageRecord.sequence_number).all()
            return [_message_to_dict(m) for m in records]

    @_storage_call
    def get_message_by_id(self, message_id: str) -> Optional[Dict[str, Any]]:
        with self._get_session() as session:
            record = session.get(MessageRecord, message_id)
            return _message_to_dict(record) if record else None

    @_storage_call
    def delete_messages_by_chat_id_after_timestamp(self, chat_id: str, timestamp: datetime) -> int:
        """Delete messages created at or after ``timestamp``; returns the number removed."""
        condition = and_(
            MessageRecord.chat_id == chat_id,
            MessageRecord.created_at >= timestamp,
        )
        with self._get_session() as session:
            count = session.query(MessageRecord).filter(condition).count()
            session.execute(delete(MessageRecord).where(condition))
            session.commit()
            return count

    # ------------------------------------------------------------------
    # Votes
    # ------------------------------------------------------------------
    @_storage_call
    def vote_message(self, chat_id: str, message_id: str, vote_type: str) -> None:
        """Record an up/down vote, replacing any earlier vote on the message."""
        if vote_type not in ("up", "down"):
            raise ValueError(f"Unknown vote type: {vote_type!r}")
        with self._get_session() as session:
            vote = session.get(VoteRecord, (chat_id, message_id))
            if vote is None:
                session.add(VoteRecord(chat_id=chat_id, message_id=message_id, is_upvoted=vote_type == "up"))
            else:
                vote.is_upvoted = vote_type == "up"
            session.commit()

    @_storage_call
    def get_votes_by_chat_id(self, chat_id: str) -> List[Dict[str, Any]]:
        with self._get_session() as session:
            votes = session.query(VoteRecord).filter(VoteRecord.chat_id == chat_id).all()
            return [
                {"chat_id": v.chat_id, "message_id": v.message_id, "is_upvoted": v.is_upvoted}
                for v in votes
            ]

    # ------------------------------------------------------------------
    # Documents
    # ------------------------------------------------------------------
    @_storage_call
    def save_document(
        self,
        document_id: str,
        title: str,
        kind: str,
        content: Optional[str],
        user_id: str,
        created_at: Optional[datetime] = None,
    ) -> Dict[str, Any]:
        """Insert a new revision of a document."""
        if kind not in DOCUMENT_KINDS:
            raise ValueError(f"Unknown document kind: {kind!r}")
        with self._get_session() as session:
            record = DocumentRecord(
                id=document_id,
                title=title,
                kind=kind,
                content=content,
                user_id=user_id,
                created_at=created_at or datetime.now(timezone.utc),
            )
            session.add(record)
            session.commit()
            return _document_to_dict(record)

    @_storage_call
    def get_documents_by_id(self, document_id: str) -> List[Dict[str, Any]]:
        """All revisions of a document, oldest first."""
        with self._get_session() as session:
            records = session.query(DocumentRecord).filter(
                DocumentRecord.id == document_id,
            ).order_by(DocumentRecord.created_at).all()
            return [_document_to_dict(d) for d in records]

    @_storage_call
    def get_document_by_id(self, document_id: str) -> Optional[Dict[str, Any]]:
        """The current (most recent) revision of a document."""
        with self._get_session() as session:
            record = session.query(DocumentRecord).filter(
                DocumentRecord.id == document_id,
            ).order_by(desc(DocumentRecord.created_at)).first()
            return _document_to_dict(record) if record else None

    @_storage_call
    def delete_documents_by_id_after_timestamp(self, document_id: str, timestamp: datetime) -> int:
        """Drop revisions newer than ``timestamp`` together with their suggestions."""
        with self._get_session() as session:
            session.execute(
                delete(SuggestionRecord).where(and_(
                    SuggestionRecord.document_id == document_id,
                    SuggestionRecord.document_created_at > timestamp,
                ))
            )
            newer = and_(
                DocumentRecord.id == document_id,
                DocumentRecord.created_at > timestamp,
            )
            count = session.query(DocumentRecord).filter(newer).count()
            session.execute(delete(DocumentRecord).where(newer))
            session.commit()
            return count

    # ------------------------------------------------------------------
    # Suggestions
    # ------------------------------------------------------------------
    @_storage_call
    def save_suggestions(self, suggestions: Iterable[Dict[str, Any]]) -> int:
        with self._get_session() as session:
            count = 0
            for s in suggestions:
                session.add(SuggestionRecord(
                    id=s.get("id") or str(uuid.uuid4()),
                    document_id=s["document_id"],
                    document_created_at=s["document_created_at"],
                    original_text=s["original_text"],
                    suggested_text=s["suggested_text"],
                    description=s.get("description"),
                    is_resolved=bool(s.get("is_resolved", False)),
                    user_id=s["user_id"],
                    created_at=s.get("created_at") or datetime.now(timezone.utc),
                ))
                count += 1
            session.commit()
            return count

    @_storage_call
    def get_suggestions_by_document_id(self, document_id: str) -> List[Dict[str, Any]]:
        with self._get_session() as session:
            records = session.query(SuggestionRecord).filter(
                SuggestionRecord.document_id == document_id,
            ).order_by(SuggestionRecord.created_at).all()
            return [_suggestion_to_dict(s) for s in records]


def _chat_to_dict(chat: ChatRecord) -> Dict[str, Any]:
    return {
        "id": chat.id,
        "user_id": chat.user_id,
        "title": chat.title,
        "visibility": chat.visibility,
        "created_at": chat.created_at,
    }


def _message_to_dict(msg: MessageRecord) -> Dict[str, Any]:
    return {
        "id": msg.id,
        "chat_id": msg.chat_id,
        "role": msg.role,
        "content": json.loads(msg.content) if msg.content else "",
        "created_at": msg.created_at,
    }


def _document_to_dict(doc: DocumentRecord) -> Dict[str, Any]:
    return {
        "id": doc.id,
        "title": doc.title,
        "kind": doc.kind,
        "content": doc.content,
        "user_id": doc.user_id,
        "created_at": doc.created_at,
    }


def _suggestion_to_dict(s: SuggestionRecord) -> Dict[str, Any]:
    return {
        "id": s.id,
        "document_id": s.document_id,
        "document_created_at": s.document_created_at,
        "original_text": s.original_text,
        "suggested_text": s.suggested_text,
        "description": s.description,
        "is_resolved": s.is_resolved,
        "user_id": s.user_id,
        "created_at": s.created_at,
    }
