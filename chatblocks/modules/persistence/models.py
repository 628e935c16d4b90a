"""SQLAlchemy models for chats, messages, documents, suggestions and votes.

Uses String ids and Text for JSON to maximize DuckDB compatibility.
No database-level foreign key constraints since DuckDB does not support
CASCADE on FK-constrained tables. Referential integrity is enforced in the
repository layer.
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""
    pass


def _uuid_default():
    return str(uuid.uuid4())


def _now_utc():
    return datetime.now(timezone.utc)


class ChatRecord(Base):
    """A chat owned by one user."""

    __tablename__ = "chats"

    id = Column(String(64), primary_key=True, default=_uuid_default)
    user_id = Column(String(255), nullable=False, index=True)
    title = Column(Text, nullable=False)
    visibility = Column(String(16), nullable=False, default="private")
    created_at = Column(DateTime(timezone=True), default=_now_utc, nullable=False)

    __table_args__ = (
        Index("ix_chats_user_created", "user_id", "created_at"),
    )


class MessageRecord(Base):
    """A single message within a chat. ``content`` is JSON (string or part list)."""

    __tablename__ = "messages"

    id = Column(String(64), primary_key=True, default=_uuid_default)
    chat_id = Column(String(64), nullable=False, index=True)
    role = Column(String(20), nullable=False)
    content = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), default=_now_utc, nullable=False)
    # Position inside the batch it was saved with; breaks created_at ties
    sequence_number = Column(Integer, nullable=False, default=0)


class DocumentRecord(Base):
    """One revision of a document. Revisions share ``id`` and differ by ``created_at``."""

    __tablename__ = "documents"

    id = Column(String(64), primary_key=True)
    created_at = Column(DateTime(timezone=True), primary_key=True, default=_now_utc)
    title = Column(Text, nullable=False)
    kind = Column(String(16), nullable=False, default="text")
    content = Column(Text, nullable=True)
    user_id = Column(String(255), nullable=False, index=True)


class SuggestionRecord(Base):
    """An edit suggestion against a specific document revision."""

    __tablename__ = "suggestions"

    id = Column(String(64), primary_key=True, default=_uuid_default)
    document_id = Column(String(64), nullable=False, index=True)
    document_created_at = Column(DateTime(timezone=True), nullable=False)
    original_text = Column(Text, nullable=False)
    suggested_text = Column(Text, nullable=False)
    description = Column(Text, nullable=True)
    is_resolved = Column(Boolean, nullable=False, default=False)
    user_id = Column(String(255), nullable=False)
    created_at = Column(DateTime(timezone=True), default=_now_utc, nullable=False)


class VoteRecord(Base):
    """At most one vote per (chat, message)."""

    __tablename__ = "votes"

    chat_id = Column(String(64), primary_key=True)
    message_id = Column(String(64), primary_key=True)
    is_upvoted = Column(Boolean, nullable=False)
