"""Persistence module using SQLAlchemy with DuckDB/PostgreSQL."""

from .chat_repository import ChatRepository
from .database import get_engine, get_session_factory, init_database, reset_engine
from .models import Base, ChatRecord, DocumentRecord, MessageRecord, SuggestionRecord, VoteRecord

__all__ = [
    "get_engine",
    "get_session_factory",
    "init_database",
    "reset_engine",
    "ChatRepository",
    "Base",
    "ChatRecord",
    "MessageRecord",
    "DocumentRecord",
    "SuggestionRecord",
    "VoteRecord",
]
