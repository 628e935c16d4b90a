"""Engine and session factory for the persistence layer.

DuckDB is the default local store; any SQLAlchemy URL (e.g. PostgreSQL)
is accepted through CHAT_HISTORY_DB_URL.
"""

import logging
from pathlib import Path
from typing import Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from .models import Base

logger = logging.getLogger(__name__)

_engine: Optional[Engine] = None
_session_factory: Optional[sessionmaker] = None

_PROJECT_ROOT = Path(__file__).resolve().parents[3]


def _resolve_db_url(db_url: str) -> str:
    """Anchor relative DuckDB paths at the project root and create their directory."""
    prefix = "duckdb:///"
    if not db_url.startswith(prefix):
        return db_url
    db_path = db_url[len(prefix):]
    if db_path == ":memory:" or Path(db_path).is_absolute():
        return db_url
    full_path = _PROJECT_ROOT / db_path
    full_path.parent.mkdir(parents=True, exist_ok=True)
    logger.info("DuckDB path resolved to: %s", full_path)
    return f"{prefix}{full_path}"


def _redact(db_url: str) -> str:
    return db_url.split("@")[-1] if "@" in db_url else db_url


def get_engine(db_url: Optional[str] = None) -> Engine:
    """Get or create the process-wide engine.

    Args:
        db_url: Database URL. If None, uses the configured chat_history_db_url.
    """
    global _engine
    if _engine is not None:
        return _engine

    if db_url is None:
        from chatblocks.modules.config.config_manager import config_manager

        db_url = config_manager.app_settings.chat_history_db_url

    db_url = _resolve_db_url(db_url)

    if db_url.startswith("postgresql"):
        _engine = create_engine(db_url, pool_size=5, max_overflow=10, pool_pre_ping=True)
    else:
        _engine = create_engine(db_url)

    logger.info("Database engine created: %s", _redact(db_url))
    return _engine


def get_session_factory(engine: Optional[Engine] = None) -> sessionmaker:
    """Get or create the session factory."""
    global _session_factory
    if _session_factory is None:
        _session_factory = sessionmaker(bind=engine or get_engine(), expire_on_commit=False)
    return _session_factory


def init_database(db_url: Optional[str] = None) -> Engine:
    """Create tables if they don't exist.

    Production deployments run the Alembic migration instead.
    """
    engine = get_engine(db_url)
    Base.metadata.create_all(engine)
    logger.info("Database tables created/verified")
    return engine


def reset_engine() -> None:
    """Dispose the global engine (for testing)."""
    global _engine, _session_factory
    if _engine is not None:
        _engine.dispose()
    _engine = None
    _session_factory = None
