"""
Database engine setup for CoinLedger.
The only persisted data are the two credential slots.
Uses SQLModel with SQLite, WAL mode enabled so the Streamlit page and the monitor can share a file.
"""

from sqlmodel import SQLModel, create_engine
from typing import Optional
import logging

from config import get_settings

logger = logging.getLogger(__name__)

# Global engine instance
_engine: Optional[object] = None


def get_engine():
    """Get or create the database engine with WAL mode enabled."""
    global _engine
    if _engine is None:
        settings = get_settings()
        _engine = create_engine(
            settings.database_url,
            echo=settings.db_echo,
            connect_args={
                "check_same_thread": False,  # Refresh jobs run on scheduler threads
            }
        )
        _enable_wal_mode()
    return _engine


def _enable_wal_mode():
    """Enable SQLite WAL mode for concurrent read/write access."""
    if _engine is None:
        return

    try:
        with _engine.connect() as conn:
            conn.exec_driver_sql("PRAGMA journal_mode=WAL")
            conn.exec_driver_sql("PRAGMA busy_timeout=5000")
            logger.info("SQLite WAL mode enabled for concurrent access")
    except Exception as e:
        logger.warning(f"Could not enable WAL mode: {e}")


def dispose_engine():
    """Drop the cached engine so the next call picks up the current settings."""
    global _engine
    if _engine is not None:
        _engine.dispose()
    _engine = None


def init_db():
    """Initialize the database and create all tables."""
    from models import Credential  # noqa: F401  (registers the table)

    engine = get_engine()
    SQLModel.metadata.create_all(engine)
    logger.info("Database initialized")
