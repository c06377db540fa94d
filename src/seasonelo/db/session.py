"""
Database session management for seasonelo.

Provides the SQLAlchemy engine and session factory with connection pooling
configured from config.py.

Usage:
    # As a context manager (recommended for scripts and replay workers)
    from seasonelo.db import get_session

    with get_session() as session:
        recalculate_season(session, season_id)
        # Commits automatically on exit, rolls back on exception

    # As a dependency injection (for FastAPI)
    from seasonelo.db.session import get_db
"""

from contextlib import contextmanager
from typing import Generator

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from seasonelo.config import settings


def get_engine() -> Engine:
    """
    Create SQLAlchemy engine with connection pooling.

    The engine is configured with:
    - Connection pool for efficient reuse
    - Echo mode only when LOG_LEVEL=DEBUG
    - Pre-ping to verify connections before use (handles stale connections)
    """
    return create_engine(
        settings.database_url,
        pool_size=settings.db_pool_size,
        max_overflow=settings.db_max_overflow,
        pool_pre_ping=True,
        echo=settings.log_level == "DEBUG",
    )


# Created on first use so importing models never opens a database driver
_engine = None


def _get_engine() -> Engine:
    """Get or create the singleton engine instance."""
    global _engine
    if _engine is None:
        _engine = get_engine()
    return _engine


# Session factory - bound to the engine lazily in new_session()
SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
)


def new_session() -> Session:
    """Open a new session bound to the application engine."""
    return SessionLocal(bind=_get_engine())


@contextmanager
def get_session() -> Generator[Session, None, None]:
    """
    Context manager for database sessions.

    Automatically commits on successful exit, rolls back on exception.
    This is the recommended way to use sessions in scripts and tasks.

    Raises:
        Any exception from the database operation (after rollback)
    """
    session = new_session()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def get_db() -> Generator[Session, None, None]:
    """
    Dependency injection function for FastAPI.

    Use this with FastAPI's Depends() for request-scoped sessions.
    """
    db = new_session()
    try:
        yield db
    finally:
        db.close()
