"""
Database module for seasonelo.

Provides SQLAlchemy ORM models, session management and the snapshot store.

Usage:
    from seasonelo.db import get_session, Season, EloSnapshot

    with get_session() as session:
        seasons = session.query(Season).all()
"""

from seasonelo.db.models import (
    Base,
    EloSnapshot,
    Match,
    Player,
    ReplayLog,
    Season,
    Tournament,
)
from seasonelo.db.repository import SnapshotStore, active, get_active
from seasonelo.db.session import SessionLocal, get_db, get_engine, get_session, new_session

__all__ = [
    # Base
    "Base",
    # Models
    "Player",
    "Season",
    "Tournament",
    "Match",
    "EloSnapshot",
    "ReplayLog",
    # Repository
    "SnapshotStore",
    "active",
    "get_active",
    # Session
    "get_session",
    "get_engine",
    "get_db",
    "new_session",
    "SessionLocal",
]
