"""Database advisory lock helpers for replay serialization."""

from __future__ import annotations

import hashlib
import logging
import time
from contextlib import contextmanager
from typing import Generator

from sqlalchemy import text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)


def advisory_lock_key(name: str) -> int:
    """Return a deterministic signed 64-bit lock key from a lock name."""
    digest = hashlib.sha256(name.encode("utf-8")).digest()
    return int.from_bytes(digest[:8], byteorder="big", signed=True)


def season_lock_key(season_id: int) -> int:
    """Lock key shared by every replay of one season."""
    return advisory_lock_key(f"seasonelo_replay_season_{season_id}")


def acquire_season_replay_lock(session: Session, season_id: int) -> bool:
    """
    Block until this transaction holds the season's replay lock.

    Uses a transaction-scoped PostgreSQL advisory lock, released by the
    commit or rollback that ends the replay. Two processes replaying the
    same season therefore run one after the other instead of interleaving
    their deletes and inserts.

    Returns:
        True if a lock was taken, False on backends without advisory locks
        (SQLite in tests), where the in-process scheduler is the only
        serialization point.
    """
    bind = session.get_bind()
    if bind.dialect.name != "postgresql":
        return False

    session.execute(
        text("SELECT pg_advisory_xact_lock(:key)"),
        {"key": season_lock_key(season_id)},
    )
    logger.debug("Acquired replay lock for season %s", season_id)
    return True


@contextmanager
def postgres_advisory_lock(
    engine: Engine,
    *,
    key: int,
    timeout_seconds: float = 0.0,
    poll_interval_seconds: float = 1.0,
) -> Generator[bool, None, None]:
    """
    Acquire a session-level PostgreSQL advisory lock for the life of this context.

    Used by the CLI so two operators cannot run a full rebuild at once.

    Yields:
        True if lock acquired.

    Raises:
        TimeoutError: if lock cannot be acquired before timeout.
    """
    connection = engine.connect()
    acquired = False
    try:
        deadline = time.monotonic() + max(timeout_seconds, 0.0)
        while True:
            acquired = bool(
                connection.execute(
                    text("SELECT pg_try_advisory_lock(:key)"),
                    {"key": key},
                ).scalar()
            )
            if acquired:
                break
            if timeout_seconds <= 0:
                break
            if time.monotonic() >= deadline:
                break
            time.sleep(max(poll_interval_seconds, 0.05))

        if not acquired:
            raise TimeoutError(f"Could not acquire advisory lock key={key}")

        yield True
    finally:
        if acquired:
            connection.execute(
                text("SELECT pg_advisory_unlock(:key)"),
                {"key": key},
            )
        connection.close()
