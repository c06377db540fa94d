"""
Task runtime utilities for season replays.

The replay scheduler lives in seasonelo.tasks.scheduler and is imported from
there directly, since it depends on the rating engine which itself uses the
lock helpers exported here.
"""

from seasonelo.tasks.locks import (
    acquire_season_replay_lock,
    advisory_lock_key,
    postgres_advisory_lock,
    season_lock_key,
)

__all__ = [
    "acquire_season_replay_lock",
    "advisory_lock_key",
    "postgres_advisory_lock",
    "season_lock_key",
]
