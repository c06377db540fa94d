"""
seasonelo - Season rating engine

Tracks players, matches, tournaments and seasons, and derives a per-season
rating for every player by replaying the season's event history.

Main components:
- elo: rating formulas, event collection, season replay, decay projection
- db: SQLAlchemy models, sessions and the snapshot store
- services: recalculation triggers, event mutations, account merge
- tasks: replay scheduling and per-season locking
- web: FastAPI JSON API
"""

__version__ = "1.0.0"
