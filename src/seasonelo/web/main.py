"""
JSON API over the season rating engine.

Read endpoints project ratings at request time (decay is never stored), so
two requests a day apart can return different effective ratings for the same
snapshots. The recalculate endpoint only queues a replay and returns 202.
"""

from contextlib import asynccontextmanager
from dataclasses import asdict
import logging
from typing import Optional

from fastapi import Depends, FastAPI, HTTPException, Query
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from seasonelo.db.models import Season
from seasonelo.db.repository import get_active
from seasonelo.db.session import get_db
from seasonelo.elo.projection import (
    get_player_season_stats,
    get_rating_history,
    project_current_rating,
    project_season_leaderboard,
)
from seasonelo.tasks.scheduler import ReplayScheduler, Scheduler

logger = logging.getLogger(__name__)

_scheduler: Optional[ReplayScheduler] = None


def get_scheduler() -> Scheduler:
    """Process-wide replay scheduler, created on first use."""
    global _scheduler
    if _scheduler is None:
        _scheduler = ReplayScheduler()
    return _scheduler


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    global _scheduler
    if _scheduler is not None:
        logger.info("Waiting for queued season replays to finish")
        _scheduler.shutdown(wait=True)
        _scheduler = None


app = FastAPI(title="Season ELO", lifespan=lifespan)


def _require_season(db: Session, season_id: int) -> Season:
    season = get_active(db, Season, season_id)
    if season is None:
        raise HTTPException(status_code=404, detail="Season not found")
    return season


@app.get("/api/seasons/{season_id}/leaderboard")
async def api_leaderboard(
    season_id: int,
    db: Session = Depends(get_db),
    limit: Optional[int] = Query(None, ge=1, le=500, description="Maximum number of players"),
):
    """
    Season leaderboard ranked by effective (decayed) rating.

    Players who have not played in the season are not listed.
    """
    season = _require_season(db, season_id)
    entries = project_season_leaderboard(db, season_id, limit=limit)

    return JSONResponse({
        "season": {"id": season.id, "name": season.name, "start": season.start, "end": season.end},
        "players": [
            {"rank": i + 1, **asdict(entry)}
            for i, entry in enumerate(entries)
        ],
    })


@app.get("/api/seasons/{season_id}/players/{player_id}/rating")
async def api_player_rating(
    season_id: int,
    player_id: int,
    db: Session = Depends(get_db),
):
    projection = project_current_rating(db, player_id, season_id)
    if projection is None:
        raise HTTPException(status_code=404, detail="Player has no rating in this season")
    return JSONResponse({"player_id": player_id, "season_id": season_id, **asdict(projection)})


@app.get("/api/seasons/{season_id}/players/{player_id}/history")
async def api_player_history(
    season_id: int,
    player_id: int,
    db: Session = Depends(get_db),
):
    """Stored snapshots, oldest first. Decay is not applied to history."""
    _require_season(db, season_id)
    history = get_rating_history(db, player_id, season_id)
    return JSONResponse({
        "player_id": player_id,
        "season_id": season_id,
        "history": [asdict(entry) for entry in history],
    })


@app.get("/api/seasons/{season_id}/players/{player_id}/stats")
async def api_player_stats(
    season_id: int,
    player_id: int,
    db: Session = Depends(get_db),
):
    stats = get_player_season_stats(db, player_id, season_id)
    if stats is None:
        raise HTTPException(status_code=404, detail="Season or player not found")
    return JSONResponse({"player_id": player_id, "season_id": season_id, **asdict(stats)})


@app.post("/api/seasons/{season_id}/recalculate", status_code=202)
async def api_recalculate(
    season_id: int,
    db: Session = Depends(get_db),
    scheduler: Scheduler = Depends(get_scheduler),
    from_timestamp: Optional[int] = Query(
        None, ge=0, description="Earliest changed event (epoch ms); omit for a full replay"
    ),
):
    """Queue a season replay. Returns before the replay runs."""
    _require_season(db, season_id)
    scheduler.schedule(season_id, from_timestamp)
    return JSONResponse(
        {"season_id": season_id, "from_timestamp": from_timestamp, "status": "scheduled"},
        status_code=202,
    )


if __name__ == "__main__":
    import uvicorn

    from seasonelo.config import settings

    logging.basicConfig(level=settings.log_level)
    uvicorn.run("seasonelo.web.main:app", host=settings.api_host, port=settings.api_port)
