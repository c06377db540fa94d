#!/usr/bin/env python3
"""
Replay season ratings from the event log.

Replay one season (after a manual data fix):
    python scripts/recalculate_elo.py --season-id 3

Replay every non-deleted season (initial backfill or formula change):
    python scripts/recalculate_elo.py --all

Pass the earliest changed event (recorded in replay_log only; the season is
always rebuilt from its start):
    python scripts/recalculate_elo.py --season-id 3 --from-timestamp 1717200000000

Dry run (replay, print counts, roll back):
    python scripts/recalculate_elo.py --all --dry-run

Unlike the API, this runs the replays in the foreground and exits non-zero
if any season fails.
"""
from __future__ import annotations

import argparse
import json
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from time import perf_counter

# Add src to path so this script can be run directly
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from seasonelo.config import settings
from seasonelo.db import get_engine, get_session
from seasonelo.db.repository import active_seasons
from seasonelo.elo.replay import ReplayResult, SeasonReplayEngine
from seasonelo.tasks.locks import advisory_lock_key, postgres_advisory_lock
from seasonelo.tasks.scheduler import run_replay_job

logger = logging.getLogger("recalculate_elo")

REBUILD_LOCK_KEY = advisory_lock_key("seasonelo:rebuild-all")


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Replay season ratings from matches and tournaments.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    target = parser.add_mutually_exclusive_group(required=True)
    target.add_argument("--season-id", type=int, help="Season to replay.")
    target.add_argument("--all", action="store_true", help="Replay every non-deleted season.")
    parser.add_argument(
        "--from-timestamp",
        type=int,
        default=None,
        help="Earliest changed event in epoch ms (only with --season-id).",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Run the replay but roll back instead of committing.",
    )
    parser.add_argument(
        "--metrics-json",
        default=None,
        help="Write a JSON summary to this path on completion.",
    )
    return parser


def _dry_run(season_id: int, from_timestamp: int | None) -> ReplayResult:
    with get_session() as session:
        result = SeasonReplayEngine().recalculate(session, season_id, from_timestamp)
        session.rollback()
    return result


def _replay(season_ids: list[int], from_timestamp: int | None, dry_run: bool) -> tuple[list[ReplayResult], list[int]]:
    results, failed = [], []
    for season_id in season_ids:
        try:
            if dry_run:
                result = _dry_run(season_id, from_timestamp)
            else:
                result = run_replay_job(season_id, from_timestamp)
        except Exception:
            logger.exception("Season %s failed", season_id)
            failed.append(season_id)
            continue
        print(f"  {result.summary()}")
        results.append(result)
    return results, failed


def main() -> int:
    args = _build_parser().parse_args()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.from_timestamp is not None and args.all:
        print("ERROR: --from-timestamp only applies to --season-id")
        return 1

    mode = "all" if args.all else f"season={args.season_id}"
    started_at = _utc_now_iso()
    print(f"SEASON REPLAY  {mode}  dry_run={args.dry_run}  started={started_at}")
    print("-" * 60)

    t_start = perf_counter()

    if args.all:
        with get_session() as session:
            season_ids = [season.id for season in active_seasons(session)]
        engine = get_engine()
        if engine.dialect.name == "postgresql":
            with postgres_advisory_lock(engine, key=REBUILD_LOCK_KEY):
                results, failed = _replay(season_ids, None, args.dry_run)
        else:
            results, failed = _replay(season_ids, None, args.dry_run)
        engine.dispose()
    else:
        season_ids = [args.season_id]
        results, failed = _replay(season_ids, args.from_timestamp, args.dry_run)

    elapsed = perf_counter() - t_start

    print("-" * 60)
    print(f"Seasons replayed:       {len(results)}")
    print(f"Seasons failed:         {len(failed)}")
    print(f"Snapshots written:      {sum(r.snapshots_written for r in results)}")
    if args.dry_run:
        print("(dry run: changes rolled back)")
    print(f"Elapsed:                {elapsed:.2f}s")

    if args.metrics_json:
        payload = {
            "status": "failed" if failed else "success",
            "mode": mode,
            "dry_run": args.dry_run,
            "started_at": started_at,
            "elapsed_s": round(elapsed, 3),
            "seasons": [r.to_dict() for r in results],
            "failed_season_ids": failed,
        }
        metrics_path = Path(args.metrics_json)
        metrics_path.parent.mkdir(parents=True, exist_ok=True)
        metrics_path.write_text(json.dumps(payload, indent=2) + "\n", encoding="utf-8")

    return 1 if failed else 0


if __name__ == "__main__":
    raise SystemExit(main())
