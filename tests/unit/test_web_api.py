"""Tests for the JSON API."""

import pytest
from fastapi.testclient import TestClient

from seasonelo.db.session import get_db
from seasonelo.elo.replay import recalculate_season
from seasonelo.web.main import app, get_scheduler


@pytest.fixture
def client(db_session, scheduler):
    def _get_db():
        yield db_session

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_scheduler] = lambda: scheduler
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def rated_season(db_session, make_player, make_season, make_match, make_tournament):
    season = make_season(start=0, end=10_000_000_000, name="Autumn")
    p1, p2, p3 = make_player("P1"), make_player("P2"), make_player("P3")
    make_match(p1, p2, date=500)
    make_tournament(p1, date=900)
    recalculate_season(db_session, season.id)
    return season, p1, p2, p3


def test_leaderboard(client, rated_season):
    season, p1, p2, _ = rated_season

    response = client.get(f"/api/seasons/{season.id}/leaderboard")

    assert response.status_code == 200
    body = response.json()
    assert body["season"]["name"] == "Autumn"
    assert [(p["rank"], p["player_id"]) for p in body["players"]] == [(1, p1.id), (2, p2.id)]
    assert body["players"][0]["base_rating"] == 118


def test_leaderboard_limit(client, rated_season):
    season, p1, _, _ = rated_season

    body = client.get(f"/api/seasons/{season.id}/leaderboard", params={"limit": 1}).json()

    assert [p["player_id"] for p in body["players"]] == [p1.id]


def test_leaderboard_unknown_season(client):
    assert client.get("/api/seasons/999999/leaderboard").status_code == 404


def test_player_rating(client, rated_season):
    season, _, p2, p3 = rated_season

    response = client.get(f"/api/seasons/{season.id}/players/{p2.id}/rating")
    assert response.status_code == 200
    assert response.json()["base_rating"] == 92

    # No snapshot means no rating, not zero
    assert client.get(f"/api/seasons/{season.id}/players/{p3.id}/rating").status_code == 404


def test_player_history(client, rated_season):
    season, p1, _, _ = rated_season

    body = client.get(f"/api/seasons/{season.id}/players/{p1.id}/history").json()

    assert [(h["rating"], h["reason"], h["delta"]) for h in body["history"]] == [
        (100, "season_start", None),
        (110, "match_win", 10),
        (118, "tournament_bonus", 8),
    ]


def test_player_stats(client, rated_season):
    season, p1, _, _ = rated_season

    body = client.get(f"/api/seasons/{season.id}/players/{p1.id}/stats").json()

    assert (body["wins"], body["losses"], body["highest_rating"]) == (1, 0, 118)


def test_recalculate_is_queued(client, scheduler, rated_season):
    season = rated_season[0]

    response = client.post(
        f"/api/seasons/{season.id}/recalculate", params={"from_timestamp": 500}
    )

    assert response.status_code == 202
    assert response.json()["status"] == "scheduled"
    assert scheduler.calls == [(season.id, 500)]


def test_recalculate_unknown_season(client, scheduler):
    assert client.post("/api/seasons/999999/recalculate").status_code == 404
    assert scheduler.calls == []
