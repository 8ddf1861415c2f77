"""End-to-end tests for the arcade HTTP API."""

from __future__ import annotations

import time
from typing import TYPE_CHECKING

import httpx
import pytest
from starlette.testclient import TestClient

from arcade.client.controller import ArcadeClient
from arcade.client.recorder import PlayRecorder
from arcade.events import Direction
from arcade.scoring.leaderboard import MAX_LEADERBOARD_SIZE
from arcade.server.app import MISSING_SESSION_MESSAGE, MISSING_SIGNED_FIELDS_MESSAGE, create_app
from arcade.server.settings import ArcadeSettings
from arcade.tests.helpers import end_game_body, moves, sample_foods, sign_submission

if TYPE_CHECKING:
    from pathlib import Path

    from starlette.applications import Starlette


def _settings(tmp_path: Path, environment: str = "production") -> ArcadeSettings:
    return ArcadeSettings(
        environment=environment,
        database_path=str(tmp_path / "arcade.db"),
        cors_origins=["http://localhost:3000"],
    )


@pytest.fixture
def app(tmp_path: Path) -> Starlette:
    return create_app(settings=_settings(tmp_path))


@pytest.fixture
def client(app: Starlette):
    with TestClient(app) as c:
        yield c


def _start(client: TestClient) -> dict:
    response = client.post("/game/start")
    assert response.status_code == 201
    return response.json()


def _finish(client: TestClient, session: dict, final_score: int = 60) -> None:
    body = end_game_body(session["secret"], session["sessionId"], final_score, moves(5), sample_foods(), 3000)
    response = client.post("/game/end", json=body)
    assert response.status_code == 200


def _submission(session: dict, name: str = "abc", score: int = 60) -> dict:
    timestamp = int(time.time() * 1000)
    return {
        "name": name,
        "score": score,
        "sessionId": session["sessionId"],
        "timestamp": timestamp,
        "signature": sign_submission(session["secret"], session["sessionId"], name, score, timestamp),
    }


class TestHealthAndHeaders:
    def test_health(self, client: TestClient) -> None:
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "ok"}

    def test_security_headers(self, client: TestClient) -> None:
        response = client.get("/health")
        assert response.headers["x-content-type-options"] == "nosniff"
        assert response.headers["x-frame-options"] == "DENY"
        assert response.headers["cache-control"] == "no-store"

    def test_cors_preflight_for_allowed_origin(self, client: TestClient) -> None:
        response = client.options(
            "/game/start",
            headers={"Origin": "http://localhost:3000", "Access-Control-Request-Method": "POST"},
        )
        assert response.status_code == 200
        assert response.headers["access-control-allow-origin"] == "http://localhost:3000"


class TestStartGame:
    def test_issues_session(self, client: TestClient) -> None:
        data = _start(client)

        assert data["success"] is True
        assert data["sessionId"]
        assert len(data["secret"]) == 64
        assert 0 <= data["seed"] < 2**32

    def test_each_start_is_a_new_session(self, client: TestClient) -> None:
        assert _start(client)["sessionId"] != _start(client)["sessionId"]


class TestEndGame:
    def test_immediate_end_is_too_short(self, client: TestClient) -> None:
        session = _start(client)
        body = end_game_body(session["secret"], session["sessionId"], 0, moves(1), [], 100)

        response = client.post("/game/end", json=body)

        assert response.status_code == 400
        assert response.json() == {"success": False, "message": "Game too short to be valid"}

    def test_valid_game_then_replay(self, client: TestClient) -> None:
        session = _start(client)
        body = end_game_body(session["secret"], session["sessionId"], 60, moves(5), sample_foods(), 3000)

        first = client.post("/game/end", json=body)
        second = client.post("/game/end", json=body)

        assert first.status_code == 200
        assert first.json() == {"success": True, "validatedScore": 60}
        assert second.status_code == 400
        assert second.json() == {"success": False, "message": "Game session is not active"}

    def test_unknown_session(self, client: TestClient) -> None:
        body = end_game_body("x" * 64, "no-such-session", 60, moves(5), sample_foods(), 3000)

        response = client.post("/game/end", json=body)

        assert response.status_code == 400
        assert response.json()["message"] == "Invalid game session"

    def test_unknown_fields_rejected(self, client: TestClient) -> None:
        session = _start(client)
        body = end_game_body(session["secret"], session["sessionId"], 60, moves(5), sample_foods(), 3000)
        body["events"][0]["x"] = 5

        response = client.post("/game/end", json=body)

        assert response.status_code == 422
        assert response.json() == {"success": False, "message": "Invalid request body"}

    def test_string_score_rejected(self, client: TestClient) -> None:
        session = _start(client)
        body = end_game_body(session["secret"], session["sessionId"], 60, moves(5), sample_foods(), 3000)
        body["finalScore"] = "60"

        assert client.post("/game/end", json=body).status_code == 422

    def test_non_json_body_rejected(self, client: TestClient) -> None:
        response = client.post("/game/end", content=b"not json", headers={"Content-Type": "application/json"})

        assert response.status_code == 422

    def test_oversized_body_rejected(self, client: TestClient) -> None:
        response = client.post("/game/end", content=b"x" * (600 * 1024), headers={"Content-Type": "application/json"})

        assert response.status_code == 413


class TestSubmitScore:
    def test_validated_score_is_ranked(self, client: TestClient) -> None:
        session = _start(client)
        _finish(client, session)

        response = client.post("/scores", json=_submission(session))

        assert response.status_code == 201
        assert response.json() == {"success": True, "position": 1}
        board = client.get("/scores").json()["leaderboard"]
        assert [(e["name"], e["score"]) for e in board] == [("ABC", 60)]

    def test_submission_before_end_of_game(self, client: TestClient) -> None:
        session = _start(client)

        response = client.post("/scores", json=_submission(session, score=0))

        assert response.status_code == 400
        assert response.json()["message"] == "Game session is still active"

    def test_inflated_score_rejected(self, client: TestClient) -> None:
        session = _start(client)
        _finish(client, session)

        response = client.post("/scores", json=_submission(session, score=9999))

        assert response.status_code == 400
        assert response.json()["message"] == "Submitted score does not match validated score"

    def test_second_submission_rejected(self, client: TestClient) -> None:
        session = _start(client)
        _finish(client, session)
        client.post("/scores", json=_submission(session))

        response = client.post("/scores", json=_submission(session, name="zzz"))

        assert response.status_code == 400
        assert response.json()["message"] == "Score already submitted for this session"

    def test_legacy_unsigned_submission(self, client: TestClient) -> None:
        response = client.post("/scores", json={"name": "abc", "score": 60})

        assert response.status_code == 400
        assert response.json() == {"success": False, "message": MISSING_SESSION_MESSAGE}

    def test_missing_signed_fields(self, client: TestClient) -> None:
        response = client.post("/scores", json={"name": "abc", "score": 60, "sessionId": "s1"})

        assert response.status_code == 400
        assert response.json() == {"success": False, "message": MISSING_SIGNED_FIELDS_MESSAGE}

    def test_trailing_slash_is_normalized(self, client: TestClient) -> None:
        session = _start(client)
        _finish(client, session)

        response = client.post("/scores/", json=_submission(session))

        assert response.status_code == 201


class TestLeaderboardQueries:
    def _fill_board(self, client: TestClient, app: Starlette, lowest: int) -> None:
        for i in range(MAX_LEADERBOARD_SIZE):
            client.portal.call(app.state.leaderboard.add_score, "aaa", lowest + i * 10)

    def test_empty_board(self, client: TestClient) -> None:
        response = client.get("/scores")

        assert response.status_code == 200
        assert response.json() == {"success": True, "leaderboard": []}

    def test_qualification_on_empty_board(self, client: TestClient) -> None:
        response = client.get("/scores/check/50")

        assert response.status_code == 200
        assert response.json() == {"qualifies": False, "threshold": 100}

    def test_qualification_on_full_board(self, client: TestClient, app: Starlette) -> None:
        self._fill_board(client, app, lowest=300)

        assert client.get("/scores/check/300").json()["qualifies"] is False
        assert client.get("/scores/check/301").json() == {"qualifies": True, "threshold": 301}

    def test_board_shows_top_ten(self, client: TestClient, app: Starlette) -> None:
        self._fill_board(client, app, lowest=300)
        client.portal.call(app.state.leaderboard.add_score, "low", 5)

        board = client.get("/scores/").json()["leaderboard"]

        assert len(board) == MAX_LEADERBOARD_SIZE
        assert board[0]["score"] == 390
        assert set(board[0]) == {"id", "name", "score", "timestamp"}

    @pytest.mark.parametrize("raw", ["abc", "-5", "1.5"])
    def test_invalid_score_value(self, client: TestClient, raw: str) -> None:
        response = client.get(f"/scores/check/{raw}")

        assert response.status_code == 400
        assert response.json() == {"success": False, "message": "Invalid score value"}


class TestStoreUnavailable:
    def test_store_failure_is_retryable_503(self, client: TestClient, app: Starlette) -> None:
        app.state.db.close()

        response = client.get("/scores")

        assert response.status_code == 503
        assert response.json() == {
            "success": False,
            "message": "Service temporarily unavailable",
            "retryable": True,
        }

    def test_start_game_during_outage(self, client: TestClient, app: Starlette) -> None:
        app.state.db.close()

        assert client.post("/game/start").status_code == 503


class TestLifecycle:
    def test_shutdown_stops_cleanup_and_closes_db(self, app: Starlette) -> None:
        with TestClient(app):
            assert app.state.session_manager._cleanup_task is not None
            db = app.state.db
            assert db.connection is not None

        assert app.state.session_manager._cleanup_task is None
        assert db._conn is None


class TestClientAgainstServer:
    async def test_full_play(self, tmp_path: Path) -> None:
        app = create_app(settings=_settings(tmp_path, environment="development"))
        clock_ms = [0]
        recorder = PlayRecorder(clock=lambda: clock_ms[0] / 1000)
        transport = httpx.ASGITransport(app=app)

        async with (
            httpx.AsyncClient(transport=transport, base_url="http://arcade.test") as http,
            ArcadeClient(http=http) as arcade,
        ):
            recorder.record_move(Direction.UP)
            context = await arcade.start_session(recorder)

            for direction in (Direction.LEFT, Direction.DOWN, Direction.RIGHT, Direction.UP):
                clock_ms[0] += 150
                recorder.record_move(direction)
            recorder.record_food(golden=False)
            clock_ms[0] += 150
            recorder.record_food(golden=True)
            clock_ms[0] = 3000

            ended = await arcade.end_game(recorder, recorder.computed_score())
            submitted = await arcade.submit_score(context, "zed", 60)
            board = await arcade.get_leaderboard()
            qualification = await arcade.check_qualification(61)

        app.state.db.close()
        assert ended == {"success": True, "validatedScore": 60}
        assert submitted == {"success": True, "position": 1}
        assert [(e["name"], e["score"]) for e in board] == [("ZED", 60)]
        assert qualification == {"qualifies": True, "threshold": 100}
