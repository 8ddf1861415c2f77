from __future__ import annotations

import contextlib
from http import HTTPStatus
from typing import TYPE_CHECKING, cast

import structlog
from pydantic import BaseModel, ValidationError
from starlette.applications import Starlette
from starlette.middleware.cors import CORSMiddleware
from starlette.responses import JSONResponse
from starlette.routing import Route

from arcade.integrity.validator import IntegrityValidator
from arcade.scoring.leaderboard import LeaderboardEngine
from arcade.scoring.submission import ScoreSubmissionVerifier
from arcade.server.middleware import ApiSecurityHeadersMiddleware, SlashNormalizationMiddleware
from arcade.server.settings import ArcadeSettings
from arcade.server.types import EndGameRequest, SubmitScoreRequest
from arcade.session.manager import SessionManager
from shared.db import Database, SqliteLeaderboardRepository, SqliteSessionRepository
from shared.errors import StoreUnavailableError
from shared.logging import setup_logging

logger = structlog.get_logger()

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

    from starlette.requests import Request

_MAX_REQUEST_BODY_SIZE = 512 * 1024

MISSING_SESSION_MESSAGE = "Missing session data. Score submissions must be validated."
MISSING_SIGNED_FIELDS_MESSAGE = "Missing signed fields (timestamp, signature)"


class _BodyError(Exception):
    def __init__(self, message: str, status_code: int) -> None:
        self.message = message
        self.status_code = status_code
        super().__init__(message)


async def _parse_body[ModelT: BaseModel](request: Request, model: type[ModelT]) -> ModelT:
    raw_body = await request.body()
    if len(raw_body) > _MAX_REQUEST_BODY_SIZE:
        raise _BodyError("Request body too large", HTTPStatus.REQUEST_ENTITY_TOO_LARGE)
    try:
        return model.model_validate_json(raw_body)
    except (ValueError, ValidationError) as e:
        raise _BodyError("Invalid request body", HTTPStatus.UNPROCESSABLE_ENTITY) from e


def _failure(message: str, status_code: int) -> JSONResponse:
    return JSONResponse({"success": False, "message": message}, status_code=status_code)


async def _store_unavailable_handler(_request: Request, exc: Exception) -> JSONResponse:
    store_exc = cast("StoreUnavailableError", exc)
    logger.error("request failed, store unavailable", operation=store_exc.operation)
    return JSONResponse(
        {"success": False, "message": "Service temporarily unavailable", "retryable": True},
        status_code=HTTPStatus.SERVICE_UNAVAILABLE,
    )


async def health(_request: Request) -> JSONResponse:
    return JSONResponse({"status": "ok"})


async def start_game(request: Request) -> JSONResponse:
    """POST /game/start: issue a session id, secret and seed."""
    session_manager: SessionManager = request.app.state.session_manager
    grant = await session_manager.create()
    return JSONResponse(
        {"success": True, "sessionId": grant.session_id, "secret": grant.secret, "seed": grant.seed},
        status_code=HTTPStatus.CREATED,
    )


async def end_game(request: Request) -> JSONResponse:
    """POST /game/end: validate the signed event log and finalize the session."""
    validator: IntegrityValidator = request.app.state.integrity_validator
    try:
        body = await _parse_body(request, EndGameRequest)
    except _BodyError as e:
        return _failure(e.message, e.status_code)

    with structlog.contextvars.bound_contextvars(session_id=body.session_id):
        result = await validator.end_session(
            body.session_id,
            body.signature,
            body.final_score,
            body.events,
            body.foods,
            body.duration_ms,
        )
    status_code = HTTPStatus.OK if result.success else HTTPStatus.BAD_REQUEST
    return JSONResponse(result.to_wire(), status_code=status_code)


async def submit_score(request: Request) -> JSONResponse:
    """POST /scores: bind a validated score to a name and rank it."""
    verifier: ScoreSubmissionVerifier = request.app.state.submission_verifier
    try:
        body = await _parse_body(request, SubmitScoreRequest)
    except _BodyError as e:
        return _failure(e.message, e.status_code)

    if body.session_id is None:
        return _failure(MISSING_SESSION_MESSAGE, HTTPStatus.BAD_REQUEST)
    if body.timestamp is None or body.signature is None:
        return _failure(MISSING_SIGNED_FIELDS_MESSAGE, HTTPStatus.BAD_REQUEST)

    with structlog.contextvars.bound_contextvars(session_id=body.session_id):
        result = await verifier.submit(body.session_id, body.name, body.score, body.timestamp, body.signature)
    status_code = HTTPStatus.CREATED if result.success else HTTPStatus.BAD_REQUEST
    return JSONResponse(result.to_wire(), status_code=status_code)


async def get_leaderboard(request: Request) -> JSONResponse:
    """GET /scores: the visible top ten."""
    leaderboard: LeaderboardEngine = request.app.state.leaderboard
    entries = await leaderboard.get_board()
    return JSONResponse({"success": True, "leaderboard": [entry.model_dump() for entry in entries]})


async def check_score(request: Request) -> JSONResponse:
    """GET /scores/check/{score}: would this score make the board right now."""
    leaderboard: LeaderboardEngine = request.app.state.leaderboard
    raw_score = request.path_params["score"]
    if not raw_score.isdecimal():
        return _failure("Invalid score value", HTTPStatus.BAD_REQUEST)

    qualification = await leaderboard.check_qualification(int(raw_score))
    return JSONResponse({"qualifies": qualification.qualifies, "threshold": qualification.threshold})


def create_app(settings: ArcadeSettings | None = None) -> Starlette:
    if settings is None:  # pragma: no cover
        settings = ArcadeSettings()

    db = Database(settings.database_path)
    db.connect()

    session_manager = SessionManager(
        SqliteSessionRepository(db),
        ttl_seconds=settings.session_ttl_seconds,
        cleanup_interval_seconds=settings.session_cleanup_interval_seconds,
    )
    leaderboard = LeaderboardEngine(SqliteLeaderboardRepository(db))

    routes = [
        Route("/health", health, methods=["GET"]),
        Route("/game/start", start_game, methods=["POST"]),
        Route("/game/end", end_game, methods=["POST"]),
        Route("/scores", get_leaderboard, methods=["GET"]),
        Route("/scores", submit_score, methods=["POST"]),
        Route("/scores/check/{score}", check_score, methods=["GET"]),
    ]

    @contextlib.asynccontextmanager
    async def lifespan(_app: Starlette) -> AsyncGenerator[None]:
        session_manager.start_cleanup()
        yield
        await session_manager.stop_cleanup()
        db.close()

    app = Starlette(
        routes=routes,
        lifespan=lifespan,
        exception_handlers={StoreUnavailableError: _store_unavailable_handler},
    )
    app.add_middleware(SlashNormalizationMiddleware)  # type: ignore[arg-type]
    app.add_middleware(
        CORSMiddleware,  # type: ignore[arg-type]
        allow_origins=settings.cors_origins,
        allow_methods=["GET", "POST"],
        allow_headers=["Content-Type"],
    )
    app.add_middleware(ApiSecurityHeadersMiddleware)  # type: ignore[arg-type]

    app.state.db = db
    app.state.settings = settings
    app.state.session_manager = session_manager
    app.state.leaderboard = leaderboard
    app.state.integrity_validator = IntegrityValidator(session_manager, settings.thresholds)
    app.state.submission_verifier = ScoreSubmissionVerifier(
        session_manager,
        leaderboard,
        max_skew_ms=settings.submission_max_skew_ms,
    )

    logger.info("arcade server ready", environment=settings.environment)
    return app


def get_app() -> Starlette:  # pragma: no cover
    """Factory function for uvicorn --factory arcade.server.app:get_app."""
    settings = ArcadeSettings()
    setup_logging(log_dir=settings.log_dir)
    return create_app(settings=settings)
