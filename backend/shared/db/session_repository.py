"""SQLite-backed game session repository."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

import structlog

from shared.dal.models import GameSession
from shared.dal.session_repository import SessionRepository
from shared.db.leaderboard_repository import INSERT_ENTRY_SQL, entry_params

if TYPE_CHECKING:
    import sqlite3

    from shared.dal.models import LeaderboardEntry
    from shared.db.connection import Database

logger = structlog.get_logger()

_SESSION_COLUMNS = "id, secret, seed, created_at, expires_at, is_active, validated_score, submitted"


def _row_to_session(row: sqlite3.Row | tuple) -> GameSession:
    session_id, secret, seed, created_at, expires_at, is_active, validated_score, submitted = row
    return GameSession(
        session_id=session_id,
        secret=secret,
        seed=seed,
        created_at=created_at,
        expires_at=expires_at,
        is_active=bool(is_active),
        validated_score=validated_score,
        submitted=bool(submitted),
    )


class SqliteSessionRepository(SessionRepository):
    """SQLite implementation of SessionRepository.

    State transitions are single conditional UPDATE statements; the row count
    tells the caller whether its write won.
    """

    def __init__(self, db: Database) -> None:
        self._db = db
        self._lock = asyncio.Lock()

    async def create_session(self, session: GameSession) -> None:
        async with self._lock:
            with self._db.operation("create_session", write=True) as conn:
                conn.execute(
                    f"INSERT INTO game_sessions ({_SESSION_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?, ?)",  # noqa: S608
                    (
                        session.session_id,
                        session.secret,
                        session.seed,
                        session.created_at,
                        session.expires_at,
                        int(session.is_active),
                        session.validated_score,
                        int(session.submitted),
                    ),
                )

    async def get_session(self, session_id: str) -> GameSession | None:
        with self._db.operation("get_session") as conn:
            row = conn.execute(
                f"SELECT {_SESSION_COLUMNS} FROM game_sessions WHERE id = ?",  # noqa: S608
                (session_id,),
            ).fetchone()
        if row is None:
            return None
        return _row_to_session(row)

    async def finalize_session(self, session_id: str, validated_score: int, now: float) -> bool:
        """Deactivate an active, unexpired session and store its score. Returns whether it applied."""
        async with self._lock:
            with self._db.operation("finalize_session", write=True) as conn:
                cursor = conn.execute(
                    "UPDATE game_sessions SET is_active = 0, validated_score = ? "
                    "WHERE id = ? AND is_active = 1 AND expires_at >= ?",
                    (validated_score, session_id, now),
                )
        if cursor.rowcount == 0:
            logger.warning("finalize had no effect (not found, expired, or already finalized)")
            return False
        return True

    async def claim_submission(self, session_id: str, entry: LeaderboardEntry) -> bool:
        """Claim a finalized session and insert its entry. Returns False if it was already claimed."""
        async with self._lock:
            with self._db.operation("claim_submission", write=True) as conn:
                cursor = conn.execute(
                    "UPDATE game_sessions SET submitted = 1 WHERE id = ? AND is_active = 0 AND submitted = 0",
                    (session_id,),
                )
                if cursor.rowcount != 1:
                    return False
                conn.execute(INSERT_ENTRY_SQL, entry_params(entry))
        return True

    async def delete_expired(self, now: float) -> int:
        async with self._lock:
            with self._db.operation("delete_expired", write=True) as conn:
                cursor = conn.execute("DELETE FROM game_sessions WHERE expires_at < ?", (now,))
        return cursor.rowcount
