"""Game session issuance, lookup, and finalization."""

from __future__ import annotations

import asyncio
import contextlib
import secrets
import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING
from uuid import uuid4

import structlog

from shared.dal.models import GameSession
from shared.errors import StoreUnavailableError

if TYPE_CHECKING:
    from shared.dal.models import LeaderboardEntry
    from shared.dal.session_repository import SessionRepository

CLEANUP_INTERVAL_SECONDS = 300
DEFAULT_SESSION_TTL_SECONDS = 3600  # 1 hour
SECRET_BYTES = 32  # 256 bits
SEED_BITS = 32

logger = structlog.get_logger()


@dataclass(frozen=True)
class SessionGrant:
    """What the client receives from create(). The only copy of the secret it will ever get."""

    session_id: str
    secret: str = field(repr=False)
    seed: int


class SessionManager:
    """Create, look up, and finalize play sessions.

    A session moves from active to finalized exactly once. Expired sessions
    are indistinguishable from unknown ones. Call start_cleanup() on app
    startup and stop_cleanup() on shutdown to purge them periodically.
    """

    def __init__(
        self,
        repository: SessionRepository,
        ttl_seconds: int = DEFAULT_SESSION_TTL_SECONDS,
        cleanup_interval_seconds: float = CLEANUP_INTERVAL_SECONDS,
    ) -> None:
        self._repository = repository
        self._ttl_seconds = ttl_seconds
        self._cleanup_interval_seconds = cleanup_interval_seconds
        self._cleanup_task: asyncio.Task[None] | None = None

    async def create(self) -> SessionGrant:
        """Issue a fresh session with its own secret and seed."""
        now = time.time()
        session = GameSession(
            session_id=str(uuid4()),
            secret=secrets.token_hex(SECRET_BYTES),
            seed=secrets.randbits(SEED_BITS),
            created_at=now,
            expires_at=now + self._ttl_seconds,
        )
        await self._repository.create_session(session)
        logger.info("game session created", session_id=session.session_id)
        return SessionGrant(session_id=session.session_id, secret=session.secret, seed=session.seed)

    async def get(self, session_id: str) -> GameSession | None:
        """Return the session, or None when it is unknown or expired."""
        session = await self._repository.get_session(session_id)
        if session is None:
            return None
        if time.time() > session.expires_at:
            return None
        return session

    async def finalize(self, session_id: str, validated_score: int) -> bool:
        """Deactivate the session and record its validated score.

        Returns False when another request already finalized it (or it
        expired in between); only one caller can ever win.
        """
        finalized = await self._repository.finalize_session(session_id, validated_score, time.time())
        if finalized:
            logger.info("game session finalized", session_id=session_id, validated_score=validated_score)
        return finalized

    async def claim_submission(self, session_id: str, entry: LeaderboardEntry) -> bool:
        """Spend the session's single submission on this leaderboard entry."""
        claimed = await self._repository.claim_submission(session_id, entry)
        if claimed:
            logger.info("score submission recorded", session_id=session_id, entry_id=entry.id)
        return claimed

    async def cleanup_expired(self) -> int:
        """Purge sessions past their TTL and return how many went."""
        removed = await self._repository.delete_expired(time.time())
        if removed:
            logger.info("cleaned up expired sessions", count=removed)
        return removed

    def start_cleanup(self) -> None:
        """Launch the background sweep unless one is already running."""
        if self._cleanup_task is not None and not self._cleanup_task.done():
            return
        self._cleanup_task = asyncio.create_task(self._cleanup_loop())

    async def stop_cleanup(self) -> None:
        """Cancel the background sweep and wait for it to exit."""
        if self._cleanup_task is not None:
            self._cleanup_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._cleanup_task
            self._cleanup_task = None

    async def _cleanup_loop(self) -> None:
        while True:
            await asyncio.sleep(self._cleanup_interval_seconds)
            try:
                await self.cleanup_expired()
            except StoreUnavailableError:
                logger.warning("session cleanup skipped, store unavailable")
