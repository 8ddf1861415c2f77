"""Abstract interface for game session persistence."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from shared.dal.models import GameSession, LeaderboardEntry


class SessionRepository(ABC):
    """Abstract interface for game session persistence.

    The state transitions (finalize_session, claim_submission) must each be a
    single atomic conditional write: of two concurrent calls for the same
    session at most one returns True.
    """

    @abstractmethod
    async def create_session(self, session: GameSession) -> None: ...

    @abstractmethod
    async def get_session(self, session_id: str) -> GameSession | None: ...

    @abstractmethod
    async def finalize_session(self, session_id: str, validated_score: int, now: float) -> bool: ...

    @abstractmethod
    async def claim_submission(self, session_id: str, entry: LeaderboardEntry) -> bool:
        """Mark the session submitted and store its leaderboard entry.

        Both writes land in one transaction; a store failure leaves the
        session unclaimed so the submission can be retried.
        """

    @abstractmethod
    async def delete_expired(self, now: float) -> int: ...
