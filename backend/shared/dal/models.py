"""Persistence models for the data access layer."""

from pydantic import BaseModel, Field

LEADERBOARD_NAME_PATTERN = r"^[A-Z]{3}$"


class GameSession(BaseModel, frozen=True):
    """One play session, from issuance to finalization."""

    session_id: str
    secret: str = Field(repr=False)  # issued once to the client, never logged
    seed: int = Field(ge=0, lt=2**32)
    created_at: float  # time.time()
    expires_at: float  # created_at + session TTL
    is_active: bool = True
    validated_score: int | None = None  # set exactly once, together with is_active=False
    submitted: bool = False  # a leaderboard entry has been claimed for this session


class LeaderboardEntry(BaseModel, frozen=True):
    """A ranked score. Never mutated or deleted once written."""

    id: str
    name: str = Field(pattern=LEADERBOARD_NAME_PATTERN)
    score: int = Field(ge=0)
    timestamp: int  # ms since epoch, assigned by the server on insert
