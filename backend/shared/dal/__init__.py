"""Data access layer: repository interfaces and shared persistence models."""

from shared.dal.leaderboard_repository import LeaderboardRepository
from shared.dal.models import GameSession, LeaderboardEntry
from shared.dal.session_repository import SessionRepository

__all__ = [
    "GameSession",
    "LeaderboardEntry",
    "LeaderboardRepository",
    "SessionRepository",
]
