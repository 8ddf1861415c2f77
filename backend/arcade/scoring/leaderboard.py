"""Leaderboard ranking and qualification.

Ranking order everywhere: score descending, then entry timestamp ascending
(the earlier submission wins a tie). Only the top MAX_LEADERBOARD_SIZE
entries are visible, but every entry is kept.
"""

from __future__ import annotations

import re
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING
from uuid import uuid4

import structlog

from shared.dal.models import LeaderboardEntry

if TYPE_CHECKING:
    from collections.abc import Iterable

    from shared.dal.leaderboard_repository import LeaderboardRepository

MAX_LEADERBOARD_SIZE = 10
SCORE_QUALIFICATION_THRESHOLD = 100
NAME_LENGTH = 3
NAME_PAD_CHAR = "A"
UNRANKED_POSITION = 0

_NON_NAME_CHARS = re.compile(r"[^A-Z]")

logger = structlog.get_logger()


def sanitize_name(name: str) -> str:
    """Normalize a display name to exactly three uppercase letters."""
    letters = _NON_NAME_CHARS.sub("", name.upper())
    return letters[:NAME_LENGTH].ljust(NAME_LENGTH, NAME_PAD_CHAR)


def ranking_key(entry: LeaderboardEntry) -> tuple[int, int]:
    return -entry.score, entry.timestamp


def rank_entries(entries: Iterable[LeaderboardEntry]) -> list[LeaderboardEntry]:
    """Sort into ranking order. Stable, so store order settles exact ties."""
    return sorted(entries, key=ranking_key)


@dataclass(frozen=True)
class Qualification:
    qualifies: bool
    threshold: int


def qualification_for(score: int, ranked: list[LeaderboardEntry]) -> Qualification:
    """Decide whether score would earn a place on the board as it stands.

    On a full board the decision is "strictly beats the last visible score";
    the advertised threshold is never lower than the base value, but the
    decision does not re-apply that floor.
    """
    if not ranked:
        return Qualification(
            qualifies=score >= SCORE_QUALIFICATION_THRESHOLD,
            threshold=SCORE_QUALIFICATION_THRESHOLD,
        )

    if len(ranked) < MAX_LEADERBOARD_SIZE:
        lowest = ranked[-1].score
        return Qualification(
            qualifies=score >= SCORE_QUALIFICATION_THRESHOLD or score > lowest,
            threshold=max(lowest + 1, SCORE_QUALIFICATION_THRESHOLD),
        )

    last_visible = ranked[MAX_LEADERBOARD_SIZE - 1].score
    return Qualification(
        qualifies=score > last_visible,
        threshold=max(last_visible + 1, SCORE_QUALIFICATION_THRESHOLD),
    )


class LeaderboardEngine:
    def __init__(self, repository: LeaderboardRepository) -> None:
        self._repository = repository

    @staticmethod
    def new_entry(name: str, score: int) -> LeaderboardEntry:
        """Build a not-yet-stored entry with a sanitized name and the server's timestamp."""
        return LeaderboardEntry(
            id=str(uuid4()),
            name=sanitize_name(name),
            score=score,
            timestamp=int(time.time() * 1000),
        )

    async def add_score(self, name: str, score: int) -> int:
        """Insert a score and return its 1-based rank, or UNRANKED_POSITION outside the top ten."""
        entry = self.new_entry(name, score)
        await self._repository.add_entry(entry)
        return await self.position_of(entry)

    async def position_of(self, entry: LeaderboardEntry) -> int:
        """Rank of a stored entry, or UNRANKED_POSITION outside the top ten."""
        ranked = rank_entries(await self._repository.list_entries())
        rank = next((i for i, e in enumerate(ranked, start=1) if e.id == entry.id), None)
        logger.info("leaderboard entry ranked", name=entry.name, score=entry.score, rank=rank)
        if rank is None or rank > MAX_LEADERBOARD_SIZE:
            return UNRANKED_POSITION
        return rank

    async def get_board(self) -> list[LeaderboardEntry]:
        """The visible board, in ranking order."""
        ranked = rank_entries(await self._repository.list_entries())
        return ranked[:MAX_LEADERBOARD_SIZE]

    async def check_qualification(self, score: int) -> Qualification:
        ranked = rank_entries(await self._repository.list_entries())
        return qualification_for(score, ranked)
