"""Abstract interface for leaderboard persistence."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from shared.dal.models import LeaderboardEntry


class LeaderboardRepository(ABC):
    """Append-only score storage with an indexed read of every entry by score."""

    @abstractmethod
    async def add_entry(self, entry: LeaderboardEntry) -> None: ...

    @abstractmethod
    async def list_entries(self) -> list[LeaderboardEntry]:
        """Return every entry, highest score first, insertion order within equal scores."""

    @abstractmethod
    async def count_entries(self) -> int: ...
