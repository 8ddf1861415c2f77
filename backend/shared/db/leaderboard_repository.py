"""SQLite-backed leaderboard repository."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

from shared.dal.leaderboard_repository import LeaderboardRepository
from shared.dal.models import LeaderboardEntry

if TYPE_CHECKING:
    from shared.db.connection import Database

INSERT_ENTRY_SQL = "INSERT INTO leaderboard_scores (id, name, score, created_at) VALUES (?, ?, ?, ?)"


def entry_params(entry: LeaderboardEntry) -> tuple[str, str, int, int]:
    return (entry.id, entry.name, entry.score, entry.timestamp)


class SqliteLeaderboardRepository(LeaderboardRepository):
    """SQLite implementation of LeaderboardRepository.

    Rows are append-only. The autoincrement seq column records insertion
    order and settles entries that share both score and timestamp.
    """

    def __init__(self, db: Database) -> None:
        self._db = db
        self._lock = asyncio.Lock()

    async def add_entry(self, entry: LeaderboardEntry) -> None:
        async with self._lock:
            with self._db.operation("add_entry", write=True) as conn:
                conn.execute(INSERT_ENTRY_SQL, entry_params(entry))

    async def list_entries(self) -> list[LeaderboardEntry]:
        with self._db.operation("list_entries") as conn:
            rows = conn.execute(
                "SELECT id, name, score, created_at FROM leaderboard_scores ORDER BY score DESC, created_at ASC, seq ASC",
            ).fetchall()
        return [LeaderboardEntry(id=row[0], name=row[1], score=row[2], timestamp=row[3]) for row in rows]

    async def count_entries(self) -> int:
        with self._db.operation("count_entries") as conn:
            row = conn.execute("SELECT COUNT(*) FROM leaderboard_scores").fetchone()
        return row[0]
