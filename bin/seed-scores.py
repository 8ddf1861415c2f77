"""Fill an empty leaderboard with the default demo scores.

Usage: python bin/seed-scores.py

Refuses to touch a leaderboard that already has entries.
"""

import asyncio
import sys
import time
from pathlib import Path
from uuid import uuid4

# Add backend to path for imports
sys.path.insert(0, str(Path(__file__).resolve().parent.parent / "backend"))

from arcade.server.settings import ArcadeSettings
from shared.dal import LeaderboardEntry
from shared.db import Database, SqliteLeaderboardRepository

SEED_SCORES = [
    ("AAA", 1250),
    ("BBB", 1080),
    ("CCC", 950),
    ("DDD", 870),
    ("EEE", 750),
    ("FFF", 680),
    ("GGG", 590),
    ("HHH", 520),
    ("III", 450),
    ("JJJ", 100),
]


async def seed(repository: SqliteLeaderboardRepository) -> int:
    """Insert the seed scores. Returns the number inserted, 0 if the board was not empty."""
    if await repository.count_entries() > 0:
        return 0

    base_ms = int(time.time() * 1000)
    for offset, (name, score) in enumerate(SEED_SCORES):
        entry = LeaderboardEntry(id=str(uuid4()), name=name, score=score, timestamp=base_ms + offset)
        await repository.add_entry(entry)
    return len(SEED_SCORES)


async def main() -> None:
    settings = ArcadeSettings()

    db = Database(settings.database_path)
    db.connect()
    try:
        inserted = await seed(SqliteLeaderboardRepository(db))
    finally:
        db.close()

    if inserted == 0:
        print("Leaderboard already has entries, nothing seeded.")
        sys.exit(1)
    print(f"Seeded {inserted} leaderboard entries into {settings.database_path}")


if __name__ == "__main__":
    asyncio.run(main())
