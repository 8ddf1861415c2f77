"""SQLite database connection and schema management."""

import contextlib
import os
import sqlite3
from collections.abc import Iterator
from pathlib import Path

import structlog

from shared.errors import StoreUnavailableError

logger = structlog.get_logger()

_DB_FILE_PERMISSIONS = 0o600

_SCHEMA_SQL = """\
CREATE TABLE IF NOT EXISTS game_sessions (
    id TEXT PRIMARY KEY,
    secret TEXT NOT NULL,
    seed INTEGER NOT NULL,
    created_at REAL NOT NULL,
    expires_at REAL NOT NULL,
    is_active INTEGER NOT NULL DEFAULT 1,
    validated_score INTEGER,
    submitted INTEGER NOT NULL DEFAULT 0
);

CREATE INDEX IF NOT EXISTS idx_game_sessions_expires_at
    ON game_sessions (expires_at);

CREATE TABLE IF NOT EXISTS leaderboard_scores (
    seq INTEGER PRIMARY KEY AUTOINCREMENT,
    id TEXT NOT NULL UNIQUE,
    name TEXT NOT NULL,
    score INTEGER NOT NULL,
    created_at INTEGER NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_leaderboard_scores_score
    ON leaderboard_scores (score DESC, created_at ASC);
"""


MEMORY_PATH = ":memory:"

_PRAGMAS = (
    "PRAGMA journal_mode=WAL",
    "PRAGMA busy_timeout=5000",
)

# the -wal and -shm siblings hold the same session secrets as the main file
_DB_FILE_SUFFIXES = ("", "-wal", "-shm")


class Database:
    """One SQLite connection holding sessions and leaderboard entries.

    Repositories never touch the connection directly; they go through
    :meth:`operation`, which turns any SQLite failure into
    StoreUnavailableError.
    """

    def __init__(self, path: str | Path) -> None:
        self._path = str(path)
        self._conn: sqlite3.Connection | None = None

    @property
    def in_memory(self) -> bool:
        return self._path == MEMORY_PATH

    @property
    def connection(self) -> sqlite3.Connection:
        if self._conn is None:
            raise RuntimeError(f"Database {self._path} is not connected")
        return self._conn

    def connect(self) -> None:
        if not self.in_memory:
            Path(self._path).parent.mkdir(parents=True, exist_ok=True)

        conn = sqlite3.connect(self._path, check_same_thread=False)
        for pragma in _PRAGMAS:
            conn.execute(pragma)
        conn.executescript(_SCHEMA_SQL)
        self._conn = conn

        if not self.in_memory:
            self._restrict_file_modes()
        logger.info("database connected", path=self._path)

    @contextlib.contextmanager
    def operation(self, name: str, *, write: bool = False) -> Iterator[sqlite3.Connection]:
        """Yield the connection for one named store operation.

        Writes are committed when the block exits cleanly and rolled back when
        SQLite raises. A closed database counts as unavailable too.
        """
        conn = self._conn
        if conn is None:
            logger.error("store operation on closed database", operation=name)
            raise StoreUnavailableError(name)

        try:
            yield conn
            if write:
                conn.commit()
        except sqlite3.Error as exc:
            if write:
                with contextlib.suppress(sqlite3.Error):
                    conn.rollback()
            logger.exception("store operation failed", operation=name)
            raise StoreUnavailableError(name) from exc

    def close(self) -> None:
        conn, self._conn = self._conn, None
        if conn is not None:
            conn.close()
            logger.info("database closed", path=self._path)

    def _restrict_file_modes(self) -> None:
        if os.name != "posix":  # pragma: no cover
            return
        for suffix in _DB_FILE_SUFFIXES:
            target = Path(self._path + suffix)
            if not target.exists():
                continue
            try:
                target.chmod(_DB_FILE_PERMISSIONS)
            except OSError as exc:
                logger.warning("could not restrict database file mode", path=str(target), error=str(exc))
