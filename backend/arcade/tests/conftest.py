from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from arcade.integrity.thresholds import ValidationThresholds
from arcade.integrity.validator import IntegrityValidator
from arcade.scoring.leaderboard import LeaderboardEngine
from arcade.scoring.submission import ScoreSubmissionVerifier
from arcade.session.manager import SessionManager
from shared.db import Database, SqliteLeaderboardRepository, SqliteSessionRepository

if TYPE_CHECKING:
    from pathlib import Path


@pytest.fixture
def db(tmp_path: Path):
    database = Database(tmp_path / "arcade.db")
    database.connect()
    yield database
    database.close()


@pytest.fixture
def session_manager(db: Database) -> SessionManager:
    return SessionManager(SqliteSessionRepository(db))


@pytest.fixture
def leaderboard(db: Database) -> LeaderboardEngine:
    return LeaderboardEngine(SqliteLeaderboardRepository(db))


@pytest.fixture
def production_validator(session_manager: SessionManager) -> IntegrityValidator:
    return IntegrityValidator(session_manager, ValidationThresholds.for_environment("production"))


@pytest.fixture
def development_validator(session_manager: SessionManager) -> IntegrityValidator:
    return IntegrityValidator(session_manager, ValidationThresholds.for_environment("development"))


@pytest.fixture
def verifier(session_manager: SessionManager, leaderboard: LeaderboardEngine) -> ScoreSubmissionVerifier:
    return ScoreSubmissionVerifier(session_manager, leaderboard)
