"""Tests for DAL persistence models."""

import pytest
from pydantic import ValidationError

from shared.dal.models import GameSession, LeaderboardEntry


class TestGameSession:
    def test_secret_hidden_from_repr(self):
        session = GameSession(session_id="s1", secret="topsecret", seed=1, created_at=0.0, expires_at=3600.0)
        assert "topsecret" not in repr(session)

    def test_defaults_to_active_and_unscored(self):
        session = GameSession(session_id="s1", secret="x", seed=1, created_at=0.0, expires_at=3600.0)
        assert session.is_active is True
        assert session.validated_score is None
        assert session.submitted is False

    def test_seed_must_fit_in_32_bits(self):
        with pytest.raises(ValidationError):
            GameSession(session_id="s1", secret="x", seed=2**32, created_at=0.0, expires_at=1.0)


class TestLeaderboardEntry:
    def test_accepts_three_uppercase_letters(self):
        entry = LeaderboardEntry(id="e1", name="ABC", score=0, timestamp=1)
        assert entry.name == "ABC"

    @pytest.mark.parametrize("name", ["AB", "ABCD", "abc", "A1C"])
    def test_rejects_unsanitized_names(self, name):
        with pytest.raises(ValidationError):
            LeaderboardEntry(id="e1", name=name, score=10, timestamp=1)

    def test_rejects_negative_score(self):
        with pytest.raises(ValidationError):
            LeaderboardEntry(id="e1", name="ABC", score=-1, timestamp=1)
