"""Signed score submission: binds a finalized session's score to a display name."""

from __future__ import annotations

import time
from typing import TYPE_CHECKING

import structlog

from arcade.results import RejectionReason, SubmissionResult
from shared.signing import verify_signature

if TYPE_CHECKING:
    from arcade.scoring.leaderboard import LeaderboardEngine
    from arcade.session.manager import SessionManager

DEFAULT_MAX_SKEW_MS = 2 * 60 * 1000  # 2 minutes

logger = structlog.get_logger()


def submission_payload(session_id: str, name: str, score: int, timestamp: int) -> dict[str, object]:
    """The structure covered by the submission signature (the raw, unsanitized name)."""
    return {"sessionId": session_id, "name": name, "score": score, "timestamp": timestamp}


class ScoreSubmissionVerifier:
    """Second-stage check between end-of-game validation and the leaderboard.

    The signature here covers a different payload than the end-of-game one,
    so knowing one signature does not help forge the other.
    """

    def __init__(
        self,
        session_manager: SessionManager,
        leaderboard: LeaderboardEngine,
        max_skew_ms: int = DEFAULT_MAX_SKEW_MS,
    ) -> None:
        self._sessions = session_manager
        self._leaderboard = leaderboard
        self._max_skew_ms = max_skew_ms

    async def submit(
        self,
        session_id: str,
        name: str,
        score: int,
        timestamp: int,
        signature: str,
    ) -> SubmissionResult:
        session = await self._sessions.get(session_id)
        if session is None:
            return self._reject(RejectionReason.SESSION_NOT_FOUND)
        if session.is_active:
            return self._reject(RejectionReason.SESSION_STILL_ACTIVE)
        if session.validated_score != score:
            return self._reject(RejectionReason.SCORE_DOES_NOT_MATCH_VALIDATED)

        now_ms = int(time.time() * 1000)
        if abs(now_ms - timestamp) > self._max_skew_ms:
            return self._reject(RejectionReason.STALE_TIMESTAMP)

        payload = submission_payload(session_id, name, score, timestamp)
        if not verify_signature(session.secret, payload, signature):
            return self._reject(RejectionReason.SIGNATURE_MISMATCH)

        entry = self._leaderboard.new_entry(name, score)
        if not await self._sessions.claim_submission(session_id, entry):
            return self._reject(RejectionReason.SCORE_ALREADY_SUBMITTED)

        position = await self._leaderboard.position_of(entry)
        return SubmissionResult.accepted(position)

    @staticmethod
    def _reject(reason: RejectionReason) -> SubmissionResult:
        logger.info("score submission rejected", reason=reason, category=reason.category)
        return SubmissionResult.rejected(reason)
