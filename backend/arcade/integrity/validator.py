"""End-of-game integrity validation.

The server never runs the game. It receives the client's claimed final score
plus the move and food logs, signed with the session secret, and decides
whether the score is believable:

1. the session exists and is still active,
2. the signature matches the canonical payload,
3. the game lasted long enough and recorded enough moves,
4. moves are strictly ordered and not faster than a human can press keys,
5. the food log explains the claimed score exactly,
6. (production) no more food was eaten than the duration allows.

This is a statistical check, not a replay: a forger who fabricates a
self-consistent, well-paced log will pass. The seed is not re-derived.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from arcade.events import score_for_foods
from arcade.results import EndGameResult, RejectionReason
from shared.signing import verify_signature

if TYPE_CHECKING:
    from collections.abc import Sequence

    from arcade.events import FoodEvent, MoveEvent
    from arcade.integrity.thresholds import ValidationThresholds
    from arcade.session.manager import SessionManager

logger = structlog.get_logger()


def end_game_payload(
    session_id: str,
    final_score: int,
    events: Sequence[MoveEvent],
    foods: Sequence[FoodEvent],
    duration_ms: int,
) -> dict[str, object]:
    """The exact structure covered by the end-of-game signature."""
    return {
        "sessionId": session_id,
        "finalScore": final_score,
        "events": list(events),
        "foods": list(foods),
        "durationMs": duration_ms,
    }


def check_move_pacing(events: Sequence[MoveEvent], min_interval_ms: int) -> RejectionReason | None:
    """Reject logs whose moves go backwards in time or arrive at bot speed."""
    for prev, curr in zip(events, events[1:], strict=False):
        if curr.t <= prev.t:
            return RejectionReason.EVENT_ORDERING_VIOLATION
        if curr.t - prev.t < min_interval_ms:
            return RejectionReason.MOVE_TOO_FAST
    return None


def check_food_rate(food_count: int, duration_ms: int, max_food_interval_ms: int) -> RejectionReason | None:
    if food_count > duration_ms // max_food_interval_ms:
        return RejectionReason.RATE_VIOLATION
    return None


class IntegrityValidator:
    def __init__(self, session_manager: SessionManager, thresholds: ValidationThresholds) -> None:
        self._sessions = session_manager
        self._thresholds = thresholds

    async def end_session(
        self,
        session_id: str,
        signature: str,
        final_score: int,
        events: Sequence[MoveEvent],
        foods: Sequence[FoodEvent],
        duration_ms: int,
    ) -> EndGameResult:
        """Validate a finished game and finalize its session on success.

        Checks run in order and stop at the first failure. Failures are
        returned, never raised; only store errors propagate.
        """
        session = await self._sessions.get(session_id)
        if session is None:
            return self._reject(RejectionReason.SESSION_NOT_FOUND)
        if not session.is_active:
            return self._reject(RejectionReason.SESSION_NOT_ACTIVE)

        payload = end_game_payload(session_id, final_score, events, foods, duration_ms)
        if not verify_signature(session.secret, payload, signature):
            return self._reject(RejectionReason.SIGNATURE_MISMATCH)

        reason = self._check_gameplay(final_score, events, foods, duration_ms)
        if reason is not None:
            return self._reject(reason)

        if not await self._sessions.finalize(session_id, final_score):
            # Lost a race with a concurrent end-of-game request for the same session.
            return self._reject(RejectionReason.SESSION_NOT_ACTIVE)

        return EndGameResult.accepted(final_score)

    def _check_gameplay(
        self,
        final_score: int,
        events: Sequence[MoveEvent],
        foods: Sequence[FoodEvent],
        duration_ms: int,
    ) -> RejectionReason | None:
        limits = self._thresholds
        if duration_ms < limits.min_duration_ms:
            return RejectionReason.GAME_TOO_SHORT
        if len(events) < limits.min_move_events:
            return RejectionReason.TOO_FEW_MOVES

        pacing = check_move_pacing(events, limits.min_move_interval_ms)
        if pacing is not None:
            return pacing

        if score_for_foods(foods) != final_score:
            return RejectionReason.SCORE_MISMATCH

        if limits.enforce_food_rate:
            return check_food_rate(len(foods), duration_ms, limits.max_food_interval_ms)
        return None

    @staticmethod
    def _reject(reason: RejectionReason) -> EndGameResult:
        logger.info("end of game rejected", reason=reason, category=reason.category)
        return EndGameResult.rejected(reason)
