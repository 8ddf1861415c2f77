"""Outcomes reported by the integrity checks.

Rejections are values, not exceptions: every check reports a reason code and
the user-facing message that goes with it.
"""

from enum import StrEnum
from typing import Self

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class RejectionReason(StrEnum):
    SESSION_NOT_FOUND = "session_not_found"
    SESSION_NOT_ACTIVE = "session_not_active"
    SESSION_STILL_ACTIVE = "session_still_active"
    SIGNATURE_MISMATCH = "signature_mismatch"
    STALE_TIMESTAMP = "stale_timestamp"
    GAME_TOO_SHORT = "game_too_short"
    TOO_FEW_MOVES = "too_few_moves"
    EVENT_ORDERING_VIOLATION = "event_ordering_violation"
    MOVE_TOO_FAST = "move_too_fast"
    SCORE_MISMATCH = "score_mismatch"
    RATE_VIOLATION = "rate_violation"
    SCORE_DOES_NOT_MATCH_VALIDATED = "score_does_not_match_validated"
    SCORE_ALREADY_SUBMITTED = "score_already_submitted"

    @property
    def category(self) -> str:
        """Coarse rejection class; floors and pacing share one with their sibling codes."""
        return _REJECTION_CATEGORIES.get(self, self.value)


REJECTION_MESSAGES: dict[RejectionReason, str] = {
    RejectionReason.SESSION_NOT_FOUND: "Invalid game session",
    RejectionReason.SESSION_NOT_ACTIVE: "Game session is not active",
    RejectionReason.SESSION_STILL_ACTIVE: "Game session is still active",
    RejectionReason.SIGNATURE_MISMATCH: "Invalid signature",
    RejectionReason.STALE_TIMESTAMP: "Stale or invalid timestamp",
    RejectionReason.GAME_TOO_SHORT: "Game too short to be valid",
    RejectionReason.TOO_FEW_MOVES: "Too few moves recorded",
    RejectionReason.EVENT_ORDERING_VIOLATION: "Invalid event ordering",
    RejectionReason.MOVE_TOO_FAST: "Move too fast",
    RejectionReason.SCORE_MISMATCH: "Score does not match food events",
    RejectionReason.RATE_VIOLATION: "Unrealistic food consumption rate",
    RejectionReason.SCORE_DOES_NOT_MATCH_VALIDATED: "Submitted score does not match validated score",
    RejectionReason.SCORE_ALREADY_SUBMITTED: "Score already submitted for this session",
}

_REJECTION_CATEGORIES: dict[RejectionReason, str] = {
    RejectionReason.GAME_TOO_SHORT: "payload_too_short",
    RejectionReason.TOO_FEW_MOVES: "payload_too_short",
    RejectionReason.MOVE_TOO_FAST: "event_ordering_violation",
}


class _WireModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    def to_wire(self) -> dict[str, object]:
        return self.model_dump(by_alias=True, exclude_none=True)


class EndGameResult(_WireModel):
    success: bool
    validated_score: int | None = None
    message: str | None = None
    reason: RejectionReason | None = Field(default=None, exclude=True)

    @classmethod
    def accepted(cls, validated_score: int) -> Self:
        return cls(success=True, validated_score=validated_score)

    @classmethod
    def rejected(cls, reason: RejectionReason) -> Self:
        return cls(success=False, message=REJECTION_MESSAGES[reason], reason=reason)


class SubmissionResult(_WireModel):
    success: bool
    position: int | None = None  # 1-based rank within the visible board, 0 when unranked
    message: str | None = None
    reason: RejectionReason | None = Field(default=None, exclude=True)

    @classmethod
    def accepted(cls, position: int) -> Self:
        return cls(success=True, position=position)

    @classmethod
    def rejected(cls, reason: RejectionReason) -> Self:
        return cls(success=False, message=REJECTION_MESSAGES[reason], reason=reason)
