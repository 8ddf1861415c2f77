"""Client-side event recording for one play.

The recorder starts with the game, which is usually before the server has
answered the start-session call. Events recorded in that window are queued in
a small bounded buffer and replayed, with their original timestamps, once a
session is attached.
"""

from __future__ import annotations

import time
from collections import deque
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import structlog

from arcade.events import Direction, FoodEvent, MoveEvent, score_for_foods
from arcade.integrity.validator import end_game_payload
from shared.signing import compute_signature

if TYPE_CHECKING:
    from collections.abc import Callable

PENDING_EVENT_LIMIT = 64
MIN_CLIENT_MOVE_GAP_MS = 100  # at most 10 recorded moves per second

logger = structlog.get_logger()


@dataclass(frozen=True)
class SessionContext:
    """Credentials for one play, returned by start_session and owned by the caller."""

    session_id: str
    secret: str = field(repr=False)
    seed: int


@dataclass(frozen=True)
class SignedEndGame:
    """An end-of-game request body and the signature over it."""

    session_id: str
    final_score: int
    events: tuple[MoveEvent, ...]
    foods: tuple[FoodEvent, ...]
    duration_ms: int
    signature: str

    def to_wire(self) -> dict[str, object]:
        return {
            "sessionId": self.session_id,
            "signature": self.signature,
            "finalScore": self.final_score,
            "events": [event.model_dump(mode="json") for event in self.events],
            "foods": [food.model_dump(mode="json") for food in self.foods],
            "durationMs": self.duration_ms,
        }


class PlayRecorder:
    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._started_at = clock()
        self._context: SessionContext | None = None
        self._events: list[MoveEvent] = []
        self._foods: list[FoodEvent] = []
        self._pending: deque[MoveEvent | FoodEvent] = deque(maxlen=PENDING_EVENT_LIMIT)
        self._last_move_ms: int | None = None

    @property
    def context(self) -> SessionContext | None:
        return self._context

    @property
    def events(self) -> list[MoveEvent]:
        return list(self._events)

    @property
    def foods(self) -> list[FoodEvent]:
        return list(self._foods)

    def elapsed_ms(self) -> int:
        return round((self._clock() - self._started_at) * 1000)

    def attach(self, context: SessionContext) -> None:
        """Bind the session and replay anything recorded before it existed."""
        self._context = context
        if self._pending:
            logger.debug("replaying pending events", count=len(self._pending))
        while self._pending:
            self._append(self._pending.popleft())

    def record_move(self, direction: Direction) -> bool:
        """Record a direction change. Returns False when throttled."""
        t = self.elapsed_ms()
        if self._last_move_ms is not None and t - self._last_move_ms < MIN_CLIENT_MOVE_GAP_MS:
            return False
        self._last_move_ms = t
        self._record(MoveEvent(t=t, k=direction))
        return True

    def record_food(self, *, golden: bool) -> None:
        self._record(FoodEvent(t=self.elapsed_ms(), g=golden))

    def computed_score(self) -> int:
        """The score the server will derive from the recorded foods."""
        return score_for_foods(self._foods)

    def sign_end_game(self, final_score: int) -> SignedEndGame:
        """Build and sign the end-of-game payload (signature #1)."""
        context = self._require_context()
        if final_score != self.computed_score():
            logger.warning("final score differs from food events", final_score=final_score, computed=self.computed_score())
        events = tuple(self._events)
        foods = tuple(self._foods)
        duration_ms = self.elapsed_ms()
        payload = end_game_payload(context.session_id, final_score, events, foods, duration_ms)
        return SignedEndGame(
            session_id=context.session_id,
            final_score=final_score,
            events=events,
            foods=foods,
            duration_ms=duration_ms,
            signature=compute_signature(context.secret, payload),
        )

    def _record(self, event: MoveEvent | FoodEvent) -> None:
        if self._context is None:
            if len(self._pending) == self._pending.maxlen:
                logger.warning("pending event buffer full, dropping oldest event")
            self._pending.append(event)
            return
        self._append(event)

    def _append(self, event: MoveEvent | FoodEvent) -> None:
        if isinstance(event, MoveEvent):
            self._events.append(event)
        else:
            self._foods.append(event)

    def _require_context(self) -> SessionContext:
        if self._context is None:
            raise RuntimeError("No session attached to this recorder")
        return self._context
