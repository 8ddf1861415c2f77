"""Builders for signed plays used across arcade tests."""

from arcade.events import Direction, FoodEvent, MoveEvent
from arcade.integrity.validator import end_game_payload
from arcade.scoring.submission import submission_payload
from shared.signing import compute_signature

_DIRECTIONS = (Direction.UP, Direction.DOWN, Direction.LEFT, Direction.RIGHT)


def moves(count: int, *, start: int = 0, gap: int = 120) -> list[MoveEvent]:
    """Moves cycling UP, DOWN, LEFT, RIGHT; the default gap passes every threshold profile."""
    return [MoveEvent(t=start + i * gap, k=_DIRECTIONS[i % 4]) for i in range(count)]


def foods(count: int, *, golden: bool = False, start: int = 100, gap: int = 250) -> list[FoodEvent]:
    return [FoodEvent(t=start + i * gap, g=golden) for i in range(count)]


def sample_foods() -> list[FoodEvent]:
    """One regular and one golden food: 60 points."""
    return [FoodEvent(t=200, g=False), FoodEvent(t=400, g=True)]


def sign_end_game(
    secret: str,
    session_id: str,
    final_score: int,
    events: list[MoveEvent],
    food_events: list[FoodEvent],
    duration_ms: int,
) -> str:
    return compute_signature(secret, end_game_payload(session_id, final_score, events, food_events, duration_ms))


def sign_submission(secret: str, session_id: str, name: str, score: int, timestamp: int) -> str:
    return compute_signature(secret, submission_payload(session_id, name, score, timestamp))


def end_game_body(
    secret: str,
    session_id: str,
    final_score: int,
    events: list[MoveEvent],
    food_events: list[FoodEvent],
    duration_ms: int,
) -> dict[str, object]:
    """JSON body for POST /game/end."""
    return {
        "sessionId": session_id,
        "signature": sign_end_game(secret, session_id, final_score, events, food_events, duration_ms),
        "finalScore": final_score,
        "events": [event.model_dump(mode="json") for event in events],
        "foods": [food.model_dump(mode="json") for food in food_events],
        "durationMs": duration_ms,
    }
