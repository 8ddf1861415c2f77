"""Tunable floors and ceilings for end-of-game validation.

Production is strict; every other environment is relaxed so local play and
automated tests are not rejected for being quick.
"""

from dataclasses import dataclass
from typing import Self


@dataclass(frozen=True)
class ValidationThresholds:
    min_duration_ms: int
    min_move_events: int
    min_move_interval_ms: int
    max_food_interval_ms: int  # at most one food per this many ms of play
    enforce_food_rate: bool

    @classmethod
    def for_environment(cls, environment: str) -> Self:
        if environment == "production":
            return cls(
                min_duration_ms=2000,
                min_move_events=5,
                min_move_interval_ms=50,
                max_food_interval_ms=200,
                enforce_food_rate=True,
            )
        return cls(
            min_duration_ms=500,
            min_move_events=3,
            min_move_interval_ms=30,
            max_food_interval_ms=80,
            enforce_food_rate=False,
        )
