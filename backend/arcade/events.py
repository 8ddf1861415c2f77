"""Gameplay events recorded by the client and embedded in the signed end-of-game payload.

Wire keys are deliberately terse (t, k, g) because the client signs them as-is.
"""

from collections.abc import Iterable
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field

# Point values are part of the protocol: client scoring and server recomputation must agree.
REGULAR_FOOD_POINTS = 10
GOLDEN_FOOD_POINTS = 50


class Direction(StrEnum):
    UP = "UP"
    DOWN = "DOWN"
    LEFT = "LEFT"
    RIGHT = "RIGHT"


class MoveEvent(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    t: int = Field(ge=0, strict=True)  # ms since session start
    k: Direction


class FoodEvent(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    t: int = Field(ge=0, strict=True)  # ms since session start
    g: bool = Field(strict=True)  # golden food


def score_for_foods(foods: Iterable[FoodEvent]) -> int:
    """Score explained by a list of food events."""
    return sum(GOLDEN_FOOD_POINTS if food.g else REGULAR_FOOD_POINTS for food in foods)
