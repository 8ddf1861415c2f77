"""Request bodies accepted by the arcade server.

Unknown fields, wrong types, fractional or negative numbers are all rejected
before any integrity check runs.
"""

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from arcade.events import FoodEvent, MoveEvent

MAX_EVENTS_PER_GAME = 20_000
MAX_SIGNATURE_LENGTH = 128


class _RequestModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")


class EndGameRequest(_RequestModel):
    session_id: str = Field(min_length=1, max_length=100)
    signature: str = Field(min_length=1, max_length=MAX_SIGNATURE_LENGTH)
    final_score: int = Field(ge=0, strict=True)
    events: list[MoveEvent] = Field(default_factory=list, max_length=MAX_EVENTS_PER_GAME)
    foods: list[FoodEvent] = Field(default_factory=list, max_length=MAX_EVENTS_PER_GAME)
    duration_ms: int = Field(default=0, ge=0, strict=True)


class SubmitScoreRequest(_RequestModel):
    """Score submission. session_id, timestamp and signature are optional only so the
    handler can give the legacy unsigned shape a specific rejection message."""

    name: str = Field(min_length=1, max_length=32)
    score: int = Field(ge=0, strict=True)
    session_id: str | None = Field(default=None, min_length=1, max_length=100)
    timestamp: int | None = Field(default=None, strict=True)
    signature: str | None = Field(default=None, min_length=1, max_length=MAX_SIGNATURE_LENGTH)
