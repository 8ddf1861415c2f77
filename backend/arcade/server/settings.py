"""Arcade server configuration via environment variables."""

import json
from typing import Annotated, Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode

from arcade.integrity.thresholds import ValidationThresholds


def parse_origins(value: str | list[str]) -> list[str]:
    """Accept a list, a JSON array string, or a comma-separated string."""
    if isinstance(value, list):
        return value
    stripped = value.strip()
    if not stripped:
        return []
    if stripped.startswith("["):
        try:
            parsed = json.loads(stripped)
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid JSON array: {e}") from e
        if not isinstance(parsed, list) or not all(isinstance(item, str) for item in parsed):
            raise ValueError("JSON value must be an array of strings")
        return parsed
    return [origin.strip() for origin in stripped.split(",") if origin.strip()]


class ArcadeSettings(BaseSettings):
    model_config = {"env_prefix": "ARCADE_"}

    environment: Literal["development", "test", "production"] = "development"
    database_path: str = Field(default="backend/storage.db", min_length=1)
    log_dir: str = Field(default="backend/logs/arcade", min_length=1)
    cors_origins: Annotated[list[str], NoDecode] = []
    session_ttl_seconds: int = Field(default=3600, ge=60)  # 1 hour default, min 60s
    session_cleanup_interval_seconds: int = Field(default=300, ge=1)
    submission_max_skew_ms: int = Field(default=120_000, ge=1000)

    @field_validator("cors_origins", mode="before")
    @classmethod
    def validate_cors_origins(cls, v: str | list[str]) -> list[str]:
        return parse_origins(v)

    @property
    def thresholds(self) -> ValidationThresholds:
        return ValidationThresholds.for_environment(self.environment)
