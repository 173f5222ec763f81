# core/config.py
"""
Runtime configuration for FaceRecall.

Values come from environment variables prefixed with FACERECALL_, e.g.
FACERECALL_AUTO_ACCEPT_THRESHOLD=0.9. Thresholds are expressed in the
[0, 1] similarity convention used by core.face.similarity.similarity().
"""

from __future__ import annotations

from functools import lru_cache

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from core.errors import InvalidThreshold

# Allowed range for the auto-accept threshold.
MIN_AUTO_ACCEPT = 0.70
MAX_AUTO_ACCEPT = 0.99

# Scores at or below this are never surfaced as a suggestion.
DEFAULT_REVIEW_FLOOR = 0.55
DEFAULT_AUTO_ACCEPT = 0.85


def validate_threshold(value: float) -> float:
    """Return value unchanged, or raise InvalidThreshold if out of range."""
    if not (MIN_AUTO_ACCEPT <= value <= MAX_AUTO_ACCEPT):
        raise InvalidThreshold(value, MIN_AUTO_ACCEPT, MAX_AUTO_ACCEPT)
    return value


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_prefix="FACERECALL_")

    # SQLite file by default. Swap for postgresql+psycopg2://... in deployment.
    database_url: str = "sqlite:///./facerecall.db"

    auto_accept_threshold: float = Field(
        default=DEFAULT_AUTO_ACCEPT,
        description="Similarity at or above which a face is auto-labeled",
    )
    review_floor: float = Field(
        default=DEFAULT_REVIEW_FLOOR,
        description="Similarity at or below which no suggestion is shown",
    )
    quiz_distractor_count: int = Field(default=3, ge=0)

    # Open quiz sessions are dropped after this long without an answer,
    # and the oldest are dropped beyond the cap.
    quiz_session_ttl_seconds: float = Field(default=3600.0, gt=0)
    quiz_max_open_sessions: int = Field(default=256, ge=1)

    # Threads used to score people in parallel; 1 disables the pool.
    match_workers: int = Field(default=1, ge=1)

    @field_validator("auto_accept_threshold")
    @classmethod
    def _check_threshold(cls, value: float) -> float:
        # InvalidThreshold subclasses ValueError, so pydantic wraps it in a
        # ValidationError at load time.
        return validate_threshold(value)

    @model_validator(mode="after")
    def _check_floor(self) -> "Settings":
        if not (0.0 <= self.review_floor < self.auto_accept_threshold):
            raise ValueError("review_floor must be in [0, auto_accept_threshold)")
        return self


@lru_cache()
def get_settings() -> Settings:
    return Settings()
