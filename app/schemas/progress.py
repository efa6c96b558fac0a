"""
Pydantic models for progression request validation.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from app.progression.types import CompletionSource, ExerciseCategory, Mood

# Device clocks may run slightly ahead of the server
MAX_CLOCK_SKEW = timedelta(minutes=5)


def _default_now() -> datetime:
    return datetime.now(timezone.utc)


def _validate_event_date(value: datetime) -> datetime:
    # Clients without an offset are taken to mean UTC
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)

    if value > datetime.now(timezone.utc) + MAX_CLOCK_SKEW:
        raise ValueError("Event date cannot be in the future")

    return value


# =============================================================================
# Request Schemas
# =============================================================================

class ExerciseCompletedRequest(BaseModel):
    """POST /api/progress/exercises"""
    category: ExerciseCategory
    date: datetime = Field(default_factory=_default_now)
    source: CompletionSource = CompletionSource.CARD_VIEW

    @field_validator("date")
    @classmethod
    def date_not_in_future(cls, v: datetime) -> datetime:
        return _validate_event_date(v)


class MoodLoggedRequest(BaseModel):
    """POST /api/progress/moods"""
    mood: Mood
    date: datetime = Field(default_factory=_default_now)
    note: Optional[str] = Field(None, max_length=1000)

    @field_validator("date")
    @classmethod
    def date_not_in_future(cls, v: datetime) -> datetime:
        return _validate_event_date(v)
