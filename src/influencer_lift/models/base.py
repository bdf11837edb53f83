"""Base model with common configuration."""

from datetime import datetime

from pydantic import BaseModel as PydanticBaseModel
from pydantic import field_serializer


class BaseLiftModel(PydanticBaseModel):
    """Base model for all influencer-lift value objects.

    Every entity lives for exactly one attribution run and is never
    mutated, so all models are frozen.
    """

    model_config = {
        # Value objects are immutable once constructed
        "frozen": True,
        # Allow population by field name
        "populate_by_name": True,
        # Reject misspelled fields instead of silently dropping them
        "extra": "forbid",
    }


class TimeWindow(BaseLiftModel):
    """A half-open interval ``[start, end)``."""

    start: datetime
    end: datetime

    @field_serializer("start", "end")
    def serialize_datetime(self, dt: datetime) -> str:
        """Serialize datetime to ISO format."""
        return dt.isoformat()

    def covers(self, instant: datetime) -> bool:
        """Return True when the instant falls inside the window."""
        return self.start <= instant < self.end

    def overlaps(self, start: datetime, end: datetime) -> bool:
        """Return True when ``[start, end)`` intersects the window."""
        return start < self.end and self.start < end

    @property
    def duration_hours(self) -> float:
        return (self.end - self.start).total_seconds() / 3600.0
