"""Analytics model definitions."""
from enum import Enum

from pydantic import BaseModel, Field


class TimeRange(str, Enum):
    """Range keywords accepted by the time aggregator."""

    DAY = "day"
    WEEK = "week"
    MONTH = "month"
    QUARTER = "quarter"


class TimeBucket(BaseModel):
    """Hours worked in one calendar-aligned window."""

    period: str
    time: float


class TimeData(BaseModel):
    """Dashboard payload for a card's tracked time."""

    buckets: list[TimeBucket]
    total_entries: int = Field(alias="totalEntries")
    total_time_hours: float = Field(alias="totalTimeHours")
    insights: list[str] = []
    recommendations: list[str] = []

    model_config = {"populate_by_name": True}
