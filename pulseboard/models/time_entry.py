"""Time entry model definitions."""
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class TimeSegment(BaseModel):
    """One closed active stretch of an entry, from a resume to the next pause or stop."""

    start: datetime
    end: datetime


class TimeEntryStart(BaseModel):
    """Request model for starting a time entry."""

    card_id: str


class TimeEntry(BaseModel):
    """Full time entry model with database fields."""

    id: str = Field(alias="_id", serialization_alias="id")
    user_id: str
    card_id: str
    start_time: datetime
    end_time: Optional[datetime] = None
    last_resume_time: Optional[datetime] = None
    is_paused: bool = False
    total_duration: int = 0
    segments: list[TimeSegment] = []
    version: int = 0
    elapsed_seconds: int = 0
    created_at: datetime
    updated_at: datetime

    model_config = {"populate_by_name": True}

    @property
    def is_open(self) -> bool:
        """True until the entry has been stopped."""
        return self.end_time is None
