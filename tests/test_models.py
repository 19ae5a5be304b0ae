"""Tests for Pydantic models."""
from datetime import datetime

import pytest
from pydantic import ValidationError

from pulseboard.models.analytics import TimeBucket, TimeData, TimeRange
from pulseboard.models.time_entry import TimeEntry, TimeEntryStart
from pulseboard.models.user import UserCreate


class TestTimeEntryModel:
    """Tests for TimeEntry model."""

    def test_populated_from_mongo_id(self):
        now = datetime(2025, 11, 5, 10, 0)
        entry = TimeEntry(
            _id="65f000000000000000000001",
            user_id="user123",
            card_id="card-1",
            start_time=now,
            last_resume_time=now,
            segments=[{"start": now, "end": now}],
            created_at=now,
            updated_at=now,
        )

        assert entry.id == "65f000000000000000000001"
        assert entry.is_open is True
        assert entry.total_duration == 0
        assert entry.segments[0].start == now

    def test_serializes_id_without_underscore(self):
        now = datetime(2025, 11, 5, 10, 0)
        entry = TimeEntry(
            id="abc", user_id="u", card_id="c", start_time=now,
            end_time=now, created_at=now, updated_at=now,
        )

        dumped = entry.model_dump(by_alias=True)
        assert dumped["id"] == "abc"
        assert "_id" not in dumped
        assert entry.is_open is False

    def test_start_requires_card(self):
        with pytest.raises(ValidationError):
            TimeEntryStart()


class TestAnalyticsModels:
    """Tests for analytics payload models."""

    def test_time_data_uses_camel_case_totals(self):
        data = TimeData(
            buckets=[TimeBucket(period="Mon", time=1.5)],
            total_entries=1,
            total_time_hours=1.5,
        )

        dumped = data.model_dump(by_alias=True)
        assert dumped["totalEntries"] == 1
        assert dumped["totalTimeHours"] == 1.5
        assert dumped["buckets"] == [{"period": "Mon", "time": 1.5}]

    def test_time_data_accepts_aliases(self):
        data = TimeData.model_validate({"buckets": [], "totalEntries": 0, "totalTimeHours": 0})

        assert data.total_entries == 0

    def test_time_range_values(self):
        assert [r.value for r in TimeRange] == ["day", "week", "month", "quarter"]


class TestUserModels:
    """Tests for user payloads."""

    def test_short_password_rejected(self):
        with pytest.raises(ValidationError):
            UserCreate(email="a@example.com", name="A", password="short")

    def test_invalid_email_rejected(self):
        with pytest.raises(ValidationError):
            UserCreate(email="not-an-email", name="A", password="password123")
