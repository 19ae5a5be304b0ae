"""Integration tests for the guarantees MongoDB itself enforces."""
import asyncio
from datetime import timedelta

import pytest

from pulseboard.services.rate_limiter import RateLimiter
from pulseboard.services.time_entry_service import TimeEntryService
from pulseboard.utils.errors import ConflictError, InvalidStateError


@pytest.fixture
def service(test_db, clock):
    limiter = RateLimiter(test_db, clock=clock)
    return TimeEntryService(test_db, rate_limiter=limiter, clock=clock, min_duration_seconds=120)


@pytest.mark.asyncio
class TestOneOpenEntry:
    """Tests for the unique sparse index on open entries."""

    async def test_racing_starts_leave_one_open_entry(self, service, test_db):
        results = await asyncio.gather(
            *(service.start_entry(user_id="user123", card_id=f"card-{i}") for i in range(5)),
            return_exceptions=True,
        )

        rejected = [r for r in results if isinstance(r, Exception)]
        assert len(rejected) == 4
        assert all(isinstance(r, ConflictError) for r in rejected)
        assert await test_db["time_entries"].count_documents({"end_time": None}) == 1

    async def test_stopped_entries_do_not_collide(self, service, test_db, clock):
        for card in ("card-1", "card-2", "card-3"):
            entry = await service.start_entry(user_id="user123", card_id=card)
            clock.advance(minutes=3)
            await service.stop_entry(entry.id, "user123")

        assert await test_db["time_entries"].count_documents({"user_id": "user123"}) == 3
        assert await test_db["time_entries"].count_documents({"active_user_id": {"$exists": True}}) == 0


@pytest.mark.asyncio
class TestCompareAndSet:
    """Tests for version-pinned transitions."""

    async def test_stale_read_loses(self, service, clock):
        entry = await service.start_entry(user_id="user123", card_id="card-1")
        stale_doc = await service._get_owned_doc(entry.id, "user123")
        clock.advance(30)
        await service.pause_entry(entry.id, "user123")

        with pytest.raises(InvalidStateError, match="changed concurrently"):
            await service._compare_and_set(
                stale_doc, is_paused=False, changes={"$set": {"is_paused": True}}
            )

    async def test_racing_pauses_bank_time_once(self, service, clock):
        entry = await service.start_entry(user_id="user123", card_id="card-1")
        clock.advance(300)

        results = await asyncio.gather(
            service.pause_entry(entry.id, "user123"),
            service.pause_entry(entry.id, "user123"),
            return_exceptions=True,
        )

        assert sum(1 for r in results if isinstance(r, InvalidStateError)) == 1
        assert (await service.get_entry(entry.id, "user123")).total_duration == 300

    async def test_row_without_version_or_segments(self, service, test_db, clock):
        result = await test_db["time_entries"].insert_one({
            "user_id": "user123",
            "card_id": "card-1",
            "start_time": clock.now - timedelta(hours=1),
            "end_time": None,
            "last_resume_time": clock.now - timedelta(minutes=10),
            "total_duration": 600,
            "created_at": clock.now - timedelta(hours=1),
            "updated_at": clock.now - timedelta(minutes=10),
        })

        paused = await service.pause_entry(str(result.inserted_id), "user123")

        assert paused.is_paused is True
        assert paused.version == 1
        assert paused.total_duration == 1200
        assert sum((s.end - s.start).total_seconds() for s in paused.segments) == 1200
