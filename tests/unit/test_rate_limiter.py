"""Tests for RateLimiter."""
from unittest.mock import AsyncMock

import pytest
from pymongo.errors import ServerSelectionTimeoutError

from pulseboard.services.rate_limiter import RateLimiter
from pulseboard.utils.errors import RateLimitError


@pytest.fixture
def limiter(mock_db, clock):
    return RateLimiter(mock_db, max_actions=3, window_seconds=600, clock=clock)


@pytest.mark.asyncio
class TestRateLimiter:
    """Tests for the sliding window counter."""

    async def test_under_limit_allows(self, limiter):
        await limiter.record_action("user123", "pause")
        await limiter.record_action("user123", "resume")

        await limiter.check_rate_limit("user123")

    async def test_at_limit_rejects(self, limiter):
        for action in ("pause", "resume", "pause"):
            await limiter.record_action("user123", action)

        with pytest.raises(RateLimitError, match="Maximum 3 pause/resume actions"):
            await limiter.check_rate_limit("user123")

    async def test_limit_is_per_user(self, limiter):
        for _ in range(3):
            await limiter.record_action("user123", "pause")

        await limiter.check_rate_limit("user456")

    async def test_old_events_slide_out_of_window(self, limiter, clock):
        await limiter.record_action("user123", "pause")
        clock.advance(300)
        await limiter.record_action("user123", "resume")
        await limiter.record_action("user123", "pause")

        with pytest.raises(RateLimitError):
            await limiter.check_rate_limit("user123")

        clock.advance(301)
        assert await limiter.count_recent_actions("user123") == 2
        await limiter.check_rate_limit("user123")

    async def test_error_reports_retry_after(self, limiter, clock):
        await limiter.record_action("user123", "pause")
        clock.advance(100)
        await limiter.record_action("user123", "resume")
        await limiter.record_action("user123", "pause")

        with pytest.raises(RateLimitError) as exc_info:
            await limiter.check_rate_limit("user123")

        assert exc_info.value.data == {
            "limit": 3,
            "windowSeconds": 600,
            "retryAfterSeconds": 500,
        }

    async def test_count_failure_fails_open(self, limiter):
        limiter.events.count_documents = AsyncMock(
            side_effect=ServerSelectionTimeoutError("no servers")
        )

        await limiter.check_rate_limit("user123")

    async def test_record_failure_is_swallowed(self, limiter):
        limiter.events.insert_one = AsyncMock(
            side_effect=ServerSelectionTimeoutError("no servers")
        )

        await limiter.record_action("user123", "pause")
