"""Integration tests for analytics endpoints."""
from datetime import timedelta

import pytest

from pulseboard.utils.clock import utcnow


@pytest.mark.asyncio
class TestCardTime:
    """Tests for the card time dashboard."""

    async def test_week_payload_shape(self, app_client, auth_headers, test_db):
        now = utcnow()
        start = now - timedelta(hours=3)
        end = now - timedelta(hours=1)
        await test_db["time_entries"].insert_one({
            "user_id": "someone",
            "card_id": "card-1",
            "start_time": start,
            "end_time": end,
            "last_resume_time": None,
            "is_paused": False,
            "total_duration": 7200,
            "segments": [{"start": start, "end": end}],
            "created_at": start,
            "updated_at": end,
        })

        response = await app_client.get(
            "/analytics/cards/card-1/time", params={"range": "week"}, headers=auth_headers
        )

        assert response.status_code == 200
        data = response.json()
        assert len(data["buckets"]) == 7
        assert set(data["buckets"][0]) == {"period", "time"}
        assert data["totalEntries"] == 1
        assert data["totalTimeHours"] == pytest.approx(2.0, abs=0.01)
        assert data["insights"]
        assert len(data["recommendations"]) <= 4

    async def test_default_range_is_week(self, app_client, auth_headers):
        response = await app_client.get("/analytics/cards/card-1/time", headers=auth_headers)

        assert response.status_code == 200
        assert len(response.json()["buckets"]) == 7

    @pytest.mark.parametrize("time_range,count", [("day", 10), ("month", 6), ("quarter", 3)])
    async def test_bucket_counts(self, app_client, auth_headers, time_range, count):
        response = await app_client.get(
            "/analytics/cards/card-1/time", params={"range": time_range}, headers=auth_headers
        )

        assert len(response.json()["buckets"]) == count

    async def test_unknown_range_rejected(self, app_client, auth_headers):
        response = await app_client.get(
            "/analytics/cards/card-1/time", params={"range": "decade"}, headers=auth_headers
        )

        assert response.status_code == 400
        body = response.json()
        assert body["error"] == "invalid_range"
        assert "decade" in body["detail"]

    async def test_requires_auth(self, app_client):
        response = await app_client.get("/analytics/cards/card-1/time")

        assert response.status_code == 401
