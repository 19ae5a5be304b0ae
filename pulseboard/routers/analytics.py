"""Analytics endpoints - bucketed time data for card dashboards."""
from typing import Optional

from fastapi import APIRouter, Depends, Query

from pulseboard.database import get_database
from pulseboard.models.analytics import TimeData
from pulseboard.routers.auth import get_current_user_id
from pulseboard.services.time_aggregator import TimeAggregator

router = APIRouter(prefix="/analytics", tags=["analytics"])


@router.get("/cards/{card_id}/time", response_model=TimeData)
async def get_card_time(
    card_id: str,
    time_range: str = Query("week", alias="range"),
    user_id: Optional[str] = Query(None),
    _: str = Depends(get_current_user_id),
    db=Depends(get_database),
):
    """
    Hours per calendar bucket for a card, with insights and recommendations.

    - ``range``: day (hourly, 9:00-18:00), week (daily), month (5-day blocks)
      or quarter (monthly). Anything else is a 400 ``invalid_range``
    - ``user_id``: restrict to one member's entries
    """
    aggregator = TimeAggregator(db)
    return await aggregator.get_time_data(
        card_id=card_id,
        time_range=time_range,
        user_id=user_id,
    )
