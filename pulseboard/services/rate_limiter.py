"""Rate limiter - sliding window cap on pause/resume actions."""
import logging
from datetime import timedelta
from typing import Optional

from pymongo.errors import PyMongoError

from pulseboard.config import settings
from pulseboard.database import RATE_LIMIT_EVENTS
from pulseboard.utils.clock import Clock, utcnow
from pulseboard.utils.errors import RateLimitError

logger = logging.getLogger(__name__)


class RateLimiter:
    """
    Per-user sliding window counter backed by the ``rate_limit_events`` collection.

    Each successful pause or resume stores one event. A user may perform at
    most ``max_actions`` of them within the trailing ``window_seconds``.
    """

    def __init__(
        self,
        db,
        max_actions: Optional[int] = None,
        window_seconds: Optional[int] = None,
        clock: Clock = utcnow,
    ):
        """Initialize limiter with database connection and limits."""
        self.events = db[RATE_LIMIT_EVENTS]
        self.max_actions = (
            max_actions if max_actions is not None else settings.rate_limit_max_actions
        )
        self.window_seconds = (
            window_seconds if window_seconds is not None else settings.rate_limit_window_seconds
        )
        self.clock = clock

    async def count_recent_actions(self, user_id: str) -> int:
        """
        Count the user's actions inside the trailing window.

        Args:
            user_id: User ID

        Returns:
            Number of events with ``created_at`` inside the window
        """
        window_start = self.clock() - timedelta(seconds=self.window_seconds)
        return await self.events.count_documents({
            "user_id": user_id,
            "created_at": {"$gte": window_start},
        })

    async def check_rate_limit(self, user_id: str) -> None:
        """
        Reject the request if the user is at the limit.

        Counting failures let the request through (fail-open).

        Raises:
            RateLimitError: If ``max_actions`` or more events fall in the window
        """
        try:
            recent = await self.count_recent_actions(user_id)
        except PyMongoError:
            logger.warning("Rate limit count failed for user %s, allowing", user_id, exc_info=True)
            return

        if recent >= self.max_actions:
            logger.warning(
                "Rate limit hit for user %s: %d actions in %ds",
                user_id, recent, self.window_seconds,
            )
            raise RateLimitError(
                f"Rate limit exceeded. Maximum {self.max_actions} pause/resume actions per hour.",
                data={
                    "limit": self.max_actions,
                    "windowSeconds": self.window_seconds,
                    "retryAfterSeconds": await self._retry_after(user_id),
                },
            )

    async def record_action(self, user_id: str, action: str) -> None:
        """
        Store one pause/resume event for the user.

        The transition it belongs to is already committed, so a failed
        insert is logged and dropped.
        """
        try:
            await self.events.insert_one({
                "user_id": user_id,
                "action": action,
                "created_at": self.clock(),
            })
        except PyMongoError:
            logger.warning("Could not record %s action for user %s", action, user_id, exc_info=True)

    async def _retry_after(self, user_id: str) -> int:
        """Seconds until the oldest event in the window drops out."""
        now = self.clock()
        window_start = now - timedelta(seconds=self.window_seconds)
        try:
            oldest = await self.events.find_one(
                {"user_id": user_id, "created_at": {"$gte": window_start}},
                sort=[("created_at", 1)],
            )
        except PyMongoError:
            return self.window_seconds

        if not oldest:
            return 0
        expires_at = oldest["created_at"] + timedelta(seconds=self.window_seconds)
        return max(0, int((expires_at - now).total_seconds()))
