"""Time aggregator - buckets tracked time into calendar windows for dashboards."""
import logging
from datetime import date, datetime, time, timedelta, timezone
from typing import NamedTuple, Optional
from zoneinfo import ZoneInfo

from pulseboard.config import settings
from pulseboard.database import TIME_ENTRIES
from pulseboard.models.analytics import TimeBucket, TimeData, TimeRange
from pulseboard.services.insights import (
    TimeStats,
    generate_insights,
    generate_recommendations,
)
from pulseboard.services.time_entry_service import accounted_seconds
from pulseboard.utils.clock import Clock, utcnow
from pulseboard.utils.errors import InvalidRangeError

logger = logging.getLogger(__name__)

WEEKDAY_NAMES = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]
MONTH_NAMES = ["Jan", "Feb", "Mar", "Apr", "May", "Jun",
               "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]

WORKDAY_FIRST_HOUR = 9
WORKDAY_LAST_HOUR = 18


class Window(NamedTuple):
    """A labelled [start, end) span in naive UTC."""

    label: str
    start: datetime
    end: datetime


def _overlap_seconds(start: datetime, end: datetime, window_start: datetime, window_end: datetime) -> float:
    """Length of the intersection of two spans, 0 if they don't meet."""
    overlap_start = max(start, window_start)
    overlap_end = min(end, window_end)
    if overlap_start >= overlap_end:
        return 0.0
    return (overlap_end - overlap_start).total_seconds()


def _seconds_in_range(doc: dict, window_start: datetime, window_end: datetime, now: datetime) -> float:
    """Seconds one entry contributes to ``[window_start, window_end]``."""
    entry_start = doc["start_time"]
    entry_end = doc.get("end_time") or now
    overlap = _overlap_seconds(entry_start, entry_end, window_start, window_end)
    if overlap <= 0:
        return 0.0

    is_running = doc.get("end_time") is None and not doc.get("is_paused")
    live_start = doc.get("last_resume_time")
    total_duration = doc.get("total_duration") or 0

    if doc.get("segments") is not None:
        seconds = sum(
            _overlap_seconds(seg["start"], seg["end"], window_start, window_end)
            for seg in doc["segments"]
        )
        if is_running and live_start:
            seconds += _overlap_seconds(live_start, now, window_start, window_end)
        return seconds

    if doc.get("end_time") is not None and total_duration > 0:
        wall_clock = (entry_end - entry_start).total_seconds()
        if wall_clock <= 0:
            return 0.0
        return total_duration * (overlap / wall_clock)

    if doc.get("end_time") is None and live_start:
        live = _overlap_seconds(live_start, now, window_start, window_end)
        if live <= 0:
            return 0.0
        return live + total_duration

    return overlap


def time_in_range(entries: list[dict], window_start: datetime, window_end: datetime, now: datetime) -> float:
    """
    Hours the given entries spent inside ``[window_start, window_end]``.

    Entries recorded with segment history are counted exactly. Rows without
    it fall back to the approximations below, in order:

    1. stopped with a positive ``total_duration``: apportion it by the share
       of the entry's wall-clock span inside the window
    2. open with a ``last_resume_time``: the live segment's overlap, plus the
       full ``total_duration`` whenever that overlap is non-empty
    3. otherwise the raw overlap of the entry span

    Args:
        entries: Raw time entry documents
        window_start: Window start (naive UTC)
        window_end: Window end (naive UTC)
        now: Current time, used as the end of anything still running

    Returns:
        Hours, rounded to 2 decimal places
    """
    seconds = sum(_seconds_in_range(doc, window_start, window_end, now) for doc in entries)
    return round(seconds / 3600, 2)


def _local_zone() -> ZoneInfo:
    return ZoneInfo(settings.timezone)


def _to_utc(local: datetime) -> datetime:
    return local.astimezone(timezone.utc).replace(tzinfo=None)


def _local_midnight(day: date, tz: ZoneInfo) -> datetime:
    return datetime.combine(day, time(), tzinfo=tz)


def build_windows(time_range: str, now: datetime, tz: Optional[ZoneInfo] = None) -> list[Window]:
    """
    Calendar-aligned windows for a range keyword, oldest first.

    Windows are laid out in local time (``settings.timezone`` unless ``tz``
    is given) and returned in naive UTC. The newest window of ``week``,
    ``month`` and ``quarter`` ends at ``now``.

    Raises:
        InvalidRangeError: If ``time_range`` is not a known keyword
    """
    try:
        time_range = TimeRange(time_range)
    except ValueError:
        raise InvalidRangeError(
            f"Unknown range '{time_range}', expected one of: "
            + ", ".join(r.value for r in TimeRange)
        )

    if tz is None:
        tz = _local_zone()
    local_now = now.replace(tzinfo=timezone.utc).astimezone(tz)
    today = local_now.date()
    windows = []

    if time_range is TimeRange.DAY:
        for hour in range(WORKDAY_FIRST_HOUR, WORKDAY_LAST_HOUR + 1):
            start = datetime.combine(today, time(hour), tzinfo=tz)
            windows.append(Window(f"{hour}:00", _to_utc(start), _to_utc(start + timedelta(hours=1))))

    elif time_range is TimeRange.WEEK:
        for days_ago in range(6, -1, -1):
            day = today - timedelta(days=days_ago)
            start = _to_utc(_local_midnight(day, tz))
            end = now if days_ago == 0 else _to_utc(_local_midnight(day + timedelta(days=1), tz))
            windows.append(Window(WEEKDAY_NAMES[day.weekday()], start, end))

    elif time_range is TimeRange.MONTH:
        first_day = today - timedelta(days=29)
        for block in range(6):
            block_start = first_day + timedelta(days=5 * block)
            block_last = block_start + timedelta(days=4)
            start = _to_utc(_local_midnight(block_start, tz))
            end = now if block == 5 else _to_utc(_local_midnight(block_last + timedelta(days=1), tz))
            windows.append(Window(f"{block_start.day}-{block_last.day}", start, end))

    else:
        for months_ago in range(2, -1, -1):
            year, month = divmod(today.year * 12 + today.month - 1 - months_ago, 12)
            month += 1
            start = _to_utc(datetime(year, month, 1, tzinfo=tz))
            if months_ago == 0:
                end = now
            else:
                next_year, next_month = divmod(year * 12 + month, 12)
                end = _to_utc(datetime(next_year, next_month + 1, 1, tzinfo=tz))
            windows.append(Window(MONTH_NAMES[month - 1], start, end))

    return windows


class TimeAggregator:
    """Read-only service that turns a card's time entries into dashboard data."""

    def __init__(self, db, clock: Clock = utcnow, tz: Optional[ZoneInfo] = None):
        """Initialize aggregator with database connection."""
        self.db = db
        self.time_entries = db[TIME_ENTRIES]
        self.cards = db["cards"]
        self.clock = clock
        self.tz = tz or _local_zone()

    async def _load_entries(
        self,
        card_id: str,
        range_start: datetime,
        range_end: datetime,
        user_id: Optional[str],
    ) -> list[dict]:
        """Entries on the card whose span touches ``[range_start, range_end]``."""
        query = {
            "card_id": card_id,
            "start_time": {"$lt": range_end},
            "$or": [
                {"end_time": None},
                {"end_time": {"$gte": range_start}},
            ],
        }
        if user_id:
            query["user_id"] = user_id

        cursor = self.time_entries.find(query).sort("start_time", 1)
        return await cursor.to_list(length=None)

    async def _estimated_hours(self, card_id: str) -> Optional[float]:
        card = await self.cards.find_one({"_id": card_id})
        if not card:
            return None
        return card.get("estimated_hours")

    async def _card_tracked_hours(self, card_id: str, now: datetime) -> float:
        """Everything ever tracked on the card, by any user, in hours."""
        cursor = self.time_entries.find({"card_id": card_id})
        entry_docs = await cursor.to_list(length=None)
        return round(sum(accounted_seconds(doc, now) for doc in entry_docs) / 3600, 2)

    def _build_stats(
        self,
        time_range: TimeRange,
        windows: list[Window],
        buckets: list[TimeBucket],
        entries: list[dict],
        now: datetime,
        estimated_hours: Optional[float],
        card_tracked_hours: Optional[float],
    ) -> TimeStats:
        weekday_seconds = 0.0
        weekend_seconds = 0.0
        session_hours = []
        for doc in entries:
            # Only the part of the entry inside the buckets counts toward the split
            in_range = sum(_seconds_in_range(doc, w.start, w.end, now) for w in windows)
            started_local = doc["start_time"].replace(tzinfo=timezone.utc).astimezone(self.tz)
            if started_local.weekday() >= 5:
                weekend_seconds += in_range
            else:
                weekday_seconds += in_range

            seconds = accounted_seconds(doc, now)
            if seconds <= 0 and doc.get("end_time") is not None:
                seconds = int((doc["end_time"] - doc["start_time"]).total_seconds())
            session_hours.append(seconds / 3600)

        peak = max(buckets, key=lambda b: b.time) if buckets else None
        return TimeStats(
            time_range=time_range.value,
            buckets=buckets,
            total_hours=round(sum(b.time for b in buckets), 2),
            total_entries=len(entries),
            peak_period=peak.period if peak else None,
            peak_hours=peak.time if peak else 0.0,
            weekday_hours=round(weekday_seconds / 3600, 2),
            weekend_hours=round(weekend_seconds / 3600, 2),
            avg_session_hours=round(sum(session_hours) / len(session_hours), 2) if session_hours else 0.0,
            longest_session_hours=round(max(session_hours), 2) if session_hours else 0.0,
            active_buckets=sum(1 for b in buckets if b.time > 0),
            estimated_hours=estimated_hours,
            card_tracked_hours=card_tracked_hours,
        )

    async def get_time_data(
        self,
        card_id: str,
        time_range: str = "week",
        user_id: Optional[str] = None,
    ) -> TimeData:
        """
        Bucketed hours, totals and generated text for a card.

        Args:
            card_id: Card ID
            time_range: One of ``day``, ``week``, ``month``, ``quarter``
            user_id: Optional filter to a single user's entries

        Returns:
            TimeData for the dashboard

        Raises:
            InvalidRangeError: If ``time_range`` is unknown
        """
        now = self.clock()
        windows = build_windows(time_range, now, self.tz)
        entries = await self._load_entries(card_id, windows[0].start, windows[-1].end, user_id)

        buckets = [
            TimeBucket(period=w.label, time=time_in_range(entries, w.start, w.end, now))
            for w in windows
        ]

        estimated_hours = await self._estimated_hours(card_id)
        card_tracked_hours = None
        if estimated_hours:
            card_tracked_hours = await self._card_tracked_hours(card_id, now)

        stats = self._build_stats(
            TimeRange(time_range), windows, buckets, entries, now,
            estimated_hours, card_tracked_hours,
        )

        logger.debug(
            "Aggregated %d entries for card %s over %s", len(entries), card_id, time_range
        )
        return TimeData(
            buckets=buckets,
            total_entries=len(entries),
            total_time_hours=stats.total_hours,
            insights=generate_insights(stats),
            recommendations=generate_recommendations(stats),
        )
