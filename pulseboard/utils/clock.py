"""Wall-clock helpers."""
from datetime import datetime, timezone
from typing import Callable

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    """
    Current UTC time as a naive datetime.

    Motor hands back naive UTC datetimes, so everything stored or compared
    against stored values uses the same representation.
    """
    return datetime.now(timezone.utc).replace(tzinfo=None)


def seconds_between(start: datetime, end: datetime) -> int:
    """Whole seconds from ``start`` to ``end``, floored, never negative."""
    return max(0, int((end - start).total_seconds()))
