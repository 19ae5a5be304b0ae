"""Time entry service - start/pause/resume/stop accounting for work sessions."""
import logging
import math
from datetime import datetime, timedelta
from typing import Optional

from bson import ObjectId
from bson.errors import InvalidId
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError

from pulseboard.config import settings
from pulseboard.database import TIME_ENTRIES
from pulseboard.models.time_entry import TimeEntry
from pulseboard.services.rate_limiter import RateLimiter
from pulseboard.utils.clock import Clock, seconds_between, utcnow
from pulseboard.utils.errors import (
    ConflictError,
    ForbiddenError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)

logger = logging.getLogger(__name__)


def accounted_seconds(doc: dict, now: datetime) -> int:
    """
    Closed segment time plus the live segment, if the entry is running.

    Nothing is written: the live part is always derived from
    ``last_resume_time`` at read time.
    """
    total = doc.get("total_duration") or 0
    if doc.get("end_time") is None and not doc.get("is_paused") and doc.get("last_resume_time"):
        total += seconds_between(doc["last_resume_time"], now)
    return total


def _record_segment(doc: dict, changes: dict, segment: Optional[dict] = None) -> None:
    """
    Add ``segment`` to the entry's history as part of ``changes``.

    Rows written before segment history existed have no ``segments`` field.
    Their banked ``total_duration`` is seeded as one segment from
    ``start_time`` so the history still sums to the total.
    """
    if doc.get("segments") is None:
        seeded = []
        banked = doc.get("total_duration") or 0
        if banked > 0:
            seeded.append({
                "start": doc["start_time"],
                "end": doc["start_time"] + timedelta(seconds=banked),
            })
        if segment is not None:
            seeded.append(segment)
        changes["$set"]["segments"] = seeded
    elif segment is not None:
        changes["$push"] = {"segments": segment}


class TimeEntryService:
    """Service for the time entry state machine."""

    def __init__(
        self,
        db,
        rate_limiter: Optional[RateLimiter] = None,
        clock: Clock = utcnow,
        min_duration_seconds: Optional[int] = None,
    ):
        """Initialize service with database connection."""
        self.db = db
        self.time_entries = db[TIME_ENTRIES]
        self.clock = clock
        self.rate_limiter = rate_limiter or RateLimiter(db, clock=clock)
        self.min_duration_seconds = (
            min_duration_seconds
            if min_duration_seconds is not None
            else settings.min_entry_duration_seconds
        )

    def _doc_to_entry(self, doc: dict, now: Optional[datetime] = None) -> TimeEntry:
        """Convert database document to TimeEntry model."""
        if now is None:
            now = self.clock()
        return TimeEntry(
            _id=str(doc["_id"]),
            user_id=doc["user_id"],
            card_id=doc["card_id"],
            start_time=doc["start_time"],
            end_time=doc.get("end_time"),
            last_resume_time=doc.get("last_resume_time"),
            is_paused=doc.get("is_paused", False),
            total_duration=doc.get("total_duration") or 0,
            segments=doc.get("segments") or [],
            version=doc.get("version") or 0,
            elapsed_seconds=accounted_seconds(doc, now),
            created_at=doc.get("created_at") or doc["start_time"],
            updated_at=doc.get("updated_at") or doc["start_time"],
        )

    async def _get_owned_doc(self, entry_id: str, user_id: str) -> dict:
        """
        Load an entry and check the caller owns it.

        Raises:
            NotFoundError: If the id is malformed or no entry has it
            ForbiddenError: If the entry belongs to another user
        """
        try:
            object_id = ObjectId(entry_id)
        except (InvalidId, TypeError):
            raise NotFoundError("Time entry not found")

        doc = await self.time_entries.find_one({"_id": object_id})
        if not doc:
            raise NotFoundError("Time entry not found")

        if doc["user_id"] != user_id:
            raise ForbiddenError("Not authorized to modify this time entry")

        return doc

    async def _compare_and_set(self, doc: dict, is_paused: bool, changes: dict) -> dict:
        """
        Apply ``changes`` only if the entry is still in the state we read.

        The filter pins the version, so a concurrent transition on the same
        entry makes this update match nothing.

        Raises:
            InvalidStateError: If the entry changed since it was read
        """
        changes.setdefault("$set", {})
        changes["$set"]["version"] = (doc.get("version") or 0) + 1
        changes["$set"]["updated_at"] = self.clock()

        updated_doc = await self.time_entries.find_one_and_update(
            {
                "_id": doc["_id"],
                "user_id": doc["user_id"],
                "version": doc.get("version"),
                "end_time": None,
                "is_paused": True if is_paused else {"$ne": True},
            },
            changes,
            return_document=ReturnDocument.AFTER,
        )

        if updated_doc is None:
            raise InvalidStateError("Time entry was changed concurrently, reload and retry")

        return updated_doc

    async def start_entry(self, user_id: str, card_id: str) -> TimeEntry:
        """
        Start a new time entry.

        Args:
            user_id: User ID
            card_id: Card the time is logged against

        Returns:
            Created time entry

        Raises:
            ConflictError: If the user already has an open entry
        """
        active = await self.time_entries.find_one({
            "user_id": user_id,
            "end_time": None,
        })

        if active:
            raise ConflictError(
                "You already have an active time entry. Please stop or pause it first."
            )

        now = self.clock()
        entry_doc = {
            "user_id": user_id,
            "card_id": card_id,
            "start_time": now,
            "end_time": None,
            "last_resume_time": now,
            "is_paused": False,
            "total_duration": 0,
            "segments": [],
            "version": 0,
            "active_user_id": user_id,
            "created_at": now,
            "updated_at": now,
        }

        try:
            result = await self.time_entries.insert_one(entry_doc)
        except DuplicateKeyError:
            # Lost a race with another start for the same user
            raise ConflictError(
                "You already have an active time entry. Please stop or pause it first."
            )
        entry_doc["_id"] = result.inserted_id

        logger.info("Started time entry %s for user %s on card %s", result.inserted_id, user_id, card_id)
        return self._doc_to_entry(entry_doc, now)

    async def pause_entry(self, entry_id: str, user_id: str) -> TimeEntry:
        """
        Pause a running entry and bank the time since the last resume.

        Raises:
            NotFoundError, ForbiddenError: See ``_get_owned_doc``
            InvalidStateError: If the entry is stopped or already paused
            RateLimitError: If the user paused/resumed too often recently
        """
        doc = await self._get_owned_doc(entry_id, user_id)

        if doc.get("end_time") is not None:
            raise InvalidStateError("Time entry is already stopped")
        if doc.get("is_paused"):
            raise InvalidStateError("Time entry is already paused")

        await self.rate_limiter.check_rate_limit(user_id)

        now = self.clock()
        resumed_at = doc.get("last_resume_time") or now
        elapsed = seconds_between(resumed_at, now)

        changes = {
            "$set": {
                "is_paused": True,
                "total_duration": (doc.get("total_duration") or 0) + elapsed,
                "last_resume_time": None,
            },
        }
        _record_segment(doc, changes, {"start": resumed_at, "end": now})

        updated_doc = await self._compare_and_set(doc, is_paused=False, changes=changes)

        await self.rate_limiter.record_action(user_id, "pause")
        logger.debug("Paused time entry %s after %ds", entry_id, elapsed)
        return self._doc_to_entry(updated_doc, now)

    async def resume_entry(self, entry_id: str, user_id: str) -> TimeEntry:
        """
        Resume a paused entry. Banked time is left as is.

        Raises:
            NotFoundError, ForbiddenError: See ``_get_owned_doc``
            InvalidStateError: If the entry is stopped or not paused
            RateLimitError: If the user paused/resumed too often recently
        """
        doc = await self._get_owned_doc(entry_id, user_id)

        if doc.get("end_time") is not None:
            raise InvalidStateError("Time entry is already stopped")
        if not doc.get("is_paused"):
            raise InvalidStateError("Time entry is not paused")

        await self.rate_limiter.check_rate_limit(user_id)

        now = self.clock()
        updated_doc = await self._compare_and_set(doc, is_paused=True, changes={
            "$set": {
                "is_paused": False,
                "last_resume_time": now,
            },
        })

        await self.rate_limiter.record_action(user_id, "resume")
        logger.debug("Resumed time entry %s", entry_id)
        return self._doc_to_entry(updated_doc, now)

    async def stop_entry(self, entry_id: str, user_id: str) -> TimeEntry:
        """
        Stop an entry for good.

        Args:
            entry_id: Time entry ID
            user_id: User ID

        Returns:
            Stopped time entry with its final ``total_duration``

        Raises:
            NotFoundError, ForbiddenError: See ``_get_owned_doc``
            InvalidStateError: If the entry is already stopped
            ValidationError: If less than the minimum duration has been
                tracked. Nothing is written in that case.
        """
        doc = await self._get_owned_doc(entry_id, user_id)

        if doc.get("end_time") is not None:
            raise InvalidStateError("Time entry is already stopped")

        now = self.clock()
        is_paused = bool(doc.get("is_paused"))
        final_duration = accounted_seconds(doc, now)

        if final_duration < self.min_duration_seconds:
            remaining_seconds = self.min_duration_seconds - final_duration
            remaining_minutes = math.ceil(remaining_seconds / 60)
            minimum_minutes = math.ceil(self.min_duration_seconds / 60)
            raise ValidationError(
                f"Minimum tracking time is {minimum_minutes} minutes. "
                f"Please track for {remaining_minutes} more "
                f"minute{'s' if remaining_minutes > 1 else ''} before stopping.",
                data={
                    "currentDuration": final_duration,
                    "minimumRequired": self.min_duration_seconds,
                    "remainingSeconds": remaining_seconds,
                },
            )

        changes = {
            "$set": {
                "end_time": now,
                "total_duration": final_duration,
                "last_resume_time": None,
            },
            "$unset": {"active_user_id": ""},
        }
        live_segment = None
        if not is_paused and doc.get("last_resume_time"):
            live_segment = {"start": doc["last_resume_time"], "end": now}
        _record_segment(doc, changes, live_segment)

        updated_doc = await self._compare_and_set(doc, is_paused=is_paused, changes=changes)

        logger.info("Stopped time entry %s with %ds tracked", entry_id, final_duration)
        return self._doc_to_entry(updated_doc, now)

    async def get_active_entry(self, user_id: str) -> Optional[TimeEntry]:
        """
        Get the user's open entry, if any.

        Args:
            user_id: User ID

        Returns:
            Open time entry, or None
        """
        doc = await self.time_entries.find_one({
            "user_id": user_id,
            "end_time": None,
        })

        if not doc:
            return None

        return self._doc_to_entry(doc)

    async def get_entry(self, entry_id: str, user_id: str) -> TimeEntry:
        """Get a single entry owned by the user."""
        doc = await self._get_owned_doc(entry_id, user_id)
        return self._doc_to_entry(doc)

    async def list_entries(
        self,
        user_id: str,
        card_id: Optional[str] = None,
    ) -> list[TimeEntry]:
        """
        List a user's entries, most recent first.

        Args:
            user_id: User ID
            card_id: Optional card filter

        Returns:
            List of time entries
        """
        query = {"user_id": user_id}
        if card_id:
            query["card_id"] = card_id

        cursor = self.time_entries.find(query).sort("start_time", -1)
        entry_docs = await cursor.to_list(length=None)

        now = self.clock()
        return [self._doc_to_entry(doc, now) for doc in entry_docs]
