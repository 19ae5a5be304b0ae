"""Time entry endpoints - start, pause, resume and stop work sessions."""
from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from pulseboard.database import get_database
from pulseboard.models.time_entry import TimeEntry, TimeEntryStart
from pulseboard.routers.auth import get_current_user_id
from pulseboard.services.time_entry_service import TimeEntryService

router = APIRouter(prefix="/time-entries", tags=["time-entries"])

# Service errors (conflict, not found, rate limited, ...) are turned into
# responses by the TimeTrackingError handler registered in main.


@router.post("/start", response_model=TimeEntry, status_code=status.HTTP_201_CREATED)
async def start_entry(
    entry_start: TimeEntryStart,
    user_id: str = Depends(get_current_user_id),
    db=Depends(get_database),
):
    """
    Start tracking time on a card.

    - Requires authentication
    - Only one open entry per user (409 otherwise)
    """
    service = TimeEntryService(db)
    return await service.start_entry(user_id=user_id, card_id=entry_start.card_id)


@router.post("/{entry_id}/pause", response_model=TimeEntry)
async def pause_entry(
    entry_id: str,
    user_id: str = Depends(get_current_user_id),
    db=Depends(get_database),
):
    """
    Pause a running entry.

    - Caller must own the entry
    - Limited to 10 pause/resume actions per hour (429)
    """
    service = TimeEntryService(db)
    return await service.pause_entry(entry_id=entry_id, user_id=user_id)


@router.post("/{entry_id}/resume", response_model=TimeEntry)
async def resume_entry(
    entry_id: str,
    user_id: str = Depends(get_current_user_id),
    db=Depends(get_database),
):
    """Resume a paused entry."""
    service = TimeEntryService(db)
    return await service.resume_entry(entry_id=entry_id, user_id=user_id)


@router.post("/{entry_id}/stop", response_model=TimeEntry)
async def stop_entry(
    entry_id: str,
    user_id: str = Depends(get_current_user_id),
    db=Depends(get_database),
):
    """
    Stop an entry.

    - At least 2 minutes must have been tracked (400 with the remaining
      seconds in ``data`` otherwise)
    """
    service = TimeEntryService(db)
    return await service.stop_entry(entry_id=entry_id, user_id=user_id)


@router.get("/current-active", response_model=Optional[TimeEntry])
async def get_active_entry(
    user_id: str = Depends(get_current_user_id),
    db=Depends(get_database),
):
    """Return the caller's open entry, or null if there is none."""
    service = TimeEntryService(db)
    return await service.get_active_entry(user_id=user_id)


@router.get("", response_model=list[TimeEntry])
async def list_entries(
    card_id: Optional[str] = Query(None),
    user_id: str = Depends(get_current_user_id),
    db=Depends(get_database),
):
    """List the caller's entries, newest first, optionally for one card."""
    service = TimeEntryService(db)
    return await service.list_entries(user_id=user_id, card_id=card_id)


@router.get("/{entry_id}", response_model=TimeEntry)
async def get_entry(
    entry_id: str,
    user_id: str = Depends(get_current_user_id),
    db=Depends(get_database),
):
    """Get one of the caller's entries."""
    service = TimeEntryService(db)
    return await service.get_entry(entry_id=entry_id, user_id=user_id)
