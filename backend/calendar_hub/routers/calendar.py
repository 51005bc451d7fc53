"""Calendar proxy API routes."""

import logging
from typing import Any, Callable, Optional

from fastapi import APIRouter, Body, Depends, Query

from ..models.user import User
from ..services.calendar import CalendarClient, get_calendar_client_factory
from .auth import get_current_user

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/calendar", tags=["calendar"])


def get_calendar_client(
    user: User = Depends(get_current_user),
    factory: Callable[[User], CalendarClient] = Depends(get_calendar_client_factory),
) -> CalendarClient:
    """Dependency building a calendar handle for the authenticated user."""
    return factory(user)


@router.get("/list")
async def list_calendars(calendar: CalendarClient = Depends(get_calendar_client)) -> list[dict]:
    """List the user's calendars as returned by Google."""
    return await calendar.list_calendars()


@router.get("/events")
async def list_events(
    time_min: Optional[str] = Query(None, alias="timeMin", description="ISO-8601 lower bound"),
    time_max: Optional[str] = Query(None, alias="timeMax", description="ISO-8601 upper bound"),
    calendar: CalendarClient = Depends(get_calendar_client),
) -> list[dict]:
    """List events in a window, defaulting to the next 30 days."""
    return await calendar.list_events(time_min=time_min, time_max=time_max)


@router.get("/events/{event_id}")
async def get_event(event_id: str, calendar: CalendarClient = Depends(get_calendar_client)) -> dict:
    """Get a single event."""
    return await calendar.get_event(event_id)


@router.post("/events")
async def create_event(
    event: dict[str, Any] = Body(...),
    calendar: CalendarClient = Depends(get_calendar_client),
) -> dict:
    """Create an event; the body is forwarded to Google unchanged."""
    return await calendar.insert_event(event)


@router.put("/events/{event_id}")
async def update_event(
    event_id: str,
    event: dict[str, Any] = Body(...),
    calendar: CalendarClient = Depends(get_calendar_client),
) -> dict:
    """Replace an event with the given body."""
    return await calendar.update_event(event_id, event)


@router.delete("/events/{event_id}")
async def delete_event(event_id: str, calendar: CalendarClient = Depends(get_calendar_client)):
    """Delete an event."""
    await calendar.delete_event(event_id)
    return {"success": True}
