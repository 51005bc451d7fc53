"""Presentation helpers turning Calendar API payloads into display records."""

from dataclasses import dataclass
from datetime import timezone, tzinfo
from typing import Any, Optional, Union

from dateutil import parser as date_parser

# Google Calendar event colorId -> hex
EVENT_COLORS = {
    "1": "#7986cb",
    "2": "#33b679",
    "3": "#8e24aa",
    "4": "#e67c73",
    "5": "#f6c026",
    "6": "#f5511d",
    "7": "#039be5",
    "8": "#616161",
    "9": "#3f51b5",
    "10": "#0b8043",
    "11": "#d60000",
}

DEFAULT_EVENT_COLOR = "#3788d8"


@dataclass(frozen=True)
class DisplayEvent:
    """An event as the calendar grid renders it."""
    id: str
    title: str
    start: Optional[str]
    end: Optional[str]
    description: str
    color: str


@dataclass(frozen=True)
class EventDraft:
    """Values of the create-event form."""
    title: str = ""
    start: str = ""
    end: str = ""
    description: str = ""


def event_color(color_id: Union[str, int, None]) -> str:
    """Map a colorId to its hex color, falling back to the default."""
    if color_id is None:
        return DEFAULT_EVENT_COLOR
    return EVENT_COLORS.get(str(color_id), DEFAULT_EVENT_COLOR)


def pick_date(field: Optional[dict]) -> Optional[str]:
    """Prefer the timed ``dateTime`` value, fall back to all-day ``date``."""
    if not field:
        return None
    return field.get("dateTime") or field.get("date")


def to_display_event(item: dict[str, Any]) -> DisplayEvent:
    """Reshape one Calendar API event item."""
    return DisplayEvent(
        id=item.get("id", ""),
        title=item.get("summary", ""),
        start=pick_date(item.get("start")),
        end=pick_date(item.get("end")),
        description=item.get("description") or "",
        color=event_color(item.get("colorId")),
    )


def to_utc_timestamp(value: str, local_tz: Optional[tzinfo] = None) -> str:
    """
    Convert a form date/time string to a UTC RFC 3339 timestamp.

    Args:
        value: ``datetime-local`` style input (``2024-06-01T10:00``) or a date
        local_tz: Zone for values without an offset (defaults to the host's)

    Returns:
        Timestamp such as ``2024-06-01T08:00:00.000Z``
    """
    # A bare date parses as local midnight
    moment = date_parser.isoparse(value)
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=local_tz) if local_tz else moment.astimezone()

    utc = moment.astimezone(timezone.utc)
    return utc.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def draft_to_event_body(draft: EventDraft, local_tz: Optional[tzinfo] = None) -> dict:
    """Build a Calendar API event body from the create-event form.

    Raises:
        ValueError: if title, start or end is empty
    """
    missing = [name for name in ("title", "start", "end") if not getattr(draft, name).strip()]
    if missing:
        raise ValueError(f"Missing required fields: {', '.join(missing)}")

    return {
        "summary": draft.title,
        "description": draft.description,
        "start": {"dateTime": to_utc_timestamp(draft.start, local_tz)},
        "end": {"dateTime": to_utc_timestamp(draft.end, local_tz)},
    }
