"""Google Calendar service bound to one user's stored tokens."""

import asyncio
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Optional

from google.oauth2.credentials import Credentials
from googleapiclient.discovery import build

from ..config import GoogleConfig, get_config
from ..exceptions import UpstreamCalendarError
from ..models.user import User

logger = logging.getLogger(__name__)

# Window used by list_events when the caller gives no bounds
DEFAULT_EVENT_WINDOW = timedelta(days=30)


def isoformat_utc(moment: datetime) -> str:
    """Format a datetime as the RFC 3339 string the Calendar API expects."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def default_event_window(now: Optional[datetime] = None) -> tuple[str, str]:
    """Return (timeMin, timeMax) covering the next 30 days."""
    if now is None:
        now = datetime.now(timezone.utc)
    return isoformat_utc(now), isoformat_utc(now + DEFAULT_EVENT_WINDOW)


class CalendarClient:
    """Calendar API handle for a single user.

    Stored tokens are passed to the Google client verbatim. Any failure
    from the API is logged and re-raised as ``UpstreamCalendarError``.
    """

    def __init__(self, credentials: Credentials, calendar_id: str = "primary", service=None):
        self.credentials = credentials
        self.calendar_id = calendar_id
        self._service = service

    def _get_service(self):
        """Get or create the Calendar API client."""
        if self._service is None:
            self._service = build(
                "calendar", "v3",
                credentials=self.credentials,
                cache_discovery=False,
            )
        return self._service

    async def _execute(self, description: str, error_message: str, request_factory: Callable[[Any], Any]):
        """Build and run one API request off the event loop."""
        try:
            service = self._get_service()
            request = request_factory(service)
            return await asyncio.to_thread(request.execute)
        except Exception as e:
            logger.error(f"Error {description}: {e}")
            raise UpstreamCalendarError(error_message) from e

    async def list_calendars(self) -> list[dict]:
        """List the calendars on the user's calendar list."""
        result = await self._execute(
            "fetching calendar list",
            "Failed to fetch calendars",
            lambda service: service.calendarList().list(),
        )
        return result.get("items", [])

    async def list_events(
        self,
        time_min: Optional[str] = None,
        time_max: Optional[str] = None,
    ) -> list[dict]:
        """
        List events between two instants, recurring events expanded.

        Args:
            time_min: RFC 3339 lower bound (defaults to now)
            time_max: RFC 3339 upper bound (defaults to now + 30 days)

        Returns:
            The provider's raw event items, ordered by start time
        """
        default_min, default_max = default_event_window()
        time_min = time_min or default_min
        time_max = time_max or default_max

        result = await self._execute(
            "fetching events",
            "Failed to fetch events",
            lambda service: service.events().list(
                calendarId=self.calendar_id,
                timeMin=time_min,
                timeMax=time_max,
                singleEvents=True,
                orderBy="startTime",
            ),
        )
        return result.get("items", [])

    async def get_event(self, event_id: str) -> dict:
        """Get a single event."""
        return await self._execute(
            f"fetching event {event_id}",
            "Failed to fetch event",
            lambda service: service.events().get(
                calendarId=self.calendar_id, eventId=event_id
            ),
        )

    async def insert_event(self, body: dict) -> dict:
        """Create an event from a calendar-shaped body."""
        created = await self._execute(
            "creating event",
            "Failed to create event",
            lambda service: service.events().insert(
                calendarId=self.calendar_id, body=body
            ),
        )
        logger.info(f"Event created: {created.get('id')}")
        return created

    async def update_event(self, event_id: str, body: dict) -> dict:
        """Replace an event with the given body."""
        return await self._execute(
            f"updating event {event_id}",
            "Failed to update event",
            lambda service: service.events().update(
                calendarId=self.calendar_id, eventId=event_id, body=body
            ),
        )

    async def delete_event(self, event_id: str) -> None:
        """Delete an event."""
        await self._execute(
            f"deleting event {event_id}",
            "Failed to delete event",
            lambda service: service.events().delete(
                calendarId=self.calendar_id, eventId=event_id
            ),
        )
        logger.info(f"Event deleted: {event_id}")


def build_credentials(user: User, google: GoogleConfig) -> Credentials:
    """Credentials carrying the user's stored token pair."""
    return Credentials(
        token=user.access_token,
        refresh_token=user.refresh_token,
        token_uri=google.token_url,
        client_id=google.client_id,
        client_secret=google.client_secret,
        scopes=google.scopes,
    )


def calendar_client_for(user: User) -> CalendarClient:
    """Return a calendar handle pre-configured with the user's tokens."""
    google = get_config().google
    return CalendarClient(build_credentials(user, google), calendar_id=google.calendar_id)


def get_calendar_client_factory() -> Callable[[User], CalendarClient]:
    """Dependency returning the factory routes use to build calendar handles."""
    return calendar_client_for
