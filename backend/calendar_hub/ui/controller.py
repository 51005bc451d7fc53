"""Client-side controller driving the UI state against the API."""

import logging
from typing import Optional

import httpx

from .presenter import draft_to_event_body, to_display_event
from .state import (
    Action,
    AuthStatusLoaded,
    CalendarsLoaded,
    DateClicked,
    DraftChanged,
    EventSaved,
    EventsLoaded,
    LoggedOut,
    ModalCancelled,
    Navigate,
    UIState,
    View,
    reduce,
)

logger = logging.getLogger(__name__)


class CalendarUIController:
    """
    Runs the UI shell's data flow over an HTTP client.

    The client must keep cookies between requests (``httpx.AsyncClient``
    does) so the session set by the login callback is sent back.
    """

    def __init__(self, http: httpx.AsyncClient, api_base: str = ""):
        self.http = http
        self.api_base = api_base.rstrip("/")
        self.state = UIState()

    @property
    def login_url(self) -> str:
        """URL the browser is sent to for "Sign in with Google"."""
        return f"{self.api_base}/api/auth/google"

    def dispatch(self, action: Action) -> UIState:
        self.state = reduce(self.state, action)
        return self.state

    async def load(self) -> UIState:
        """Check the session; authenticated users land on the dashboard."""
        try:
            response = await self.http.get(f"{self.api_base}/api/auth/status")
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPError as e:
            logger.error(f"Failed to check auth status: {e}")
            return self.dispatch(AuthStatusLoaded(is_authenticated=False))

        self.dispatch(AuthStatusLoaded(
            is_authenticated=bool(data.get("isAuthenticated")),
            user=data.get("user"),
        ))
        if self.state.view is View.DASHBOARD:
            await self.fetch_calendars()
        return self.state

    def go_home(self) -> UIState:
        return self.dispatch(Navigate(View.HOME))

    async def show_dashboard(self) -> UIState:
        self.dispatch(Navigate(View.DASHBOARD))
        if self.state.view is View.DASHBOARD:
            await self.fetch_calendars()
        return self.state

    async def show_calendar(self) -> UIState:
        self.dispatch(Navigate(View.CALENDAR))
        if self.state.view is View.CALENDAR:
            await self.fetch_events()
        return self.state

    async def fetch_calendars(self) -> None:
        generation = self.state.generation
        try:
            response = await self.http.get(f"{self.api_base}/api/calendar/list")
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.error(f"Failed to fetch calendar list: {e}")
            return
        self.dispatch(CalendarsLoaded(generation, tuple(response.json())))

    async def fetch_events(
        self, time_min: Optional[str] = None, time_max: Optional[str] = None
    ) -> None:
        generation = self.state.generation
        params = {}
        if time_min:
            params["timeMin"] = time_min
        if time_max:
            params["timeMax"] = time_max

        try:
            response = await self.http.get(f"{self.api_base}/api/calendar/events", params=params)
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.error(f"Failed to fetch events: {e}")
            return
        events = tuple(to_display_event(item) for item in response.json())
        self.dispatch(EventsLoaded(generation, events))

    def click_date(self, date: str) -> UIState:
        """Open the create-event form pre-filled with the clicked date."""
        return self.dispatch(DateClicked(date))

    def update_draft(self, **fields: str) -> UIState:
        for name, value in fields.items():
            self.dispatch(DraftChanged(name, value))
        return self.state

    def cancel_modal(self) -> UIState:
        return self.dispatch(ModalCancelled())

    async def submit_event(self) -> bool:
        """Create the drafted event, then close the form and refresh events.

        Returns whether the event was created; the form stays open otherwise.
        """
        try:
            body = draft_to_event_body(self.state.draft)
        except ValueError as e:
            logger.warning(f"Event form incomplete: {e}")
            return False

        try:
            response = await self.http.post(f"{self.api_base}/api/calendar/events", json=body)
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.error(f"Failed to create event: {e}")
            return False

        self.dispatch(EventSaved())
        await self.fetch_events()
        return True

    async def logout(self) -> UIState:
        try:
            response = await self.http.get(f"{self.api_base}/api/auth/logout")
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.error(f"Logout failed: {e}")
            return self.state
        return self.dispatch(LoggedOut())
