"""Error types surfaced by the API."""

from typing import Optional


class CalendarHubError(Exception):
    """Base error rendered to clients as ``{"error": message}``."""

    status_code: int = 500
    message: str = "Internal server error"

    def __init__(self, message: Optional[str] = None):
        if message is not None:
            self.message = message
        super().__init__(self.message)


class AuthExchangeError(CalendarHubError):
    """The identity provider did not complete the code exchange."""

    status_code = 400
    message = "Authentication failed"


class NotAuthenticated(CalendarHubError):
    """No valid session is attached to the request."""

    status_code = 401
    message = "Not authenticated"


class UpstreamCalendarError(CalendarHubError):
    """A call to the calendar service failed.

    The underlying cause is chained (``raise ... from exc``) and logged,
    never returned to the client.
    """

    status_code = 500
    message = "Calendar service request failed"


class StoreError(CalendarHubError):
    """Reading or writing the token store failed."""

    status_code = 500
    message = "Internal storage error"
