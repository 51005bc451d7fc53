"""Services for Calendar Hub."""

from .calendar import CalendarClient, calendar_client_for
from .oauth import OAuthService, get_oauth_service
from .session import SessionStore, get_session_store
from .user import LoginProfile, UserService

__all__ = [
    "CalendarClient",
    "calendar_client_for",
    "OAuthService",
    "get_oauth_service",
    "SessionStore",
    "get_session_store",
    "LoginProfile",
    "UserService",
]
