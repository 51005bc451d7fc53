"""API routers for Calendar Hub."""

from .auth import router as auth_router
from .calendar import router as calendar_router

__all__ = [
    "auth_router",
    "calendar_router",
]
