"""Database models for Calendar Hub."""

from .database import Base, close_db, get_db, init_db
from .user import User

__all__ = [
    "Base",
    "close_db",
    "get_db",
    "init_db",
    "User",
]
