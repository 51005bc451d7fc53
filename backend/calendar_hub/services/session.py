"""In-memory session store mapping opaque cookie values to user ids."""

import logging
import secrets
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Callable, Optional

from ..config import get_config

logger = logging.getLogger(__name__)


@dataclass
class Session:
    """Server-side session record."""

    session_id: str
    user_id: int
    created_at: datetime


@dataclass
class SessionStore:
    """
    Session storage with a fixed lifetime counted from creation.

    Lookups never raise: an unknown, destroyed or expired session id
    resolves to ``None``, which callers treat as "not authenticated".
    """

    ttl: timedelta = field(default_factory=lambda: timedelta(hours=24))
    clock: Callable[[], datetime] = datetime.utcnow
    _sessions: dict[str, Session] = field(default_factory=dict)

    def create(self, user_id: int) -> str:
        """Create a session for a user and return its cookie value."""
        session_id = secrets.token_urlsafe(32)
        self._sessions[session_id] = Session(
            session_id=session_id,
            user_id=user_id,
            created_at=self.clock(),
        )
        logger.debug(f"Session created for user {user_id}")
        return session_id

    def resolve(self, session_id: Optional[str]) -> Optional[int]:
        """Return the user id bound to a session, or None."""
        if not session_id:
            return None

        session = self._sessions.get(session_id)
        if session is None:
            return None

        if self._is_expired(session):
            self.destroy(session_id)
            return None

        return session.user_id

    def destroy(self, session_id: Optional[str]) -> None:
        """Invalidate (logout) a session."""
        if session_id:
            self._sessions.pop(session_id, None)

    def purge_expired(self) -> int:
        """Drop every expired session, returning how many were removed."""
        expired = [
            session_id for session_id, session in self._sessions.items()
            if self._is_expired(session)
        ]
        for session_id in expired:
            del self._sessions[session_id]
        return len(expired)

    def __len__(self) -> int:
        return len(self._sessions)

    def _is_expired(self, session: Session) -> bool:
        return self.clock() - session.created_at >= self.ttl


# Global singleton instance
_session_store: Optional[SessionStore] = None


def get_session_store() -> SessionStore:
    """Get the global session store instance."""
    global _session_store
    if _session_store is None:
        config = get_config()
        _session_store = SessionStore(ttl=timedelta(hours=config.session.ttl_hours))
    return _session_store
