"""Authentication API routes."""

import logging
from typing import Optional
from urllib.parse import quote

import httpx
from fastapi import APIRouter, Cookie, Depends, Response
from fastapi.responses import RedirectResponse
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import get_config
from ..exceptions import AuthExchangeError, NotAuthenticated
from ..models.database import get_db
from ..models.user import User
from ..services.oauth import OAuthService, get_oauth_service
from ..services.session import SessionStore, get_session_store
from ..services.user import UserService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["auth"])

SESSION_COOKIE = "session_id"


class UserResponse(BaseModel):
    id: int
    name: Optional[str]
    email: Optional[str]


class AuthStatusResponse(BaseModel):
    isAuthenticated: bool
    user: Optional[UserResponse] = None


async def get_optional_user(
    session_id: Optional[str] = Cookie(None, alias=SESSION_COOKIE),
    sessions: SessionStore = Depends(get_session_store),
    db: AsyncSession = Depends(get_db),
) -> Optional[User]:
    """Dependency to get the user behind the session cookie, if any."""
    user_id = sessions.resolve(session_id)
    if user_id is None:
        return None

    user = await UserService(db).get_user_by_id(user_id)
    if user is None:
        # Session outlived its user row
        sessions.destroy(session_id)
    return user


async def get_current_user(user: Optional[User] = Depends(get_optional_user)) -> User:
    """Dependency that rejects requests without a valid session."""
    if user is None:
        raise NotAuthenticated()
    return user


def _landing_redirect(reason: str) -> RedirectResponse:
    client_url = get_config().server.client_url.rstrip("/")
    return RedirectResponse(url=f"{client_url}/?error={quote(reason)}")


@router.get("/google")
async def google_authorize(oauth: OAuthService = Depends(get_oauth_service)):
    """Redirect the browser to Google's consent screen."""
    try:
        auth_url = await oauth.get_authorization_url(get_config().google.callback_url)
    except (httpx.HTTPError, KeyError, ValueError) as e:
        logger.error(f"Failed to build authorization URL: {e}")
        return _landing_redirect("provider_unavailable")

    return RedirectResponse(url=auth_url)


@router.get("/google/callback", name="auth_callback")
async def google_callback(
    code: Optional[str] = None,
    state: Optional[str] = None,
    error: Optional[str] = None,
    db: AsyncSession = Depends(get_db),
    oauth: OAuthService = Depends(get_oauth_service),
    sessions: SessionStore = Depends(get_session_store),
):
    """Handle the OAuth callback, start a session and return to the UI."""
    config = get_config()

    # Handle error from provider (e.g. consent denied)
    if error:
        return _landing_redirect(error)

    if not code or not state:
        return _landing_redirect("invalid_callback")

    if not oauth.validate_state(state):
        return _landing_redirect("invalid_state")

    try:
        user = await oauth.handle_callback(db, code, config.google.callback_url)
    except AuthExchangeError as e:
        logger.warning(f"Login failed: {e.message}")
        return _landing_redirect("authentication_failed")

    session_id = sessions.create(user.id)

    response = RedirectResponse(url=config.server.client_url)
    response.set_cookie(
        key=SESSION_COOKIE,
        value=session_id,
        httponly=True,
        secure=config.server.production,
        samesite="lax",
        max_age=config.session.ttl_hours * 3600,
    )
    return response


@router.get("/status", response_model=AuthStatusResponse, response_model_exclude_none=True)
async def auth_status(user: Optional[User] = Depends(get_optional_user)):
    """Report whether the request carries a valid session."""
    if user is None:
        return AuthStatusResponse(isAuthenticated=False)

    return AuthStatusResponse(
        isAuthenticated=True,
        user=UserResponse(id=user.id, name=user.name, email=user.email),
    )


@router.api_route("/logout", methods=["GET", "POST"])
async def logout(
    response: Response,
    user: User = Depends(get_current_user),
    session_id: Optional[str] = Cookie(None, alias=SESSION_COOKIE),
    sessions: SessionStore = Depends(get_session_store),
):
    """Log out the current user."""
    sessions.destroy(session_id)
    response.delete_cookie(
        key=SESSION_COOKIE,
        httponly=True,
        secure=get_config().server.production,
        samesite="lax",
    )
    logger.info(f"User {user.id} logged out")
    return {"success": True}
