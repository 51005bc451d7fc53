"""Google OAuth2 authorization-code flow."""

import logging
import secrets
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional
from urllib.parse import urlencode

import httpx
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import GoogleConfig, get_config
from ..exceptions import AuthExchangeError, StoreError
from ..models.user import User
from .user import LoginProfile, UserService

logger = logging.getLogger(__name__)

# One-time state tokens are accepted for 10 minutes
STATE_TTL_SECONDS = 600


@dataclass
class ProviderEndpoints:
    """Resolved OAuth endpoints."""
    authorization_endpoint: str
    token_endpoint: str
    userinfo_endpoint: str


@dataclass
class OAuthService:
    """Service for the Google consent, code exchange and login upsert."""

    google: GoogleConfig
    http_client: Optional[httpx.AsyncClient] = None
    _endpoints: Optional[ProviderEndpoints] = None
    # Store for state tokens (state -> issued at)
    _state_tokens: dict[str, datetime] = field(default_factory=dict)

    def _client(self) -> httpx.AsyncClient:
        if self.http_client is None:
            self.http_client = httpx.AsyncClient(timeout=10.0)
        return self.http_client

    async def _get_endpoints(self) -> ProviderEndpoints:
        """Get provider endpoints, using discovery if configured."""
        if self._endpoints is not None:
            return self._endpoints

        if self.google.discovery_url:
            response = await self._client().get(self.google.discovery_url)
            response.raise_for_status()
            data = response.json()

            endpoints = ProviderEndpoints(
                authorization_endpoint=data["authorization_endpoint"],
                token_endpoint=data["token_endpoint"],
                userinfo_endpoint=data.get("userinfo_endpoint", self.google.userinfo_url),
            )
        else:
            endpoints = ProviderEndpoints(
                authorization_endpoint=self.google.authorization_url,
                token_endpoint=self.google.token_url,
                userinfo_endpoint=self.google.userinfo_url,
            )

        self._endpoints = endpoints
        return endpoints

    async def get_authorization_url(self, redirect_uri: Optional[str] = None) -> str:
        """Build the consent screen URL for starting a login."""
        endpoints = await self._get_endpoints()

        state = secrets.token_urlsafe(32)
        self._state_tokens[state] = datetime.utcnow()
        self._cleanup_state_tokens()

        params = {
            "client_id": self.google.client_id,
            "redirect_uri": redirect_uri or self.google.callback_url,
            "response_type": "code",
            "scope": " ".join(self.google.scopes),
            # Ask for a refresh token even when the user consented before
            "access_type": "offline",
            "prompt": "consent",
            "include_granted_scopes": "true",
            "state": state,
        }

        return f"{endpoints.authorization_endpoint}?{urlencode(params)}"

    def _cleanup_state_tokens(self) -> None:
        now = datetime.utcnow()
        expired = [
            state for state, created in self._state_tokens.items()
            if (now - created).total_seconds() > STATE_TTL_SECONDS
        ]
        for state in expired:
            del self._state_tokens[state]

    def validate_state(self, state: Optional[str]) -> bool:
        """Consume a state token, returning whether it was issued and fresh."""
        if not state or state not in self._state_tokens:
            return False

        created = self._state_tokens.pop(state)
        return (datetime.utcnow() - created).total_seconds() <= STATE_TTL_SECONDS

    async def exchange_code(self, code: str, redirect_uri: Optional[str] = None) -> LoginProfile:
        """Exchange an authorization code for tokens and the user's profile."""
        try:
            endpoints = await self._get_endpoints()
        except httpx.HTTPError as e:
            logger.error(f"Failed to get provider endpoints: {e}")
            raise AuthExchangeError() from e

        client = self._client()

        try:
            token_response = await client.post(
                endpoints.token_endpoint,
                data={
                    "grant_type": "authorization_code",
                    "client_id": self.google.client_id,
                    "client_secret": self.google.client_secret,
                    "code": code,
                    "redirect_uri": redirect_uri or self.google.callback_url,
                },
                headers={"Accept": "application/json"},
            )
            token_response.raise_for_status()
            tokens = token_response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Failed to exchange code for tokens: {e}")
            raise AuthExchangeError() from e

        access_token = tokens.get("access_token")
        if not access_token:
            logger.error("No access token in token response")
            raise AuthExchangeError("No access token received")

        try:
            userinfo_response = await client.get(
                endpoints.userinfo_endpoint,
                headers={"Authorization": f"Bearer {access_token}"},
            )
            userinfo_response.raise_for_status()
            userinfo = userinfo_response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Failed to get user info: {e}")
            raise AuthExchangeError() from e

        external_id = userinfo.get("sub") or userinfo.get("id")
        if not external_id:
            logger.error("No subject id in user info")
            raise AuthExchangeError("Provider returned no account id")

        return LoginProfile(
            external_id=str(external_id),
            name=userinfo.get("name"),
            email=userinfo.get("email"),
            access_token=access_token,
            refresh_token=tokens.get("refresh_token") or None,
        )

    async def handle_callback(
        self, db: AsyncSession, code: str, redirect_uri: Optional[str] = None
    ) -> User:
        """Complete a login: exchange the code, then upsert and commit the user.

        Nothing is written when the exchange fails.
        """
        profile = await self.exchange_code(code, redirect_uri)

        user = await UserService(db).upsert_from_login(profile)
        try:
            await db.commit()
        except SQLAlchemyError as e:
            logger.error(f"Failed to commit login: {e}")
            raise StoreError() from e

        logger.info(f"User {user.id} logged in")
        return user

    async def aclose(self) -> None:
        if self.http_client is not None:
            await self.http_client.aclose()
            self.http_client = None


# Global singleton instance
_oauth_service: Optional[OAuthService] = None


def get_oauth_service() -> OAuthService:
    """Get the global OAuth service instance."""
    global _oauth_service
    if _oauth_service is None:
        _oauth_service = OAuthService(google=get_config().google)
    return _oauth_service
