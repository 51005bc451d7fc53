"""Tests for the Google OAuth service."""

from urllib.parse import parse_qs, urlparse

import httpx
import pytest

from calendar_hub.exceptions import AuthExchangeError
from calendar_hub.services.oauth import OAuthService
from calendar_hub.services.user import UserService

from conftest import AUTHORIZE_URL, CALLBACK_URL, TOKEN_URL

pytestmark = pytest.mark.unit


def _query(url: str) -> dict[str, str]:
    return {k: v[0] for k, v in parse_qs(urlparse(url).query).items()}


class TestAuthorizationUrl:
    async def test_requests_offline_access_with_consent(self, oauth_service):
        url = await oauth_service.get_authorization_url()

        assert url.startswith(AUTHORIZE_URL + "?")
        params = _query(url)
        assert params["client_id"] == "cid"
        assert params["redirect_uri"] == CALLBACK_URL
        assert params["response_type"] == "code"
        assert params["access_type"] == "offline"
        assert params["prompt"] == "consent"

    async def test_requests_profile_email_and_calendar_scopes(self, oauth_service):
        scopes = _query(await oauth_service.get_authorization_url())["scope"].split()

        assert "profile" in scopes
        assert "email" in scopes
        assert "https://www.googleapis.com/auth/calendar" in scopes
        assert "https://www.googleapis.com/auth/calendar.events" in scopes

    async def test_uses_discovery_document_when_configured(self, config):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={
                "authorization_endpoint": "https://idp.example.test/auth",
                "token_endpoint": "https://idp.example.test/token",
                "userinfo_endpoint": "https://idp.example.test/userinfo",
            })

        google = config.google.model_copy(update={"discovery_url": "https://idp.example.test/.well-known"})
        service = OAuthService(
            google=google,
            http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
        )
        try:
            url = await service.get_authorization_url()
        finally:
            await service.aclose()

        assert url.startswith("https://idp.example.test/auth?")


class TestState:
    async def test_state_is_single_use(self, oauth_service):
        state = _query(await oauth_service.get_authorization_url())["state"]

        assert oauth_service.validate_state(state) is True
        assert oauth_service.validate_state(state) is False

    @pytest.mark.parametrize("state", [None, "", "forged"])
    def test_unknown_state_rejected(self, oauth_service, state):
        assert oauth_service.validate_state(state) is False


class TestExchangeCode:
    async def test_returns_profile_and_tokens(self, oauth_service, stub_google):
        stub_google.add_grant("code-1", sub="sub-9", access_token="at", refresh_token="rt")

        profile = await oauth_service.exchange_code("code-1")

        assert profile.external_id == "sub-9"
        assert profile.name == "Ada Lovelace"
        assert profile.email == "ada@example.com"
        assert profile.access_token == "at"
        assert profile.refresh_token == "rt"

    async def test_sends_code_and_client_credentials(self, oauth_service, stub_google):
        stub_google.add_grant("code-1")

        await oauth_service.exchange_code("code-1")

        token_request = next(r for r in stub_google.requests if str(r.url).startswith(TOKEN_URL))
        form = {k: v[0] for k, v in parse_qs(token_request.content.decode()).items()}
        assert form == {
            "grant_type": "authorization_code",
            "client_id": "cid",
            "client_secret": "secret",
            "code": "code-1",
            "redirect_uri": CALLBACK_URL,
        }

    async def test_omitted_refresh_token_is_none(self, oauth_service, stub_google):
        stub_google.add_grant("code-1", refresh_token=None)

        profile = await oauth_service.exchange_code("code-1")

        assert profile.refresh_token is None

    async def test_missing_access_token_raises(self, oauth_service, stub_google):
        stub_google.add_grant("code-1", access_token=None)

        with pytest.raises(AuthExchangeError, match="No access token"):
            await oauth_service.exchange_code("code-1")

    async def test_rejected_code_raises(self, oauth_service):
        with pytest.raises(AuthExchangeError):
            await oauth_service.exchange_code("unknown-code")

    async def test_network_failure_raises(self, config):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        service = OAuthService(
            google=config.google,
            http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
        )
        try:
            with pytest.raises(AuthExchangeError):
                await service.exchange_code("code-1")
        finally:
            await service.aclose()


class TestHandleCallback:
    async def test_creates_user(self, oauth_service, stub_google, db_session):
        stub_google.add_grant("code-1")

        user = await oauth_service.handle_callback(db_session, "code-1")

        assert user.external_id == "google-123"
        assert user.access_token == "access-1"
        assert await UserService(db_session).count_users() == 1

    async def test_failed_exchange_writes_nothing(self, oauth_service, stub_google, db_session):
        stub_google.add_grant("code-1", access_token=None)

        with pytest.raises(AuthExchangeError):
            await oauth_service.handle_callback(db_session, "code-1")

        assert await UserService(db_session).count_users() == 0
