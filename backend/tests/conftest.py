"""Shared fixtures for the Calendar Hub test suite.

Covers:
- Isolated configuration and a throwaway SQLite database per test
- A stub Google OAuth provider served through ``httpx.MockTransport``
- A fake calendar handle that records calls and echoes inserted events
- An app factory wired with those fakes through ``dependency_overrides``
"""

from __future__ import annotations

import copy
import itertools
from urllib.parse import parse_qs, urlparse

import httpx
import pytest

from calendar_hub.config import Config, DatabaseConfig, GoogleConfig, ServerConfig, reset_config
from calendar_hub.exceptions import UpstreamCalendarError
from calendar_hub.models.database import close_db, init_db
from calendar_hub.services.calendar import get_calendar_client_factory
from calendar_hub.services.oauth import OAuthService, get_oauth_service
from calendar_hub.services.session import SessionStore, get_session_store

CLIENT_URL = "http://localhost:5173"
CALLBACK_URL = "http://test/api/auth/google/callback"
TOKEN_URL = "https://oauth.example.test/token"
USERINFO_URL = "https://oauth.example.test/userinfo"
AUTHORIZE_URL = "https://oauth.example.test/authorize"


@pytest.fixture
def config(tmp_path):
    cfg = Config(
        server=ServerConfig(client_url=CLIENT_URL),
        database=DatabaseConfig(path=str(tmp_path / "test.db")),
        google=GoogleConfig(
            client_id="cid",
            client_secret="secret",
            callback_url=CALLBACK_URL,
            authorization_url=AUTHORIZE_URL,
            token_url=TOKEN_URL,
            userinfo_url=USERINFO_URL,
        ),
    )
    reset_config(cfg)
    yield cfg
    reset_config(None)


@pytest.fixture
async def db(config, tmp_path):
    await init_db(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    yield
    await close_db()


@pytest.fixture
async def db_session(db):
    from calendar_hub.models import database

    async with database._async_session_factory() as session:
        yield session


# ---------------------------------------------------------------------------
# Stub identity provider
# ---------------------------------------------------------------------------


class StubGoogle:
    """Token and userinfo endpoints keyed by authorization code."""

    def __init__(self):
        # code -> (token response, userinfo response)
        self.grants: dict[str, tuple[dict, dict]] = {}
        self.requests: list[httpx.Request] = []

    def add_grant(
        self,
        code: str,
        *,
        sub: str = "google-123",
        name: str = "Ada Lovelace",
        email: str = "ada@example.com",
        access_token: str | None = "access-1",
        refresh_token: str | None = "refresh-1",
    ) -> None:
        tokens = {"token_type": "Bearer", "expires_in": 3599}
        if access_token is not None:
            tokens["access_token"] = access_token
        if refresh_token is not None:
            tokens["refresh_token"] = refresh_token
        self.grants[code] = (tokens, {"sub": sub, "name": name, "email": email})

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        url = str(request.url)

        if url.startswith(TOKEN_URL):
            form = parse_qs(request.content.decode())
            code = form.get("code", [""])[0]
            if code not in self.grants:
                return httpx.Response(400, json={"error": "invalid_grant"})
            return httpx.Response(200, json=self.grants[code][0])

        if url.startswith(USERINFO_URL):
            bearer = request.headers.get("Authorization", "").removeprefix("Bearer ")
            for tokens, userinfo in self.grants.values():
                if tokens.get("access_token") == bearer:
                    return httpx.Response(200, json=userinfo)
            return httpx.Response(401, json={"error": "invalid_token"})

        return httpx.Response(404)


@pytest.fixture
def stub_google():
    return StubGoogle()


@pytest.fixture
async def oauth_service(config, stub_google):
    service = OAuthService(
        google=config.google,
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(stub_google.handler)),
    )
    yield service
    await service.aclose()


# ---------------------------------------------------------------------------
# Fake calendar handle
# ---------------------------------------------------------------------------


class FakeCalendarClient:
    """In-memory stand-in for ``CalendarClient``."""

    def __init__(self, calendars: list[dict] | None = None, fail_with: str | None = None):
        self.calendars = calendars if calendars is not None else [
            {"id": "primary", "summary": "Ada Lovelace", "backgroundColor": "#9fe1e7"},
        ]
        self.events: dict[str, dict] = {}
        self.calls: list[tuple] = []
        self.fail_with = fail_with
        self._ids = itertools.count(1)

    def _record(self, *call):
        self.calls.append(call)
        if self.fail_with:
            raise UpstreamCalendarError(self.fail_with)

    async def list_calendars(self) -> list[dict]:
        self._record("list_calendars")
        return copy.deepcopy(self.calendars)

    async def list_events(self, time_min=None, time_max=None) -> list[dict]:
        self._record("list_events", time_min, time_max)
        return [copy.deepcopy(e) for e in self.events.values()]

    async def get_event(self, event_id: str) -> dict:
        self._record("get_event", event_id)
        return copy.deepcopy(self.events[event_id])

    async def insert_event(self, body: dict) -> dict:
        self._record("insert_event", copy.deepcopy(body))
        created = {**copy.deepcopy(body), "id": f"evt{next(self._ids)}", "status": "confirmed"}
        self.events[created["id"]] = created
        return copy.deepcopy(created)

    async def update_event(self, event_id: str, body: dict) -> dict:
        self._record("update_event", event_id, copy.deepcopy(body))
        updated = {**copy.deepcopy(body), "id": event_id}
        self.events[event_id] = updated
        return copy.deepcopy(updated)

    async def delete_event(self, event_id: str) -> None:
        self._record("delete_event", event_id)
        self.events.pop(event_id, None)


@pytest.fixture
def fake_calendar():
    return FakeCalendarClient()


@pytest.fixture
def session_store():
    return SessionStore()


@pytest.fixture
def app(db, oauth_service, session_store, fake_calendar):
    from calendar_hub.main import create_app

    application = create_app()
    application.dependency_overrides[get_oauth_service] = lambda: oauth_service
    application.dependency_overrides[get_session_store] = lambda: session_store
    application.dependency_overrides[get_calendar_client_factory] = lambda: (lambda user: fake_calendar)
    yield application
    application.dependency_overrides.clear()


@pytest.fixture
async def client(app):
    async with httpx.AsyncClient(
        transport=httpx.ASGITransport(app=app), base_url="http://test"
    ) as http:
        yield http


@pytest.fixture
def log_in(client, stub_google):
    """Run the authorize + callback round trip, returning the callback response."""

    async def _log_in(code: str = "good-code", **grant) -> httpx.Response:
        if code not in stub_google.grants:
            stub_google.add_grant(code, **grant)
        authorize = await client.get("/api/auth/google")
        assert authorize.status_code == 307
        state = parse_qs(urlparse(authorize.headers["location"]).query)["state"][0]
        return await client.get(
            "/api/auth/google/callback", params={"code": code, "state": state}
        )

    return _log_in
