"""Tests for controller authentication sessions."""

import asyncio
import json
from datetime import timedelta

import httpx
import pytest
import respx

from vouchermanager.core.controller.session import ApiKeySession, CookieSession
from vouchermanager.errors import AuthError

BASE_URL = "https://unifi.test"


class ManualClock:
    def __init__(self) -> None:
        self.value = 1000.0

    def __call__(self) -> float:
        return self.value


@pytest.fixture
async def http():
    async with httpx.AsyncClient(base_url=BASE_URL) as client:
        yield client


@pytest.fixture
def mock_router():
    with respx.mock(base_url=BASE_URL, assert_all_called=False) as router:
        yield router


class TestCookieSession:
    """Tests for the legacy username/password session."""

    async def test_login_once_while_valid(self, http, mock_router):
        """Test a valid session does not log in again."""
        login = mock_router.post("/api/login").mock(return_value=httpx.Response(200, json={"meta": {"rc": "ok"}}))
        session = CookieSession(http, "/api/login", "admin", "secret")

        await session.ensure_authenticated()
        await session.ensure_authenticated()

        assert login.call_count == 1
        assert session.is_valid
        assert json.loads(login.calls.last.request.content) == {
            "username": "admin",
            "password": "secret",
            "remember": False,
        }

    async def test_relogin_after_ttl(self, http, mock_router):
        """Test the session is renewed once its lifetime has passed."""
        login = mock_router.post("/api/login").mock(return_value=httpx.Response(200))
        clock = ManualClock()
        session = CookieSession(http, "/api/login", "admin", "secret", ttl=timedelta(minutes=30), clock=clock)

        await session.ensure_authenticated()
        clock.value += 29 * 60
        assert session.is_valid
        clock.value += 2 * 60
        assert not session.is_valid
        await session.ensure_authenticated()

        assert login.call_count == 2

    async def test_invalidate_forces_login(self, http, mock_router):
        """Test invalidate drops the session."""
        login = mock_router.post("/api/login").mock(return_value=httpx.Response(200))
        session = CookieSession(http, "/api/login", "admin", "secret")

        await session.ensure_authenticated()
        session.invalidate()
        assert not session.is_valid
        await session.ensure_authenticated()

        assert login.call_count == 2

    async def test_concurrent_callers_share_one_login(self, http, mock_router):
        """Test simultaneous requests on an expired session trigger a single login."""
        login = mock_router.post("/api/login").mock(return_value=httpx.Response(200))
        session = CookieSession(http, "/api/login", "admin", "secret")

        await asyncio.gather(*(session.ensure_authenticated() for _ in range(5)))

        assert login.call_count == 1

    async def test_rejected_credentials(self, http, mock_router):
        """Test a non-2xx login raises AuthError and leaves the session invalid."""
        mock_router.post("/api/login").mock(return_value=httpx.Response(400, json={"meta": {"rc": "error"}}))
        session = CookieSession(http, "/api/login", "admin", "wrong")

        with pytest.raises(AuthError):
            await session.ensure_authenticated()
        assert not session.is_valid

    async def test_unreachable_controller(self, http, mock_router):
        """Test a transport failure during login raises AuthError."""
        mock_router.post("/api/login").mock(side_effect=httpx.ConnectError("refused"))
        session = CookieSession(http, "/api/login", "admin", "secret")

        with pytest.raises(AuthError):
            await session.ensure_authenticated()


class TestApiKeySession:
    """Tests for the integration API key session."""

    async def test_key_sent_as_header(self, http, mock_router):
        """Test the key is attached to every request of the shared client."""
        route = mock_router.get("/ping").mock(return_value=httpx.Response(200))
        session = ApiKeySession(http, "key-123")

        await session.ensure_authenticated()
        await http.get("/ping")

        assert session.is_valid
        assert route.calls.last.request.headers["X-API-KEY"] == "key-123"

    async def test_invalidate_keeps_session(self, http):
        """Test invalidation is a no-op for API keys."""
        session = ApiKeySession(http, "key-123")
        session.invalidate()
        assert session.is_valid
