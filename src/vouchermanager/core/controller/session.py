"""Controller authentication state."""

import asyncio
import time
from collections.abc import Callable
from datetime import timedelta
from typing import Protocol

import httpx
import structlog

from vouchermanager.errors import AuthError

logger = structlog.get_logger(__name__)

SESSION_TTL = timedelta(minutes=30)


class Authenticator(Protocol):
    """Keeps the shared HTTP client authorized for controller calls."""

    @property
    def is_valid(self) -> bool: ...

    async def ensure_authenticated(self) -> None: ...

    def invalidate(self) -> None: ...


class CookieSession:
    """Username/password session of the legacy controller API.

    The controller answers the login with a session cookie that the shared
    ``httpx.AsyncClient`` replays on every following request. Controllers drop
    sessions silently, so we assume a fixed lifetime and log in again after it.
    """

    def __init__(
        self,
        http: httpx.AsyncClient,
        login_url: str,
        username: str,
        password: str,
        ttl: timedelta = SESSION_TTL,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._http = http
        self._login_url = login_url
        self._username = username
        self._password = password
        self._ttl = ttl.total_seconds()
        self._clock = clock
        self._expiry: float | None = None
        # Held only while a login exchange runs, readers check expiry without it
        self._login_lock = asyncio.Lock()

    @property
    def is_valid(self) -> bool:
        return self._expiry is not None and self._clock() < self._expiry

    async def ensure_authenticated(self) -> None:
        if self.is_valid:
            return
        async with self._login_lock:
            # Another task may have logged in while we waited for the lock
            if self.is_valid:
                return
            logger.info("controller_session_expired_reauthenticating", login_url=self._login_url)
            await self._login()

    def invalidate(self) -> None:
        self._expiry = None

    async def _login(self) -> None:
        body = {"username": self._username, "password": self._password, "remember": False}
        try:
            response = await self._http.post(self._login_url, json=body)
        except httpx.TransportError as e:
            logger.error("controller_login_unreachable", login_url=self._login_url, error=str(e))
            raise AuthError(f"Login request failed: {e}") from e

        if not response.is_success:
            logger.error("controller_login_failed", status=response.status_code, body=response.text)
            raise AuthError(f"Authentication failed with status {response.status_code}")

        self._expiry = self._clock() + self._ttl
        logger.info("controller_login_succeeded", expires_in_minutes=int(self._ttl // 60))


class ApiKeySession:
    """API key authentication of the integration API.

    The key travels as a default header of the shared client, so there is no
    exchange to perform and nothing to expire. A rejected key still surfaces as
    ``AuthError`` through the request executor.
    """

    def __init__(self, http: httpx.AsyncClient, api_key: str) -> None:
        http.headers["X-API-KEY"] = api_key

    @property
    def is_valid(self) -> bool:
        return True

    async def ensure_authenticated(self) -> None:
        return None

    def invalidate(self) -> None:
        logger.debug("api_key_session_invalidate_ignored")
