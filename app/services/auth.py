"""Session handling and request signing for the media server."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import AsyncGenerator, Sequence
from urllib.parse import quote_plus

import httpx
from pydantic import ValidationError

from ..models import DeviceIdentity, LoginResponse
from ..preferences import PreferenceStore

logger = logging.getLogger(__name__)

AUTH_SCHEME = "MediaBrowser"
LOGIN_PATH = "/Users/AuthenticateByName"
ACCESS_TOKEN_KEY = "access_token"
USER_ID_KEY = "user_id"


class SessionUnavailableError(RuntimeError):
    """Raised when a request needs a session but the login did not succeed."""


def build_auth_header(device: DeviceIdentity, token: str | None = None) -> str:
    """Return the ``Authorization`` value identifying this client.

    Pairs keep a fixed order and ``None`` values are dropped entirely.
    """

    params: Sequence[tuple[str, str | None]] = (
        ("Client", device.client_name),
        ("Version", device.version),
        ("DeviceId", device.device_id),
        ("Device", device.device_name),
        ("Token", token),
    )
    encoded = [
        f'{key}="{quote_plus(" ".join(value.split()))}"'
        for key, value in params
        if value is not None
    ]
    return f"{AUTH_SCHEME} " + ", ".join(encoded)


@dataclass(slots=True)
class Session:
    access_token: str = ""
    user_id: str = ""

    @property
    def is_authenticated(self) -> bool:
        return bool(self.access_token)


@dataclass(slots=True)
class LoginResult:
    """Outcome of establishing a session."""

    session: Session
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


class SessionManager:
    """Owns the cached access token and performs logins on demand."""

    def __init__(
        self,
        base_url: str,
        username: str,
        password: str,
        device: DeviceIdentity,
        http_client: httpx.AsyncClient,
        store: PreferenceStore | None = None,
    ):
        self._base_url = base_url.rstrip("/")
        self._username = username
        self._password = password
        self._device = device
        self._client = http_client
        self._store = store
        self._session = Session()
        self._loaded = store is None
        self._lock = asyncio.Lock()
        self._attempts = 0
        self._last_result: LoginResult | None = None

    @property
    def base_url(self) -> str:
        return self._base_url

    @property
    def device(self) -> DeviceIdentity:
        return self._device

    @property
    def session(self) -> Session:
        return self._session

    @property
    def login_attempts(self) -> int:
        return self._attempts

    def authorization_header(self) -> str:
        """Return the signed header for the current session."""

        return build_auth_header(self._device, self._session.access_token or None)

    async def ensure_session(self) -> Session:
        """Return the cached session, logging in first when it is empty."""

        return (await self.ensure_login()).session

    async def ensure_login(self) -> LoginResult:
        """Like :meth:`ensure_session` but reports why a login failed.

        Only one login runs at a time. Callers that waited on an attempt made
        by someone else get that attempt's result.
        """

        if self._loaded and self._session.is_authenticated:
            return LoginResult(session=self._session)

        seen_attempts = self._attempts
        async with self._lock:
            if not self._loaded:
                await self._load()
            if self._session.is_authenticated:
                return LoginResult(session=self._session)
            if self._attempts != seen_attempts and self._last_result is not None:
                return self._last_result
            self._attempts += 1
            self._last_result = await self._login()
            return self._last_result

    async def _load(self) -> None:
        self._loaded = True
        if self._store is None:
            return
        access_token = await self._store.get(ACCESS_TOKEN_KEY, "")
        user_id = await self._store.get(USER_ID_KEY, "")
        if access_token:
            self._session = Session(access_token=access_token, user_id=user_id or "")
            logger.debug("Restored persisted session for user %s", user_id)

    async def _login(self) -> LoginResult:
        url = f"{self._base_url}{LOGIN_PATH}"
        try:
            response = await self._client.post(
                url,
                headers={"Authorization": build_auth_header(self._device)},
                json={"Username": self._username, "Pw": self._password},
            )
        except httpx.HTTPError as exc:
            logger.warning("Login to %s failed: %s", self._base_url, exc, exc_info=True)
            return LoginResult(session=self._session, error=f"transport error: {exc}")

        if not response.is_success:
            logger.warning(
                "Login to %s rejected with status %s", self._base_url, response.status_code
            )
            return LoginResult(
                session=self._session, error=f"login rejected ({response.status_code})"
            )

        try:
            payload = LoginResponse.model_validate(response.json())
        except (ValueError, ValidationError) as exc:
            logger.warning("Unexpected login response from %s: %s", self._base_url, exc)
            return LoginResult(session=self._session, error="malformed login response")

        self._session = Session(
            access_token=payload.access_token,
            user_id=payload.session_info.user_id,
        )
        if self._store is not None:
            await self._store.set_many(
                {
                    ACCESS_TOKEN_KEY: self._session.access_token,
                    USER_ID_KEY: self._session.user_id,
                }
            )
        logger.info("Logged in to %s as user %s", self._base_url, self._session.user_id)
        return LoginResult(session=self._session)


def _origin(url: httpx.URL) -> tuple[str, str, int | None]:
    return url.scheme, url.host, url.port


class SessionAuth(httpx.Auth):
    """Attach the session's ``Authorization`` header to outgoing requests.

    The login request itself passes through untouched, and so do requests
    to any origin other than the media server.
    """

    def __init__(self, sessions: SessionManager, *, require_session: bool = True):
        self._sessions = sessions
        self._require_session = require_session
        self._origin = _origin(httpx.URL(sessions.base_url))

    async def async_auth_flow(
        self, request: httpx.Request
    ) -> AsyncGenerator[httpx.Request, httpx.Response]:
        if _origin(request.url) != self._origin:
            logger.warning("Not signing request to foreign origin %s", request.url.host)
            yield request
            return
        if LOGIN_PATH in request.url.path:
            yield request
            return

        result = await self._sessions.ensure_login()
        if not result.ok and self._require_session:
            raise SessionUnavailableError(result.error or "login failed")

        request.headers["Authorization"] = self._sessions.authorization_header()
        logger.debug("Dispatching %s %s", request.method, request.url)
        yield request
