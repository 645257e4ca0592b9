"""
Handles authentication with the Beatport API: credential login, the OAuth
authorization-code exchange and access token refresh.
"""

import asyncio
import logging
import time
from typing import Any, Optional
from urllib.parse import parse_qs, urlparse

import aiohttp

from beatport_cli.exceptions import AuthenticationError

log = logging.getLogger(__name__)


class BeatportAuthenticator:
    """
    Manages the access token of one Beatport login.

    A single authenticator is shared by the Beatport and Beatsource clients of
    an account, and by every account configured with the same credentials.
    """

    AUTH_URL = "https://api.beatport.com/v4/auth/"
    REDIRECT_URI = "https://api.beatport.com/v4/auth/o/post-message/"

    def __init__(
        self,
        username: str,
        password: str,
        client_id: str,
        proxy: Optional[str] = None,
    ):
        """
        Initializes the authenticator.

        Args:
            username: Beatport account username or email.
            password: Beatport account password.
            client_id: OAuth client ID used for the authorization-code flow.
            proxy: Optional HTTP proxy URL for all auth requests.
        """
        self.username = username
        self._password = password
        self.client_id = client_id
        self.proxy = proxy

        self._access_token: Optional[str] = None
        self._refresh_token: Optional[str] = None
        self._expires_at = 0.0
        self._session: Optional[aiohttp.ClientSession] = None
        self._lock = asyncio.Lock()

    @property
    def is_authenticated(self) -> bool:
        return bool(self._access_token) and time.monotonic() < self._expires_at

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                cookie_jar=aiohttp.CookieJar(),
                timeout=aiohttp.ClientTimeout(total=30, connect=15),
            )
        return self._session

    async def close(self) -> None:
        """Gracefully closes the aiohttp session used for the login flow."""
        if self._session and not self._session.closed:
            await self._session.close()

    async def access_token(self) -> str:
        """
        Returns a valid access token, refreshing or logging in again when the
        cached one has expired. Concurrent callers share one refresh.
        """
        async with self._lock:
            if self.is_authenticated:
                return self._access_token

            if self._refresh_token:
                try:
                    await self._request_token(
                        {
                            "grant_type": "refresh_token",
                            "refresh_token": self._refresh_token,
                            "client_id": self.client_id,
                        }
                    )
                    return self._access_token
                except AuthenticationError as e:
                    log.debug(f"Token refresh for {self.username} failed: {e}")

            await self._login()
            return self._access_token

    def invalidate(self) -> None:
        """Forces the next `access_token()` call to refresh the token."""
        self._expires_at = 0.0

    async def _login(self) -> None:
        log.debug(f"Logging in as: {self.username}")
        session = await self._get_session()

        async with session.post(
            self.AUTH_URL + "login/",
            json={"username": self.username, "password": self._password},
            proxy=self.proxy,
        ) as r:
            if r.status in (400, 401, 403):
                raise AuthenticationError(
                    f"Login failed for '{self.username}': invalid username or password."
                )
            r.raise_for_status()

        async with session.get(
            self.AUTH_URL + "o/authorize/",
            params={
                "client_id": self.client_id,
                "response_type": "code",
                "redirect_uri": self.REDIRECT_URI,
            },
            allow_redirects=False,
            proxy=self.proxy,
        ) as r:
            location = r.headers.get("Location", "")

        code = parse_qs(urlparse(location).query).get("code")
        if not code:
            raise AuthenticationError(
                f"Authorization was refused for '{self.username}'. "
                "Check the configured client_id."
            )

        await self._request_token(
            {
                "grant_type": "authorization_code",
                "code": code[0],
                "client_id": self.client_id,
                "redirect_uri": self.REDIRECT_URI,
            }
        )

    async def _request_token(self, data: dict[str, Any]) -> None:
        session = await self._get_session()
        async with session.post(
            self.AUTH_URL + "o/token/", data=data, proxy=self.proxy
        ) as r:
            if r.status in (400, 401):
                raise AuthenticationError(
                    f"Token request for '{self.username}' was rejected."
                )
            r.raise_for_status()
            payload = await r.json()

        self._access_token = payload["access_token"]
        self._refresh_token = payload.get("refresh_token", self._refresh_token)
        # Refresh a minute early so in-flight calls never carry an expired token
        self._expires_at = time.monotonic() + int(payload.get("expires_in", 600)) - 60
