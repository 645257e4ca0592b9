"""Tests for token handling and rate limiting of the store API."""

from __future__ import annotations

import asyncio
import time
from typing import Any

import pytest

from beatport_cli.api.auth import BeatportAuthenticator
from beatport_cli.api.rate_limiter import AdaptiveRateLimiter
from beatport_cli.exceptions import AuthenticationError


def _authenticator(
    monkeypatch: pytest.MonkeyPatch,
) -> tuple[BeatportAuthenticator, list[str]]:
    auth = BeatportAuthenticator("me@example.com", "pw", "client")
    calls: list[str] = []

    async def login() -> None:
        calls.append("login")
        await asyncio.sleep(0.01)
        auth._access_token = f"token-{len(calls)}"
        auth._refresh_token = "refresh"
        auth._expires_at = time.monotonic() + 600

    async def request_token(data: dict[str, Any]) -> None:
        calls.append(data["grant_type"])
        if auth.username == "rejected@example.com":
            raise AuthenticationError("Token request was rejected.")
        auth._access_token = "refreshed"
        auth._expires_at = time.monotonic() + 600

    monkeypatch.setattr(auth, "_login", login)
    monkeypatch.setattr(auth, "_request_token", request_token)
    return auth, calls


@pytest.mark.asyncio
async def test_concurrent_callers_share_one_login(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    auth, calls = _authenticator(monkeypatch)

    tokens = await asyncio.gather(*(auth.access_token() for _ in range(5)))

    assert calls == ["login"]
    assert set(tokens) == {"token-1"}
    assert auth.is_authenticated


@pytest.mark.asyncio
async def test_invalidated_token_is_refreshed(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    auth, calls = _authenticator(monkeypatch)
    await auth.access_token()
    auth.invalidate()

    token = await auth.access_token()

    assert token == "refreshed"
    assert calls == ["login", "refresh_token"]


@pytest.mark.asyncio
async def test_rejected_refresh_falls_back_to_login(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    auth, calls = _authenticator(monkeypatch)
    auth.username = "rejected@example.com"
    await auth.access_token()
    auth.invalidate()

    token = await auth.access_token()

    assert token == "token-3"
    assert calls == ["login", "refresh_token", "login"]


@pytest.mark.asyncio
async def test_retry_after_pauses_the_next_call() -> None:
    limiter = AdaptiveRateLimiter(initial_calls_per_second=100, max_calls_per_second=100)
    await limiter.acquire()

    await limiter.on_429(retry_after=0.05)
    started = time.monotonic()
    await limiter.acquire()

    assert time.monotonic() - started >= 0.04
