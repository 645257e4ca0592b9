"""Shared fakes standing in for the store API and the HTTP downloader."""

from __future__ import annotations

import asyncio
import time
from pathlib import Path
from typing import Any, Optional

from beatport_cli.core.accounts import Account
from beatport_cli.exceptions import AuthenticationError
from beatport_cli.models.catalog import CatalogURL, Job
from beatport_cli.models.config import AppConfig


def make_track(track_id: int, name: str, *, release: str = "Release", number: int = 1):
    return {
        "id": track_id,
        "name": name,
        "mix_name": "Original Mix",
        "number": number,
        "artists": [{"name": "Artist"}],
        "release": {"id": 1, "name": release},
        "length_ms": 1000,
    }


def make_config(tmp_path: Path, name: str = "main", **overrides: Any) -> AppConfig:
    values: dict[str, Any] = {
        "username": f"{name}@example.com",
        "password": "secret",
        "downloads_directory": str(tmp_path),
        "write_tags": False,
        "account_name": name,
    }
    values.update(overrides)
    return AppConfig(**values)


class FakeAuthenticator:
    def __init__(self) -> None:
        self.closed = 0

    async def close(self) -> None:
        self.closed += 1


class FakeClient:
    """
    Serves jobs from a `{url: (job name, tracks)}` catalog. Setting `broken`
    makes every call fail the way an expired account does; `failure_gate`
    holds failing resolves back until it is set. Resolved jobs carry
    `cover_url` when given.
    """

    def __init__(
        self,
        catalog: Optional[dict[str, tuple[str, list[dict[str, Any]]]]] = None,
        broken: bool = False,
        failure_gate: Optional[asyncio.Event] = None,
        cover_url: Optional[str] = None,
    ):
        self.catalog = catalog or {}
        self.broken = broken
        self.failure_gate = failure_gate
        self.cover_url = cover_url
        self.authenticator = FakeAuthenticator()
        self.resolve_calls = 0
        self.location_calls = 0
        self.closed = False

    async def resolve(self, target: CatalogURL) -> Job:
        self.resolve_calls += 1
        if self.broken:
            if self.failure_gate is not None:
                await self.failure_gate.wait()
            raise AuthenticationError("Session expired.")
        name, tracks = self.catalog[target.url]
        return Job(
            source=target, name=name, tracks=list(tracks), cover_url=self.cover_url
        )

    async def fetch_download_location(self, track_id: str, quality: str) -> dict:
        self.location_calls += 1
        if self.broken:
            raise AuthenticationError("Session expired.")
        return {"location": f"https://cdn.example.com/{track_id}.{quality}"}

    async def close(self) -> None:
        self.closed = True


class FakeDownloader:
    """
    Writes a few bytes instead of streaming. When `gate` is given, every
    transfer waits for it before writing.
    """

    def __init__(self, gate: Optional[asyncio.Event] = None, delay: float = 0.0):
        self.gate = gate
        self.delay = delay
        self.urls: list[str] = []
        self.asset_urls: list[str] = []
        self.active = 0
        self.peak = 0
        self.spans: list[tuple[float, float]] = []

    async def download_file(
        self,
        url: str,
        destination_path: str,
        total_size_estimate: int = 0,
        progress_manager=None,
        task_id=None,
    ) -> int:
        self.urls.append(url)
        self.active += 1
        self.peak = max(self.peak, self.active)
        started = time.monotonic()
        try:
            if self.gate is not None:
                await self.gate.wait()
            if self.delay:
                await asyncio.sleep(self.delay)
            payload = b"audio:" + url.encode()
            Path(destination_path).write_bytes(payload)
            return len(payload)
        finally:
            self.active -= 1
            self.spans.append((started, time.monotonic()))

    async def download_asset(self, url: str, destination_path: str) -> None:
        self.asset_urls.append(url)
        Path(destination_path).write_bytes(b"cover")


def make_account(config: AppConfig, client: FakeClient) -> Account:
    return Account(config.account_name, config, client, client)


def track_url(track_id: int) -> str:
    return f"https://www.beatport.com/track/some-track/{track_id}"


def release_url(release_id: int) -> str:
    return f"https://www.beatport.com/release/some-release/{release_id}"
