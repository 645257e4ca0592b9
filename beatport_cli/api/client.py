"""
Async client for the Beatport / Beatsource catalog API (v4).
"""

import logging
from typing import Any, Dict, List, Optional

import aiohttp

from beatport_cli.exceptions import (
    AuthenticationError,
    InvalidURLError,
    NotDownloadableError,
    RateLimitError,
)
from beatport_cli.models.catalog import CatalogURL, ItemKind, Job, Store
from beatport_cli.utils.formatting import join_artist_names

from .auth import BeatportAuthenticator
from .rate_limiter import AdaptiveRateLimiter

log = logging.getLogger(__name__)


class CatalogClient:
    """
    An authenticated handle to one store's catalog.

    Features:
    - Shared access token with the account's other store handle
    - Adaptive rate limiting
    - Pagination through `next` links
    """

    PAGE_SIZE = 100

    def __init__(
        self,
        store: Store,
        authenticator: BeatportAuthenticator,
        proxy: Optional[str] = None,
        max_connections: int = 8,
    ):
        """
        Initializes the API client.

        Args:
            store: The catalog this handle talks to.
            authenticator: Token provider, possibly shared with other handles.
            proxy: Optional HTTP proxy URL.
            max_connections: Size of the connection pool.
        """
        self.store = store
        self.proxy = proxy
        self.max_connections = max_connections
        self._auth = authenticator
        self._session: Optional[aiohttp.ClientSession] = None
        self._rate_limiter = AdaptiveRateLimiter()

    @property
    def authenticator(self) -> BeatportAuthenticator:
        return self._auth

    async def _initialize_session(self) -> None:
        """Ensures an active aiohttp session is available."""
        if self._session is None or self._session.closed:
            connector = aiohttp.TCPConnector(
                limit=self.max_connections,
                ttl_dns_cache=300,
                enable_cleanup_closed=True,
            )
            self._session = aiohttp.ClientSession(
                connector=connector,
                headers={"Accept": "application/json"},
                timeout=aiohttp.ClientTimeout(total=60, connect=15, sock_read=30),
            )

    async def close(self) -> None:
        """Gracefully closes the aiohttp session."""
        if self._session and not self._session.closed:
            await self._session.close()

    async def authenticate(self) -> None:
        """Makes sure the shared authenticator holds a valid token."""
        await self._auth.access_token()

    async def api_call(self, endpoint: str, **params: Any) -> Dict[str, Any]:
        """
        Makes an authenticated GET request. `endpoint` is either relative to the
        store's API base or an absolute `next` link from a paginated response.
        """
        await self._initialize_session()
        await self._rate_limiter.acquire()

        token = await self._auth.access_token()
        url = endpoint if endpoint.startswith("http") else self.store.api_base + endpoint

        async with self._session.get(
            url,
            params=params or None,
            headers={"Authorization": f"Bearer {token}"},
            proxy=self.proxy,
        ) as r:
            if r.status == 429:
                retry_after = r.headers.get("Retry-After")
                await self._rate_limiter.on_429(
                    float(retry_after) if retry_after and retry_after.isdigit() else None
                )
                raise RateLimitError(
                    f"{self.store.display_name} rate limit exceeded ({endpoint})."
                )
            if r.status in (401, 403):
                self._auth.invalidate()
                raise AuthenticationError(
                    f"{self.store.display_name} rejected the account "
                    f"'{self._auth.username}' (HTTP {r.status})."
                )
            if r.status == 404:
                raise InvalidURLError(
                    f"{self.store.display_name} has no item at '{endpoint}'."
                )
            r.raise_for_status()
            return await r.json()

    async def _collect_paginated(self, endpoint: str) -> List[Dict[str, Any]]:
        items: List[Dict[str, Any]] = []
        next_url: Optional[str] = endpoint
        params: Dict[str, Any] = {"per_page": self.PAGE_SIZE}
        while next_url:
            page = await self.api_call(next_url, **params)
            items.extend(page.get("results", []))
            next_url = page.get("next")
            # `next` links already carry their query string
            params = {}
        return items

    # Public API Methods
    async def fetch_track(self, track_id: str) -> Dict[str, Any]:
        return await self.api_call(f"catalog/tracks/{track_id}/")

    async def fetch_release(self, release_id: str) -> Dict[str, Any]:
        return await self.api_call(f"catalog/releases/{release_id}/")

    async def fetch_release_tracks(self, release_id: str) -> List[Dict[str, Any]]:
        return await self._collect_paginated(f"catalog/releases/{release_id}/tracks/")

    async def fetch_playlist(self, playlist_id: str) -> Dict[str, Any]:
        return await self.api_call(f"catalog/playlists/{playlist_id}/")

    async def fetch_playlist_tracks(self, playlist_id: str) -> List[Dict[str, Any]]:
        entries = await self._collect_paginated(f"catalog/playlists/{playlist_id}/tracks/")
        # Playlist entries wrap the track object together with its position
        return [entry.get("track", entry) for entry in entries]

    async def fetch_chart(self, chart_id: str) -> Dict[str, Any]:
        return await self.api_call(f"catalog/charts/{chart_id}/")

    async def fetch_chart_tracks(self, chart_id: str) -> List[Dict[str, Any]]:
        return await self._collect_paginated(f"catalog/charts/{chart_id}/tracks/")

    async def fetch_download_location(
        self, track_id: str, quality: str
    ) -> Dict[str, Any]:
        """
        Requests a signed download location for a track.

        Returns:
            The API payload, containing at least a 'location' URL.
        """
        data = await self.api_call(
            f"catalog/tracks/{track_id}/download/", quality=quality
        )
        if not data.get("location"):
            raise NotDownloadableError(
                f"{self.store.display_name} returned no download location "
                f"for track {track_id}."
            )
        return data

    async def resolve(self, target: CatalogURL) -> Job:
        """Turns a parsed URL into a job description with its track list."""
        if target.kind is ItemKind.TRACK:
            track = await self.fetch_track(target.item_id)
            release = track.get("release") or {}
            return Job(
                source=target,
                name=f"{join_artist_names(track.get('artists'))} - {track.get('name')}",
                tracks=[track],
                cover_url=(release.get("image") or {}).get("uri"),
            )

        if target.kind is ItemKind.RELEASE:
            release = await self.fetch_release(target.item_id)
            tracks = await self.fetch_release_tracks(target.item_id)
            return Job(
                source=target,
                name=release.get("name", f"Release {target.item_id}"),
                tracks=tracks,
                cover_url=(release.get("image") or {}).get("uri"),
            )

        if target.kind is ItemKind.PLAYLIST:
            playlist = await self.fetch_playlist(target.item_id)
            tracks = await self.fetch_playlist_tracks(target.item_id)
            return Job(
                source=target,
                name=playlist.get("name", f"Playlist {target.item_id}"),
                tracks=tracks,
            )

        chart = await self.fetch_chart(target.item_id)
        tracks = await self.fetch_chart_tracks(target.item_id)
        return Job(
            source=target,
            name=chart.get("name", f"Chart {target.item_id}"),
            tracks=tracks,
            cover_url=(chart.get("image") or {}).get("uri"),
        )
