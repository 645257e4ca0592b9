"""
Handles the processing of a single track, from download to tagging.
"""

import asyncio
import logging
import os
from collections import OrderedDict
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import Any, Dict, Optional

from rich.markup import escape

from beatport_cli.cli.progress_manager import ProgressManager
from beatport_cli.exceptions import FileIntegrityError
from beatport_cli.media import Downloader, Tagger
from beatport_cli.models.catalog import Job
from beatport_cli.models.config import AppConfig, get_quality_info
from beatport_cli.models.stats import BatchStats
from beatport_cli.utils.formatting import get_display_title
from beatport_cli.utils.path import PathFormatter, create_dir

from .accounts import Account
from .dedup import DedupRegistry

log = logging.getLogger(__name__)

Failover = Callable[[Callable[[Account], Awaitable[Any]], str], Awaitable[Any]]


class TrackProcessor:
    """
    Orchestrates the download, tagging and placement of a single track.
    """

    def __init__(
        self,
        config: AppConfig,
        registry: DedupRegistry,
        downloader: Downloader,
        tagger: Tagger,
        with_failover: Failover,
    ):
        self.config = config
        self.registry = registry
        self.downloader = downloader
        self.tagger = tagger
        self.with_failover = with_failover
        self.path_formatter = PathFormatter(config.output_template)
        self.output_dir = Path(config.downloads_directory).expanduser()
        self._asset_locks: OrderedDict[str, asyncio.Lock] = OrderedDict()
        self._max_locks = 1000
        self._asset_lock_main = asyncio.Lock()

    async def _get_asset_lock(self, key: str) -> asyncio.Lock:
        """Gets or creates a lock for a release directory's cover download."""
        async with self._asset_lock_main:
            if key in self._asset_locks:
                self._asset_locks.move_to_end(key)
                return self._asset_locks[key]

            lock = asyncio.Lock()
            self._asset_locks[key] = lock
            if len(self._asset_locks) > self._max_locks:
                self._asset_locks.popitem(last=False)
            return lock

    def destination_for(self, track_meta: Dict[str, Any]) -> Path:
        ext = get_quality_info(self.config.quality)["ext"]
        return self.output_dir / self.path_formatter.format_path(track_meta, ext)

    async def process_track(
        self,
        track_meta: Dict[str, Any],
        job: Job,
        stats: BatchStats,
        progress_manager: ProgressManager,
    ) -> bool:
        """
        Manages the complete lifecycle of downloading and saving a track.

        Returns:
            True when the track was written or is already present, False when
            it failed.
        """
        track_id = str(track_meta["id"])
        quality_info = get_quality_info(self.config.quality)
        final_path = self.destination_for(track_meta)
        display_title = escape(get_display_title(track_meta))

        async with self.registry.hold(final_path) as acquired:
            if not acquired:
                stats.tracks_skipped_duplicate += 1
                progress_manager.increment_skipped()
                log.info(
                    f"  [yellow]○ Skipping:[/] [dim]{escape(final_path.name)}[/dim] "
                    "(already being downloaded)"
                )
                return True

            if await asyncio.to_thread(final_path.is_file):
                stats.tracks_skipped_exists += 1
                progress_manager.increment_skipped()
                log.info(
                    f"  [yellow]○ Skipping:[/] [dim]{escape(final_path.name)}[/dim] "
                    "(already exists)"
                )
                return True

            temp_path = final_path.with_name(f"{final_path.name}.{track_id}.tmp")
            task_id = None
            succeeded = False
            try:
                await asyncio.to_thread(create_dir, final_path.parent)
                if self.config.save_cover and job.cover_url:
                    await self._download_cover(final_path.parent, job.cover_url)

                location = await self.with_failover(
                    lambda account: account.client_for(job.store).fetch_download_location(
                        track_id, self.config.quality
                    ),
                    f"track {track_id}",
                )

                size_estimate = int(track_meta.get("length_ms") or 0) * (
                    120 if quality_info["ext"] == "flac" else 32
                )
                task_id = progress_manager.add_track_task(
                    display_title, size_estimate, quality_info["short"]
                )

                written = await self.downloader.download_file(
                    url=location["location"],
                    destination_path=str(temp_path),
                    total_size_estimate=size_estimate,
                    progress_manager=progress_manager,
                    task_id=task_id,
                )
                if not written:
                    raise FileIntegrityError("Downloaded file is empty.")

                await asyncio.to_thread(
                    self.tagger.tag_file, str(temp_path), track_meta, quality_info["ext"]
                )
                await asyncio.to_thread(os.replace, temp_path, final_path)

                stats.tracks_downloaded += 1
                stats.total_size_downloaded += written
                succeeded = True
                log.info(f"  [green]✓ Downloaded:[/] {display_title}")
                return True

            except Exception as e:
                stats.tracks_failed += 1
                log.error(
                    f"  [red]✗ Failed:[/] {display_title} ({escape(str(e))})",
                    exc_info=log.getEffectiveLevel() == logging.DEBUG,
                )
                return False
            finally:
                progress_manager.remove_task(task_id, success=succeeded)
                await asyncio.to_thread(self._remove_temp_file, temp_path)

    @staticmethod
    def _remove_temp_file(temp_path: Path) -> None:
        if temp_path.exists():
            try:
                os.remove(temp_path)
            except OSError as e:
                log.debug(f"Could not remove '{temp_path}': {e}")

    async def _download_cover(self, directory: Path, cover_url: str) -> None:
        cover_path = directory / "cover.jpg"
        # First check (outside lock) for performance
        if await asyncio.to_thread(cover_path.exists):
            return
        async with await self._get_asset_lock(str(directory)):
            if not await asyncio.to_thread(cover_path.exists):
                log.debug(f"Downloading cover into '{directory}'")
                await self.downloader.download_asset(cover_url, str(cover_path))
