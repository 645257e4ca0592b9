"""
The main orchestrator: runs batches of URLs through the global pool, fans each
job out into the download pool and fails over between accounts.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any, Optional, TypeVar

import aiohttp
from rich.console import Console
from rich.markup import escape

from beatport_cli.cli.progress_manager import ProgressManager
from beatport_cli.exceptions import FAILOVER_ERRORS, BeatportCliError
from beatport_cli.media import Downloader, Tagger
from beatport_cli.models.config import AppConfig
from beatport_cli.models.stats import BatchStats
from beatport_cli.utils.path import parse_catalog_url

from .accounts import Account, AccountPool
from .dedup import DedupRegistry
from .shutdown import ShutdownCoordinator
from .track_processor import TrackProcessor
from .workers import WaitGroup, WorkerPool

log = logging.getLogger(__name__)

T = TypeVar("T")

Prompt = Callable[[], Awaitable[Optional[list[str]]]]


class DownloadManager:
    """Orchestrates batches of URL jobs."""

    def __init__(
        self,
        config: AppConfig,
        accounts: AccountPool,
        downloader: Optional[Downloader] = None,
        tagger: Optional[Tagger] = None,
        shutdown: Optional[ShutdownCoordinator] = None,
        console: Optional[Console] = None,
        show_progress: bool = True,
    ):
        """
        Args:
            config: Settings of the first account; pool sizes come from here.
            accounts: Authenticated accounts to fail over between.
            downloader: File streamer, defaults to a proxy-aware `Downloader`.
            tagger: Tag writer, defaults to one honouring `write_tags`.
            shutdown: Interrupt handling; a private coordinator when omitted.
            console: Console the progress display renders on.
            show_progress: Disable to run without a live display.
        """
        self.config = config
        self.accounts = accounts
        self.console = console or Console()
        self.show_progress = show_progress
        self.shutdown = shutdown or ShutdownCoordinator()

        self.global_pool = WorkerPool("global", config.max_global_workers)
        self.download_pool = WorkerPool("download", config.max_download_workers)
        self.registry = DedupRegistry()
        self.track_processor = TrackProcessor(
            config,
            self.registry,
            downloader
            or Downloader(
                proxy=config.proxy_url, max_workers=config.max_download_workers
            ),
            tagger or Tagger(config.write_tags),
            self.call_with_failover,
        )

        self.urls: list[str] = []
        self.stats = BatchStats()
        self.progress: Optional[ProgressManager] = None

    @property
    def has_outstanding_work(self) -> bool:
        return bool(self.urls)

    async def call_with_failover(
        self, operation: Callable[[Account], Awaitable[T]], what: str
    ) -> T:
        """
        Runs `operation` against the active account. On an authentication or
        rate-limit failure, rotates to the next account and retries once.
        """
        account = await self.accounts.current()
        try:
            return await operation(account)
        except FAILOVER_ERRORS as e:
            log.warning(
                f"[yellow]⚠ {escape(what)}: account "
                f"'{escape(account.name)}' failed ({escape(str(e))})[/yellow]"
            )
            if not await self.accounts.rotate(account):
                raise

        retry_account = await self.accounts.current()
        log.debug(f"Retrying {what} with account '{retry_account.name}'")
        return await operation(retry_account)

    async def run(
        self,
        urls: list[str],
        quit_after_batch: bool,
        prompt: Prompt,
        on_batch_done: Optional[Callable[[BatchStats], None]] = None,
    ) -> None:
        """
        The batch loop. Takes URLs from `urls` first, then from `prompt`
        whenever the list is empty, until a batch is the last one.
        """
        self.urls = list(urls)
        while True:
            if not self.urls:
                next_urls = await prompt()
                if next_urls is None:
                    return
                self.urls = next_urls
                if not self.urls:
                    continue

            stats = await self.run_batch(self.urls)
            if on_batch_done is not None:
                on_batch_done(stats)

            self.urls = []
            if quit_after_batch or self.shutdown.cancelled:
                self.shutdown.settled()
                return

    async def run_batch(self, urls: list[str]) -> BatchStats:
        """Dispatches every URL through the global pool and waits for all of them."""
        unique_urls = list(dict.fromkeys(u.strip() for u in urls if u.strip()))
        if len(unique_urls) < len(urls):
            log.info(f"Removed {len(urls) - len(unique_urls)} duplicate URLs.")

        self.urls = unique_urls
        self.stats = BatchStats(jobs_total=len(unique_urls))
        rotations_before = self.accounts.rotations
        await self.registry.reset()

        batch = WaitGroup()
        async with ProgressManager(self.console, self.show_progress) as progress:
            self.progress = progress
            progress.initialize_batch(len(unique_urls))
            for url in unique_urls:
                self.global_pool.submit(lambda url=url: self.handle_url(url), batch)
            await batch.wait()

        self.stats.account_rotations = self.accounts.rotations - rotations_before
        self.stats.peak_concurrent_downloads = progress.get_statistics()[
            "peak_concurrent"
        ]
        self._log_batch_summary()
        return self.stats

    async def handle_url(self, url: str) -> None:
        """Resolves one URL into a job and downloads its tracks."""
        success = False
        try:
            success = await self._process_url(url)
        finally:
            self.stats.record_job(url, success)
            if self.progress is not None:
                self.progress.job_finished()

    async def _process_url(self, url: str) -> bool:
        target = parse_catalog_url(url)
        if target is None:
            log.error(f"[red]Invalid or unsupported URL: {escape(url)}[/red]")
            return False

        try:
            job = await self.call_with_failover(
                lambda account: account.client_for(target.store).resolve(target),
                f"resolve {url}",
            )
        except (BeatportCliError, aiohttp.ClientError, asyncio.TimeoutError) as e:
            log.error(f"[red]✗ Error processing URL {escape(url)}: {escape(str(e))}[/red]")
            return False

        if not job.tracks:
            log.warning(f"[yellow]⚠ '{escape(job.name)}' has no tracks.[/yellow]")
            return True

        log.info(
            f"\n[bold cyan]▶ {target.kind.value.capitalize()}:[/] {escape(job.name)} "
            f"[dim]({len(job.tracks)} tracks, {job.store.display_name})[/dim]"
        )

        results: list[bool] = []

        async def download(track: dict[str, Any]) -> None:
            succeeded = False
            try:
                succeeded = await self.track_processor.process_track(
                    track, job, self.stats, self.progress
                )
            except Exception:
                # Logged by the pool at the task boundary
                self.stats.tracks_failed += 1
                raise
            finally:
                # Recorded even when the task faults, so only unstarted tasks
                # count as not completed
                results.append(succeeded)

        children = WaitGroup()
        for track in job.tracks:
            self.download_pool.submit(
                lambda track=track: download(track),
                children,
                self.shutdown.cancel_event,
            )
        await children.wait()

        cancelled = len(job.tracks) - len(results)
        if cancelled:
            self.stats.tracks_skipped_cancelled += cancelled
        failed = results.count(False)
        if failed or cancelled:
            log.error(
                f"[red]✗ {escape(job.name)}: {failed} failed, "
                f"{cancelled} not completed[/red]"
            )
            return False
        log.info(f"[green]✓ Finished:[/] {escape(job.name)}")
        return True

    def _log_batch_summary(self) -> None:
        s = self.stats
        log.info(
            f"Batch finished: {s.jobs_completed - s.jobs_failed}/{s.jobs_total} URLs ok, "
            f"{s.tracks_downloaded} downloaded, {s.tracks_skipped} skipped, "
            f"{s.tracks_failed} failed."
        )
        for url in s.failed_urls:
            log.error(f"[red]✗ Failed URL: {escape(url)}[/red]")
