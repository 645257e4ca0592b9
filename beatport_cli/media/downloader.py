"""
Handles the low-level streaming of files over HTTP into the destination file.
"""

import asyncio
import logging
import os
from typing import Optional

import aiofiles
import aiohttp
from rich.progress import TaskID

from beatport_cli.cli.progress_manager import ProgressManager

log = logging.getLogger(__name__)

_connection_pool: Optional[aiohttp.ClientSession] = None
_pool_lock = asyncio.Lock()


async def get_connection_pool(max_workers: int = 4) -> aiohttp.ClientSession:
    """
    Gets or creates a shared aiohttp ClientSession for downloads.

    This function ensures that only one connection pool is created for the
    lifetime of the application run.

    Args:
        max_workers: Maximum concurrent transfers (the download pool capacity).
    """
    global _connection_pool
    async with _pool_lock:
        if _connection_pool and not _connection_pool.closed:
            return _connection_pool

        connector = aiohttp.TCPConnector(
            limit=max_workers * 2,
            limit_per_host=max_workers,
            ttl_dns_cache=600,
            keepalive_timeout=30,
            enable_cleanup_closed=True,
        )
        timeout = aiohttp.ClientTimeout(total=None, sock_connect=15, sock_read=90)
        _connection_pool = aiohttp.ClientSession(connector=connector, timeout=timeout)
        log.debug(f"Created download pool with limit_per_host={max_workers}")

    return _connection_pool


async def close_connection_pool() -> None:
    """Closes the shared global connection pool."""
    global _connection_pool
    async with _pool_lock:
        if _connection_pool and not _connection_pool.closed:
            await _connection_pool.close()
            _connection_pool = None
            log.debug("Shared downloader connection pool closed.")


class Downloader:
    """A file downloader that streams in order and retries transient failures."""

    CHUNK_SIZE = 262144  # 256 KB

    def __init__(
        self,
        max_attempts: int = 3,
        base_delay: float = 1.5,
        proxy: Optional[str] = None,
        max_workers: int = 4,
    ):
        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self.proxy = proxy
        self.max_workers = max_workers

    async def download_file(
        self,
        url: str,
        destination_path: str,
        total_size_estimate: int = 0,
        progress_manager: Optional[ProgressManager] = None,
        task_id: Optional[TaskID] = None,
    ) -> int:
        """
        Downloads `url` into `destination_path`, updating a Rich progress bar.

        Returns:
            The number of bytes written.
        """
        last_exception: Optional[Exception] = None
        for attempt in range(1, self.max_attempts + 1):
            try:
                session = await get_connection_pool(self.max_workers)
                async with session.get(
                    url, allow_redirects=True, proxy=self.proxy
                ) as response:
                    response.raise_for_status()

                    total = int(
                        response.headers.get("Content-Length", total_size_estimate)
                    )
                    if progress_manager and task_id is not None:
                        progress_manager.update_task_total(task_id, total=total)

                    bytes_downloaded = 0
                    async with aiofiles.open(destination_path, "wb") as f:
                        async for chunk in response.content.iter_chunked(
                            self.CHUNK_SIZE
                        ):
                            await f.write(chunk)
                            bytes_downloaded += len(chunk)
                            if progress_manager and task_id is not None:
                                progress_manager.update_task_progress(
                                    task_id, completed=bytes_downloaded
                                )
                return bytes_downloaded
            except (aiohttp.ClientError, asyncio.TimeoutError) as e:
                last_exception = e
                log.debug(
                    f"Download attempt {attempt}/{self.max_attempts} for "
                    f"'{os.path.basename(destination_path)}' failed: {e}. Retrying..."
                )
                if attempt < self.max_attempts:
                    await asyncio.sleep(self.base_delay * (2 ** (attempt - 1)))

        raise last_exception

    async def download_asset(self, url: str, destination_path: str) -> None:
        """
        Downloads an asset (like a cover image) if it doesn't already exist.
        Failures are logged and otherwise ignored.
        """
        if await asyncio.to_thread(os.path.isfile, destination_path):
            return

        try:
            await self.download_file(url, destination_path)
        except (aiohttp.ClientError, asyncio.TimeoutError, OSError) as e:
            log.debug(
                f"Failed to download asset '{os.path.basename(destination_path)}': {e}"
            )
