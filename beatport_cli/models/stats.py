"""
Dataclass for tracking per-batch download statistics.
"""

import time
from dataclasses import dataclass, field


@dataclass
class BatchStats:
    """Tracks job and track outcomes for one batch of URLs."""

    jobs_total: int = 0
    jobs_completed: int = 0
    jobs_failed: int = 0
    failed_urls: list[str] = field(default_factory=list)

    tracks_downloaded: int = 0
    tracks_skipped_exists: int = 0
    tracks_skipped_duplicate: int = 0
    tracks_skipped_cancelled: int = 0
    tracks_failed: int = 0
    total_size_downloaded: int = 0

    account_rotations: int = 0
    peak_concurrent_downloads: int = 0
    started_at: float = field(default_factory=time.monotonic, repr=False)

    def record_job(self, url: str, success: bool) -> None:
        self.jobs_completed += 1
        if not success:
            self.jobs_failed += 1
            self.failed_urls.append(url)

    @property
    def tracks_skipped(self) -> int:
        return (
            self.tracks_skipped_exists
            + self.tracks_skipped_duplicate
            + self.tracks_skipped_cancelled
        )

    @property
    def duration(self) -> float:
        return time.monotonic() - self.started_at
