"""
Manages a Rich Live display for one batch: overall job progress, the active
transfers and running counters.
"""

import asyncio
from typing import Optional

from rich.console import Console, Group
from rich.live import Live
from rich.panel import Panel
from rich.progress import (
    BarColumn,
    DownloadColumn,
    Progress,
    SpinnerColumn,
    TaskID,
    TextColumn,
    TimeRemainingColumn,
    TransferSpeedColumn,
)
from rich.table import Table


class ProgressManager:
    """
    A progress display scoped to one batch. Created fresh for every batch so
    bars of a finished batch never linger into the next one.
    """

    def __init__(self, console: Console, enabled: bool = True):
        self.console = console
        self.enabled = enabled

        self.progress = Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}", justify="left"),
            BarColumn(bar_width=20),
            "[progress.percentage]{task.percentage:>3.0f}%",
            "•",
            DownloadColumn(),
            "•",
            TransferSpeedColumn(),
            "•",
            TimeRemainingColumn(),
            console=console,
        )
        self.overall_progress = Progress(
            TextColumn("[bold blue]{task.description}"),
            BarColumn(bar_width=40),
            "[progress.percentage]{task.percentage:>3.0f}%",
            TextColumn("{task.completed:.0f}/{task.total:.0f} URLs"),
            console=console,
        )

        self._live: Optional[Live] = None
        self._overall_task_id: Optional[TaskID] = None
        self._active_tasks: dict[TaskID, str] = {}
        self._stats = {
            "total_jobs": 0,
            "jobs_done": 0,
            "completed": 0,
            "failed": 0,
            "skipped": 0,
            "active_downloads": 0,
            "peak_concurrent": 0,
        }

    def initialize_batch(self, total_jobs: int):
        self._stats["total_jobs"] = total_jobs
        if self.enabled:
            self._overall_task_id = self.overall_progress.add_task(
                "Batch", total=total_jobs
            )

    def job_finished(self):
        self._stats["jobs_done"] += 1
        if self._overall_task_id is not None:
            self.overall_progress.update(
                self._overall_task_id, completed=self._stats["jobs_done"]
            )
        self._refresh()

    def add_track_task(
        self, description: str, total_size: int, quality: str = ""
    ) -> Optional[TaskID]:
        if not self.enabled:
            return None
        if len(description) > 55:
            description = description[:52] + "..."
        display_desc = f"{description} [dim]{quality}[/dim]" if quality else description
        task_id = self.progress.add_task(display_desc, total=total_size or None)
        self._active_tasks[task_id] = description
        self._stats["active_downloads"] = len(self._active_tasks)
        self._stats["peak_concurrent"] = max(
            self._stats["peak_concurrent"], self._stats["active_downloads"]
        )
        self._refresh()
        return task_id

    def update_task_progress(self, task_id: TaskID, completed: int):
        if task_id is not None and self.enabled:
            self.progress.update(task_id, completed=completed)

    def update_task_total(self, task_id: TaskID, total: int):
        if task_id is not None and self.enabled and total > 0:
            self.progress.update(task_id, total=total)

    def remove_task(self, task_id: Optional[TaskID], success: bool = True):
        self._stats["completed" if success else "failed"] += 1
        if task_id is None or not self.enabled:
            return
        if task_id in self._active_tasks:
            self.progress.remove_task(task_id)
            del self._active_tasks[task_id]
        self._stats["active_downloads"] = len(self._active_tasks)
        self._refresh()

    def increment_skipped(self, count: int = 1):
        self._stats["skipped"] += count
        self._refresh()

    def get_statistics(self) -> dict:
        return self._stats.copy()

    def _generate_stats_table(self) -> Table:
        stats_table = Table.grid(padding=(0, 2))
        stats_table.add_column(style="bold cyan", justify="right")
        stats_table.add_column(style="white")
        stats_table.add_column(style="bold cyan", justify="right")
        stats_table.add_column(style="white")
        stats_table.add_row(
            "Downloaded:",
            f"[green]{self._stats['completed']}[/green]",
            "Failed:",
            f"[red]{self._stats['failed']}[/red]",
        )
        stats_table.add_row(
            "Skipped:",
            f"[yellow]{self._stats['skipped']}[/yellow]",
            "Active:",
            f"[cyan]{self._stats['active_downloads']}[/cyan]",
        )
        return stats_table

    def _render(self) -> Panel:
        parts = [self._generate_stats_table(), self.overall_progress]
        if self._active_tasks:
            parts.append(self.progress)
        return Panel(
            Group(*parts),
            title="[bold]📥 Downloads[/bold]",
            border_style="cyan",
        )

    def _refresh(self):
        if self._live is not None:
            self._live.update(self._render())

    async def __aenter__(self):
        if not self.enabled:
            return self
        self._live = Live(
            self._render(),
            console=self.console,
            refresh_per_second=10,
            vertical_overflow="visible",
        )
        self._live.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        if self._live is not None:
            await asyncio.sleep(0.1)
            self._live.stop()
            self._live = None
