"""
Bounded worker pools and the join counter used to settle jobs and batches.

Two pools run side by side: the global pool bounds how many URL jobs are being
resolved at once, the download pool bounds how many file transfers run across
all jobs. A job task can therefore sit waiting on its own downloads while
those downloads occupy slots in the other pool.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Optional

from rich.markup import escape

log = logging.getLogger(__name__)


class WaitGroup:
    """A join counter: `wait()` returns once every `add()` has a matching `done()`."""

    def __init__(self) -> None:
        self._count = 0
        self._settled = asyncio.Event()
        self._settled.set()

    @property
    def pending(self) -> int:
        return self._count

    def add(self, delta: int = 1) -> None:
        count = self._count + delta
        if count < 0:
            raise ValueError("WaitGroup counter cannot go negative.")
        self._count = count
        if count == 0:
            self._settled.set()
        else:
            self._settled.clear()

    def done(self) -> None:
        self.add(-1)

    async def wait(self) -> None:
        await self._settled.wait()


class WorkerPool:
    """
    Runs submitted coroutines with at most `capacity` of them executing at once.

    A fault raised by a task is logged at the task boundary and never reaches
    the pool, the caller's WaitGroup or other tasks.
    """

    def __init__(self, name: str, capacity: int):
        """
        Args:
            name: Label used in log lines ("global", "download").
            capacity: Maximum number of concurrently running tasks.
        """
        if capacity < 1:
            raise ValueError(f"Pool '{name}' needs a capacity of at least 1.")
        self.name = name
        self.capacity = capacity
        self._semaphore = asyncio.Semaphore(capacity)
        self._tasks: set[asyncio.Task] = set()
        self.active = 0
        self.peak = 0

    def submit(
        self,
        fn: Callable[[], Awaitable[None]],
        group: WaitGroup,
        cancel: Optional[asyncio.Event] = None,
    ) -> asyncio.Task:
        """
        Schedules `fn` on the pool and registers it with `group`.

        When `cancel` is given and set by the time the task starts, or by the
        time it gets a slot, the task returns without calling `fn`.
        """
        group.add()
        task = asyncio.create_task(self._run(fn, group, cancel))
        # Keep a strong reference until the task finishes
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _run(
        self,
        fn: Callable[[], Awaitable[None]],
        group: WaitGroup,
        cancel: Optional[asyncio.Event],
    ) -> None:
        try:
            if cancel is not None and cancel.is_set():
                log.debug(f"{self.name} task skipped: shutdown in progress.")
                return

            async with self._semaphore:
                # Tasks queued behind a full pool must not start after a drain began
                if cancel is not None and cancel.is_set():
                    log.debug(f"{self.name} task skipped: shutdown in progress.")
                    return
                self.active += 1
                self.peak = max(self.peak, self.active)
                try:
                    await fn()
                except Exception as e:
                    log.error(
                        f"[red]✗ Unexpected error in {self.name} worker: "
                        f"{escape(str(e))}[/red]",
                        exc_info=log.getEffectiveLevel() == logging.DEBUG,
                    )
                finally:
                    self.active -= 1
        finally:
            group.done()
