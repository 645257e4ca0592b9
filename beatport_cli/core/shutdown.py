"""
Two-stage interrupt handling: the first signal drains, the second one exits.
"""

import asyncio
import logging
import os
import signal
from collections.abc import Callable
from enum import Enum
from typing import Optional

log = logging.getLogger(__name__)


class ShutdownState(Enum):
    RUNNING = "running"
    DRAINING = "draining"
    TERMINATED = "terminated"


class ShutdownCoordinator:
    """
    Owns the process-wide cancellation token.

    - RUNNING: no interrupt yet.
    - DRAINING: first interrupt while work is outstanding. The token is set,
      new download tasks abort at entry, running transfers finish.
    - TERMINATED: the drained batch settled, or the process was told to exit.
    """

    SIGNALS = (signal.SIGINT, signal.SIGTERM)

    def __init__(
        self,
        has_outstanding_work: Callable[[], bool] = lambda: True,
        exit_func: Callable[[int], None] = os._exit,
    ):
        """
        Args:
            has_outstanding_work: Tells whether a batch is in progress.
            exit_func: Called with exit code 0 to end the process.
        """
        self.has_outstanding_work = has_outstanding_work
        self._exit = exit_func
        self.cancel_event = asyncio.Event()
        self.state = ShutdownState.RUNNING
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._installed: list[signal.Signals] = []
        self._previous_handlers: dict[signal.Signals, object] = {}

    @property
    def cancelled(self) -> bool:
        return self.cancel_event.is_set()

    def interrupt(self) -> None:
        """Handles one interrupt signal."""
        if self.state is ShutdownState.RUNNING and self.has_outstanding_work():
            self.state = ShutdownState.DRAINING
            self.cancel_event.set()
            log.info(
                "[yellow]Shutdown signal received. "
                "Waiting for download workers to finish[/yellow]"
            )
            return

        self.terminate()

    def settled(self) -> None:
        """Marks a drained batch as finished."""
        if self.state is ShutdownState.DRAINING:
            self.state = ShutdownState.TERMINATED

    def terminate(self) -> None:
        self.state = ShutdownState.TERMINATED
        self.cancel_event.set()
        self._exit(0)

    def install(self, loop: Optional[asyncio.AbstractEventLoop] = None) -> None:
        """Routes SIGINT and SIGTERM of the running loop to `interrupt()`."""
        self._loop = loop or asyncio.get_running_loop()
        for sig in self.SIGNALS:
            try:
                self._loop.add_signal_handler(sig, self.interrupt)
            except (NotImplementedError, RuntimeError):
                # Windows event loops lack add_signal_handler
                self._previous_handlers[sig] = signal.signal(
                    sig, lambda *_: self._loop.call_soon_threadsafe(self.interrupt)
                )
            self._installed.append(sig)

    def uninstall(self) -> None:
        for sig in self._installed:
            if sig in self._previous_handlers:
                signal.signal(sig, self._previous_handlers.pop(sig))
            elif self._loop is not None:
                self._loop.remove_signal_handler(sig)
        self._installed.clear()
