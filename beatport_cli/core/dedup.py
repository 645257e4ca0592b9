"""
Registry of destination files currently being written, so two tasks of the
same batch never download into the same path at once.
"""

import asyncio
import logging
import os
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Union

log = logging.getLogger(__name__)

PathLike = Union[str, Path]


class ReadWriteLock:
    """An asyncio lock allowing many concurrent readers or one writer."""

    def __init__(self) -> None:
        self._readers = 0
        self._writer = False
        self._cond = asyncio.Condition()

    @asynccontextmanager
    async def reading(self) -> AsyncIterator[None]:
        async with self._cond:
            await self._cond.wait_for(lambda: not self._writer)
            self._readers += 1
        try:
            yield
        finally:
            async with self._cond:
                self._readers -= 1
                if self._readers == 0:
                    self._cond.notify_all()

    @asynccontextmanager
    async def writing(self) -> AsyncIterator[None]:
        async with self._cond:
            await self._cond.wait_for(lambda: not self._writer and self._readers == 0)
            self._writer = True
        try:
            yield
        finally:
            async with self._cond:
                self._writer = False
                self._cond.notify_all()


class DedupRegistry:
    """
    Tracks destination paths held by in-flight download tasks.

    A path is present exactly while one task holds it. Use `hold()` so the
    entry is released on every exit path.
    """

    def __init__(self) -> None:
        self._paths: set[str] = set()
        self._lock = ReadWriteLock()

    @staticmethod
    def _key(path: PathLike) -> str:
        return os.path.normcase(os.path.abspath(os.fspath(path)))

    def __len__(self) -> int:
        return len(self._paths)

    async def is_held(self, path: PathLike) -> bool:
        async with self._lock.reading():
            return self._key(path) in self._paths

    async def try_acquire(self, path: PathLike) -> bool:
        """Claims `path`. Returns False if another task already holds it."""
        key = self._key(path)
        async with self._lock.writing():
            if key in self._paths:
                return False
            self._paths.add(key)
            return True

    async def release(self, path: PathLike) -> None:
        """Drops the claim on `path`; a no-op when it is not held."""
        async with self._lock.writing():
            self._paths.discard(self._key(path))

    @asynccontextmanager
    async def hold(self, path: PathLike) -> AsyncIterator[bool]:
        """
        Claims `path` for the duration of the block and yields whether the
        claim succeeded. Only a successful claim is released on exit.
        """
        acquired = await self.try_acquire(path)
        try:
            yield acquired
        finally:
            if acquired:
                await self.release(path)

    async def reset(self) -> None:
        async with self._lock.writing():
            if self._paths:
                log.debug(f"Dropping {len(self._paths)} stale destination claims.")
            self._paths.clear()
