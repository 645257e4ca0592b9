"""Tests for the bounded worker pools and the join counter."""

from __future__ import annotations

import asyncio

import pytest

from beatport_cli.core.workers import WaitGroup, WorkerPool


@pytest.mark.asyncio
async def test_wait_group_without_work_returns_immediately() -> None:
    group = WaitGroup()

    await asyncio.wait_for(group.wait(), timeout=1)
    assert group.pending == 0


@pytest.mark.asyncio
async def test_wait_group_blocks_until_every_add_is_done() -> None:
    group = WaitGroup()
    group.add(2)

    waiter = asyncio.create_task(group.wait())
    await asyncio.sleep(0)
    group.done()
    await asyncio.sleep(0)
    assert not waiter.done()

    group.done()
    await asyncio.wait_for(waiter, timeout=1)


def test_wait_group_rejects_negative_counter() -> None:
    group = WaitGroup()
    with pytest.raises(ValueError):
        group.done()


def test_pool_requires_positive_capacity() -> None:
    with pytest.raises(ValueError):
        WorkerPool("download", 0)


@pytest.mark.asyncio
async def test_pool_never_exceeds_capacity() -> None:
    pool = WorkerPool("download", 2)
    group = WaitGroup()
    running = 0
    observed = []

    async def work() -> None:
        nonlocal running
        running += 1
        observed.append(running)
        await asyncio.sleep(0.01)
        running -= 1

    for _ in range(6):
        pool.submit(work, group)
    await asyncio.wait_for(group.wait(), timeout=5)

    assert max(observed) == 2
    assert pool.peak == 2
    assert pool.active == 0


@pytest.mark.asyncio
async def test_fault_in_task_is_contained() -> None:
    pool = WorkerPool("global", 1)
    group = WaitGroup()
    finished = []

    async def explode() -> None:
        raise RuntimeError("boom")

    async def succeed() -> None:
        finished.append(True)

    pool.submit(explode, group)
    pool.submit(succeed, group)
    await asyncio.wait_for(group.wait(), timeout=5)

    assert finished == [True]
    assert group.pending == 0


@pytest.mark.asyncio
async def test_cancelled_task_skips_work_but_settles_group() -> None:
    pool = WorkerPool("download", 1)
    group = WaitGroup()
    cancel = asyncio.Event()
    cancel.set()
    calls = []

    async def work() -> None:
        calls.append(True)

    pool.submit(work, group, cancel)
    await asyncio.wait_for(group.wait(), timeout=1)

    assert calls == []
    assert pool.peak == 0


@pytest.mark.asyncio
async def test_queued_task_does_not_start_after_cancel() -> None:
    pool = WorkerPool("download", 1)
    group = WaitGroup()
    cancel = asyncio.Event()
    started = asyncio.Event()
    release = asyncio.Event()
    results = []

    async def long_running() -> None:
        started.set()
        await release.wait()
        results.append("first")

    async def queued() -> None:
        results.append("second")

    pool.submit(long_running, group, cancel)
    pool.submit(queued, group, cancel)
    await started.wait()
    cancel.set()
    release.set()
    await asyncio.wait_for(group.wait(), timeout=1)

    assert results == ["first"]
