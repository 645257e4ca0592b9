"""Tests covering the in-flight destination registry."""

from __future__ import annotations

import asyncio
from pathlib import Path

import pytest

from beatport_cli.core.dedup import DedupRegistry


@pytest.mark.asyncio
async def test_second_claim_on_same_path_fails(tmp_path: Path) -> None:
    registry = DedupRegistry()
    target = tmp_path / "Release" / "01. Artist - Track.flac"

    assert await registry.try_acquire(target)
    assert not await registry.try_acquire(str(target))
    assert await registry.is_held(target)

    await registry.release(target)
    assert not await registry.is_held(target)
    assert await registry.try_acquire(target)


@pytest.mark.asyncio
async def test_equivalent_spellings_share_one_claim(tmp_path: Path) -> None:
    registry = DedupRegistry()

    assert await registry.try_acquire(tmp_path / "a" / "song.flac")
    assert not await registry.try_acquire(tmp_path / "a" / "." / "song.flac")


@pytest.mark.asyncio
async def test_release_of_unheld_path_is_noop(tmp_path: Path) -> None:
    registry = DedupRegistry()

    await registry.release(tmp_path / "missing.flac")
    assert len(registry) == 0


@pytest.mark.asyncio
async def test_hold_releases_on_error(tmp_path: Path) -> None:
    registry = DedupRegistry()
    target = tmp_path / "song.flac"

    with pytest.raises(RuntimeError):
        async with registry.hold(target) as acquired:
            assert acquired
            raise RuntimeError("download failed")

    assert not await registry.is_held(target)


@pytest.mark.asyncio
async def test_failed_hold_does_not_release_owner(tmp_path: Path) -> None:
    registry = DedupRegistry()
    target = tmp_path / "song.flac"

    async with registry.hold(target) as first:
        assert first
        async with registry.hold(target) as second:
            assert not second
        assert await registry.is_held(target)


@pytest.mark.asyncio
async def test_concurrent_claims_have_single_winner(tmp_path: Path) -> None:
    registry = DedupRegistry()
    target = tmp_path / "song.flac"

    results = await asyncio.gather(*(registry.try_acquire(target) for _ in range(20)))

    assert results.count(True) == 1
    assert len(registry) == 1


@pytest.mark.asyncio
async def test_reset_clears_stale_claims(tmp_path: Path) -> None:
    registry = DedupRegistry()
    await registry.try_acquire(tmp_path / "one.flac")
    await registry.try_acquire(tmp_path / "two.flac")

    await registry.reset()

    assert len(registry) == 0
