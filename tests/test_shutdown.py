"""Tests for the two-stage interrupt handling."""

from __future__ import annotations

import pytest

from beatport_cli.core.shutdown import ShutdownCoordinator, ShutdownState


def _coordinator(busy: bool):
    exits: list[int] = []
    coordinator = ShutdownCoordinator(
        has_outstanding_work=lambda: busy, exit_func=exits.append
    )
    return coordinator, exits


def test_interrupt_while_idle_exits_immediately() -> None:
    coordinator, exits = _coordinator(busy=False)

    coordinator.interrupt()

    assert exits == [0]
    assert coordinator.state is ShutdownState.TERMINATED
    assert coordinator.cancelled


def test_first_interrupt_during_batch_drains() -> None:
    coordinator, exits = _coordinator(busy=True)

    coordinator.interrupt()

    assert exits == []
    assert coordinator.state is ShutdownState.DRAINING
    assert coordinator.cancelled


def test_second_interrupt_forces_exit() -> None:
    coordinator, exits = _coordinator(busy=True)

    coordinator.interrupt()
    coordinator.interrupt()

    assert exits == [0]
    assert coordinator.state is ShutdownState.TERMINATED


def test_settled_only_moves_a_draining_coordinator() -> None:
    coordinator, _ = _coordinator(busy=True)

    coordinator.settled()
    assert coordinator.state is ShutdownState.RUNNING

    coordinator.interrupt()
    coordinator.settled()
    assert coordinator.state is ShutdownState.TERMINATED


@pytest.mark.asyncio
async def test_install_and_uninstall_on_running_loop() -> None:
    coordinator, exits = _coordinator(busy=True)

    coordinator.install()
    coordinator.uninstall()

    assert exits == []
    assert coordinator.state is ShutdownState.RUNNING
