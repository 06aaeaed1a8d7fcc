"""Tests for SubmissionRegistry task tracking and shutdown draining."""

from __future__ import annotations

import asyncio

import pytest

from runfleet.workspace_home.registry import ShuttingDownError, SubmissionRegistry


async def test_spawn_tracks_until_done(registry: SubmissionRegistry) -> None:
    gate = asyncio.Event()

    async def work() -> str:
        await gate.wait()
        return "done"

    task = registry.spawn("ws-1", work())

    assert registry.get("ws-1") is task
    assert registry.active_count == 1

    gate.set()
    assert await task == "done"
    await asyncio.sleep(0)

    assert registry.get("ws-1") is None
    assert registry.active_count == 0


async def test_drain_waits_for_running_tasks(registry: SubmissionRegistry) -> None:
    finished: list[str] = []

    async def work(workspace_id: str) -> None:
        await asyncio.sleep(0.01)
        finished.append(workspace_id)

    registry.spawn("ws-1", work("ws-1"))
    registry.spawn("ws-2", work("ws-2"))
    registry.begin_shutdown()

    assert await registry.wait_until_drained(timeout=5) is True
    assert sorted(finished) == ["ws-1", "ws-2"]


async def test_drain_with_nothing_running(registry: SubmissionRegistry) -> None:
    assert await registry.wait_until_drained(timeout=0.01) is True


async def test_drain_timeout_does_not_cancel(registry: SubmissionRegistry) -> None:
    gate = asyncio.Event()
    task = registry.spawn("ws-1", gate.wait())

    assert await registry.wait_until_drained(timeout=0.01) is False
    assert not task.cancelled()

    gate.set()
    await task


async def test_spawn_refused_while_shutting_down(registry: SubmissionRegistry) -> None:
    registry.begin_shutdown()
    ran = False

    async def work() -> None:
        nonlocal ran
        ran = True

    with pytest.raises(ShuttingDownError):
        registry.spawn("ws-1", work())

    await asyncio.sleep(0)
    assert registry.is_shutting_down is True
    assert registry.active_count == 0
    assert ran is False


async def test_crashed_task_is_removed(registry: SubmissionRegistry) -> None:
    async def crash() -> None:
        raise RuntimeError("boom")

    task = registry.spawn("ws-1", crash())
    with pytest.raises(RuntimeError):
        await task
    await asyncio.sleep(0)

    assert registry.get("ws-1") is None
    assert await registry.wait_until_drained(timeout=0.01) is True
