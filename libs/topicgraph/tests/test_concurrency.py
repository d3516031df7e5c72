from __future__ import annotations

import asyncio

import pytest

from topicgraph.pipeline.concurrency import gather_bounded


@pytest.mark.asyncio
async def test_gather_bounded_keeps_order_and_limit() -> None:
    active = 0
    peak = 0
    progress: list[tuple[int, int]] = []

    async def _work(n: int) -> int:
        nonlocal active, peak
        active += 1
        peak = max(peak, active)
        await asyncio.sleep(0.01 * (5 - n))
        active -= 1
        return n * 10

    async def _on_done(done: int, total: int) -> None:
        progress.append((done, total))

    results = await gather_bounded(range(5), _work, limit=2, on_done=_on_done)

    assert results == [0, 10, 20, 30, 40]
    assert peak == 2
    assert progress[-1] == (5, 5)


@pytest.mark.asyncio
async def test_gather_bounded_cancels_siblings_on_first_failure() -> None:
    finished: list[int] = []
    cancelled: list[int] = []

    async def _work(n: int) -> int:
        if n == 0:
            await asyncio.sleep(0.01)
            raise RuntimeError("summary failed")
        try:
            await asyncio.sleep(10)
        except asyncio.CancelledError:
            cancelled.append(n)
            raise
        finished.append(n)
        return n

    with pytest.raises(RuntimeError, match="summary failed"):
        await gather_bounded(range(4), _work, limit=3)

    assert {1, 2} <= set(cancelled)
    assert finished == []


@pytest.mark.asyncio
async def test_gather_bounded_empty_input() -> None:
    async def _work(n: int) -> int:
        return n

    assert await gather_bounded([], _work, limit=4) == []
