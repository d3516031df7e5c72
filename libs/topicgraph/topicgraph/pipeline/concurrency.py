from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Iterable, Sequence
from typing import TypeVar

T = TypeVar("T")
R = TypeVar("R")


async def gather_bounded(
    items: Iterable[T],
    fn: Callable[[T], Awaitable[R]],
    *,
    limit: int,
    on_done: Callable[[int, int], Awaitable[None]] | None = None,
) -> list[R]:
    """Run `fn` over items with at most `limit` in flight; results keep input order.

    The first failure cancels every call still pending or running, then re-raises.
    """
    seq: Sequence[T] = list(items)
    if not seq:
        return []
    sem = asyncio.Semaphore(max(1, int(limit)))
    lock = asyncio.Lock()
    done = 0

    async def _run(item: T) -> R:
        nonlocal done
        async with sem:
            result = await fn(item)
        if on_done is not None:
            async with lock:
                done += 1
                await on_done(done, len(seq))
        return result

    tasks = [asyncio.create_task(_run(item)) for item in seq]
    try:
        return list(await asyncio.gather(*tasks))
    except BaseException:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        raise
