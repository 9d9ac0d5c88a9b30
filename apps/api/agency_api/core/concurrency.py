from __future__ import annotations

import asyncio
from collections.abc import Awaitable
from typing import Any


async def fan_out(*awaitables: Awaitable[Any], max_concurrency: int) -> list[Any]:
    """Run independent reads concurrently and wait for all of them.

    Results come back in argument order. At most ``max_concurrency`` reads are in
    flight at once. When one read fails, or the caller is cancelled, every read still
    pending is cancelled and awaited before the original exception is re-raised.
    """

    semaphore = asyncio.Semaphore(max(1, max_concurrency))

    async def _bounded(awaitable: Awaitable[Any]) -> Any:
        try:
            async with semaphore:
                return await awaitable
        finally:
            # cancelled while queued on the semaphore: the read never started
            if asyncio.iscoroutine(awaitable):
                awaitable.close()

    tasks = [asyncio.ensure_future(_bounded(awaitable)) for awaitable in awaitables]
    try:
        return list(await asyncio.gather(*tasks))
    except BaseException:
        for task in tasks:
            if not task.done():
                task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        raise
