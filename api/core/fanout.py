"""
Bounded concurrent fan-out.

Each call gets its own semaphore, so a nested fan-out (array rows inside
array rows) never waits on permits held by its parent phase. Results come
back in input order.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Iterable
from typing import TypeVar

T = TypeVar("T")
R = TypeVar("R")

DEFAULT_LIMIT = 8


async def gather_bounded(
    items: Iterable[T],
    func: Callable[[T], Awaitable[R]],
    *,
    limit: int = DEFAULT_LIMIT,
) -> list[R]:
    items = list(items)
    if not items:
        return []

    sem = asyncio.Semaphore(max(1, limit))

    async def run(item: T) -> R:
        async with sem:
            return await func(item)

    return list(await asyncio.gather(*(run(item) for item in items)))
