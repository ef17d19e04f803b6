from __future__ import annotations

import asyncio
from typing import Any, Awaitable


async def run_all_or_cancel(*aws: Awaitable[Any]) -> list[Any]:
    """
    Run awaitables concurrently and return their results in order.

    If one of them fails, the others are cancelled and awaited before the
    first error is re-raised, so no sibling keeps running in the background.
    """
    try:
        async with asyncio.TaskGroup() as tg:
            tasks = [tg.create_task(aw) for aw in aws]
    except BaseExceptionGroup as eg:
        raise eg.exceptions[0] from None

    return [task.result() for task in tasks]
