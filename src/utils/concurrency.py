# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Fail-fast concurrent awaiting.

Every concurrent fan-out in the services goes through gather_or_cancel:
when one branch fails, the siblings still pending are cancelled and
awaited before the failure propagates, so no store read outlives the
call that started it.

Example:
    >>> from src.utils.concurrency import gather_or_cancel
    >>> colleges, majors = await gather_or_cancel([read_colleges(), read_majors()])
"""

import asyncio
from collections.abc import Awaitable, Iterable
from typing import Any


async def gather_or_cancel(coros: Iterable[Awaitable[Any]]) -> list[Any]:
    """Await all coroutines concurrently; on the first failure cancel the rest.

    Results are returned in input order once every coroutine finished.

    Raises:
        Exception: The first failure, after the remaining tasks were cancelled.
    """
    tasks = [asyncio.ensure_future(coro) for coro in coros]
    if not tasks:
        return []
    try:
        return await asyncio.gather(*tasks)
    except BaseException:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        raise
