from __future__ import annotations

import asyncio
import inspect
import time
from typing import Any, Awaitable, Callable, Union

Predicate = Callable[[], Union[bool, Awaitable[bool]]]


async def wait_until(predicate: Predicate, poll_interval: float = 0.1, timeout: float = 30.0) -> bool:
    """
    Poll `predicate` (sync or async) until it is truthy or `timeout` seconds pass.

    Checks before the first sleep, so an already-true condition costs nothing.
    Returns False on timeout; callers decide which error that is.
    """
    end = time.time() + timeout
    while True:
        ok: Any = predicate()
        if inspect.isawaitable(ok):
            ok = await ok
        if ok:
            return True
        if time.time() >= end:
            return False
        await asyncio.sleep(poll_interval)
