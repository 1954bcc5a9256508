from __future__ import annotations

import asyncio
from typing import Coroutine, TypeVar

import anyio

T = TypeVar("T")


def run_async(coro: Coroutine[object, object, T], *, timeout: float | None = None) -> T:
    """
    Run a coroutine to completion from sync code.

    - Sync FastAPI endpoints execute in a worker thread; the coroutine gets its
      own event loop there, so sync DB calls it makes stay off the server loop.
    - Works the same from the CLI, where no loop is running at all.
    - Raises if called from an async context in the same thread (use await instead).
    """

    async def _runner() -> T:
        if timeout is not None:
            with anyio.fail_after(timeout):
                return await coro
        return await coro

    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return anyio.run(_runner)
    coro.close()
    raise RuntimeError("run_async called from async context; use await instead")
