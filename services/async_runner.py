"""Bridge from Flask worker threads to the event loop that owns the draw.

The draw machine and its timers live on one asyncio loop. WSGI handlers run
in threads, so every call into the machine is shipped to that loop and the
handler blocks on the result; the session is therefore never touched from
two threads.
"""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable, Optional, TypeVar


_loop: Optional[asyncio.AbstractEventLoop] = None
T = TypeVar("T")

DEFAULT_TIMEOUT = 30.0  # seconds


def set_main_loop(loop: Optional[asyncio.AbstractEventLoop]) -> None:
    global _loop
    _loop = loop


def get_main_loop() -> asyncio.AbstractEventLoop:
    if _loop is None:
        raise RuntimeError("Asyncio loop is not initialized")
    return _loop


def run_coroutine_sync(coro: Awaitable[T], timeout: Optional[float] = DEFAULT_TIMEOUT) -> T:
    """Run ``coro`` on the main loop and wait for its result."""
    future = asyncio.run_coroutine_threadsafe(coro, get_main_loop())
    return future.result(timeout)


def call_in_loop(func: Callable[..., T], *args: Any, timeout: Optional[float] = DEFAULT_TIMEOUT) -> T:
    """Run a plain callable on the main loop thread and return its result."""

    async def _call() -> T:
        return func(*args)

    return run_coroutine_sync(_call(), timeout=timeout)
