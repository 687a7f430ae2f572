"""Utilities to execute coroutines on the service asyncio loop from sync contexts.

Flask handlers and Socket.IO callbacks run in worker threads; the database
pool, the spin engine and the delayed publisher live on one event loop
running in a background thread.
"""

from __future__ import annotations

import asyncio
import threading
from typing import Awaitable, Optional, TypeVar


_loop: Optional[asyncio.AbstractEventLoop] = None
_thread: Optional[threading.Thread] = None
T = TypeVar("T")


def set_main_loop(loop: Optional[asyncio.AbstractEventLoop]) -> None:
    global _loop
    _loop = loop


def start_background_loop(name: str = "service-loop") -> asyncio.AbstractEventLoop:
    """Start a dedicated event loop thread and make it the main loop."""
    global _thread
    if _loop is not None and _loop.is_running():
        return _loop

    loop = asyncio.new_event_loop()
    ready = threading.Event()

    def run() -> None:
        asyncio.set_event_loop(loop)
        loop.call_soon(ready.set)
        loop.run_forever()

    _thread = threading.Thread(target=run, name=name, daemon=True)
    _thread.start()
    ready.wait()
    set_main_loop(loop)
    return loop


def stop_background_loop(timeout: float = 5.0) -> None:
    """Stop and close the loop started by ``start_background_loop``."""
    global _thread
    loop = _loop
    if loop is None or _thread is None:
        return
    loop.call_soon_threadsafe(loop.stop)
    _thread.join(timeout)
    _thread = None
    loop.close()
    set_main_loop(None)


def run_coroutine_sync(coro: Awaitable[T], timeout: Optional[float] = None) -> T:
    if _loop is None:
        raise RuntimeError("Asyncio loop is not initialized")
    future = asyncio.run_coroutine_threadsafe(coro, _loop)
    return future.result(timeout)

