# src/a11ypiper/core/loop_runner.py
from __future__ import annotations

import asyncio
import threading
from typing import Optional, Any

_MAIN_LOOP: Optional[asyncio.AbstractEventLoop] = None
_THREAD: Optional[threading.Thread] = None


def ensure_background_loop() -> None:
    """
    Ensures a persistent asyncio event loop is running on a background thread.
    If the loop is already running, this function does nothing.
    """
    global _MAIN_LOOP, _THREAD
    if _MAIN_LOOP is not None:
        return

    loop = asyncio.new_event_loop()

    def _run_loop(loop_: asyncio.AbstractEventLoop) -> None:
        asyncio.set_event_loop(loop_)
        loop_.run_forever()

    t = threading.Thread(target=_run_loop, args=(loop,), daemon=True)
    t.start()

    _MAIN_LOOP = loop
    _THREAD = t


def run_on_main_loop(coro: "asyncio.coroutines.coroutine[Any, Any, Any]", timeout: float | None = None) -> Any:
    """
    Executes a coroutine on the persistent background loop and waits for the result.
    Falls back to asyncio.run() if no background loop exists.

    Args:
        coro: The coroutine to execute.
        timeout (float | None): Optional timeout in seconds to wait for the result.
            This is the only way to bound a whole crawl from the outside.

    Returns:
        Any: The result of the coroutine.
    """
    if _MAIN_LOOP is not None:
        fut = asyncio.run_coroutine_threadsafe(coro, _MAIN_LOOP)
        return fut.result(timeout)

    if timeout is not None:
        return asyncio.run(asyncio.wait_for(coro, timeout))
    return asyncio.run(coro)
