from __future__ import annotations

import asyncio
import concurrent.futures
import logging
import threading
from typing import Any, Awaitable, Callable, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class EngineLoop:
    """A dedicated asyncio loop on a background thread.

    Sync callers (Flask views, scheduler jobs) hand coroutines to this loop so
    the session client and its refresh task always live on one loop.
    Do not call `run()` or `call()` from the loop thread itself.
    """

    def __init__(self, *, name: str = "punch-engine-loop"):
        self._loop = asyncio.new_event_loop()
        self._thread = threading.Thread(target=self._run_forever, name=name, daemon=True)
        self._lock = threading.Lock()
        self._started = False

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        return self._loop

    def start(self) -> None:
        with self._lock:
            if not self._started:
                self._thread.start()
                self._started = True

    def run(self, coro: Awaitable[T], *, timeout: Optional[float] = None) -> T:
        """Run a coroutine on the loop and block for its result."""
        return self.spawn(coro).result(timeout)

    def spawn(self, coro: Awaitable[T]) -> "concurrent.futures.Future[T]":
        self.start()
        return asyncio.run_coroutine_threadsafe(coro, self._loop)

    def call(self, fn: Callable[..., T], *args: Any) -> T:
        """Run a plain callable on the loop thread and block for its result."""
        self.start()
        future: concurrent.futures.Future = concurrent.futures.Future()

        def invoke() -> None:
            try:
                future.set_result(fn(*args))
            except Exception as exc:
                future.set_exception(exc)

        self._loop.call_soon_threadsafe(invoke)
        return future.result()

    def stop(self, *, timeout: float = 5.0) -> None:
        with self._lock:
            if not self._started:
                self._loop.close()
                return
            self._loop.call_soon_threadsafe(self._loop.stop)
            self._thread.join(timeout)
            self._started = False
        if not self._loop.is_running():
            self._loop.close()

    def _run_forever(self) -> None:
        asyncio.set_event_loop(self._loop)
        logger.debug("Engine loop started")
        self._loop.run_forever()
