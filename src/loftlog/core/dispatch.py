"""Fire-and-forget execution of sink coroutines on a background event loop."""

import asyncio
import concurrent.futures
import logging
import threading
from collections.abc import Callable, Coroutine
from typing import Any

logger = logging.getLogger(__name__)


class BackgroundDispatcher:
    """Runs coroutines on a private asyncio loop hosted by a daemon thread.

    Callers on any thread submit work without waiting for it. The loop is
    created eagerly so that submissions made from inside another running
    event loop (ASGI handlers, for instance) never block that loop.
    """

    def __init__(self, name: str = "loftlog-dispatch") -> None:
        self._loop = asyncio.new_event_loop()
        self._lock = threading.RLock()
        self._pending: set[concurrent.futures.Future[Any]] = set()
        self._closed = False
        self._thread = threading.Thread(target=self._run, name=name, daemon=True)
        self._thread.start()

    @property
    def closed(self) -> bool:
        return self._closed

    def _run(self) -> None:
        asyncio.set_event_loop(self._loop)
        try:
            self._loop.run_forever()
        finally:
            leftovers = asyncio.all_tasks(self._loop)
            for task in leftovers:
                task.cancel()
            if leftovers:
                self._loop.run_until_complete(
                    asyncio.gather(*leftovers, return_exceptions=True)
                )
            self._loop.close()

    def submit(
        self, factory: Callable[[], Coroutine[Any, Any, Any]]
    ) -> concurrent.futures.Future[Any] | None:
        """Schedule ``factory()`` on the background loop.

        Returns:
            A future for the scheduled coroutine, or None if the dispatcher
            is already closed.
        """
        with self._lock:
            if self._closed:
                return None
            future = asyncio.run_coroutine_threadsafe(factory(), self._loop)
            self._pending.add(future)
        future.add_done_callback(self._discard)
        return future

    def _discard(self, future: concurrent.futures.Future[Any]) -> None:
        with self._lock:
            self._pending.discard(future)

    def wait_idle(self, timeout: float | None = None) -> bool:
        """Block until every submitted coroutine has finished.

        Returns:
            True if nothing is pending anymore, False on timeout.
        """
        with self._lock:
            pending = list(self._pending)
        if not pending:
            return True
        _, not_done = concurrent.futures.wait(pending, timeout=timeout)
        return not not_done

    def close(self, timeout: float | None = 5.0) -> None:
        """Wait for pending work, then stop the loop and its thread.

        Safe to call more than once.
        """
        with self._lock:
            if self._closed:
                return
            self._closed = True
        if not self.wait_idle(timeout):
            logger.warning("Closing log dispatcher with unfinished deliveries")
        self._loop.call_soon_threadsafe(self._loop.stop)
        self._thread.join(timeout)
