"""Tests for the periodic flush thread, shutdown and the dispatcher."""

import asyncio
import threading
import time
from collections.abc import Callable

import pytest

from loftlog.adapters.console import InMemoryConsoleSink
from loftlog.adapters.sinks.in_memory import InMemoryBatchSink
from loftlog.core.dispatch import BackgroundDispatcher
from loftlog.core.service import LoggingService

ServiceFactory = Callable[..., LoggingService]


def _wait_until(predicate: Callable[[], bool], timeout: float = 2.0) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return predicate()


class TestPeriodicFlush:
    """Tests for the background flush thread."""

    @pytest.mark.core
    def test_timer_flushes_buffer(
        self, make_service: ServiceFactory, local_sink: InMemoryBatchSink
    ) -> None:
        service = make_service(flush_interval=0.05)
        service.info("periodic")
        assert _wait_until(lambda: len(local_sink.entries) == 1)
        assert service.get_log_stats().total == 0

    @pytest.mark.core
    def test_timer_survives_failed_flush(
        self, make_service: ServiceFactory, local_sink: InMemoryBatchSink
    ) -> None:
        service = make_service(flush_interval=0.05)
        real_flush = service.flush
        calls = {"n": 0}

        def flaky_flush() -> int:
            calls["n"] += 1
            if calls["n"] == 1:
                raise RuntimeError("flush exploded")
            return real_flush()

        service.flush = flaky_flush  # type: ignore[method-assign]
        service.info("eventually delivered")
        assert _wait_until(lambda: len(local_sink.entries) == 1)
        assert calls["n"] >= 2


class TestShutdown:
    """Tests for shutdown()."""

    @pytest.mark.core
    def test_shutdown_flushes_remaining_entries(
        self, make_service: ServiceFactory, local_sink: InMemoryBatchSink
    ) -> None:
        service = make_service()
        service.info("last words")
        service.shutdown()
        assert [e.message for e in local_sink.entries] == ["last words"]
        assert not service.is_active

    @pytest.mark.core
    def test_shutdown_twice_is_safe_and_stops_timer(
        self, make_service: ServiceFactory, local_sink: InMemoryBatchSink
    ) -> None:
        service = make_service(flush_interval=0.05)
        service.shutdown()
        service.shutdown()
        assert not service._timer_thread.is_alive()

        service.info("after shutdown")
        time.sleep(0.2)
        assert service.get_log_stats().total == 1
        assert local_sink.entries == []

    @pytest.mark.core
    def test_flush_after_shutdown_reports_dropped_entries(
        self, make_service: ServiceFactory, console: InMemoryConsoleSink
    ) -> None:
        service = make_service()
        service.shutdown()
        service.info("too late")
        assert service.flush() == 1
        diagnostics = [line.line for line in console.on_channel("error")]
        assert any("dispatcher closed" in d for d in diagnostics)

    @pytest.mark.core
    def test_context_manager_shuts_down(
        self, make_service: ServiceFactory, local_sink: InMemoryBatchSink
    ) -> None:
        with make_service() as service:
            service.info("scoped")
        assert not service.is_active
        assert len(local_sink.entries) == 1


class TestBackgroundDispatcher:
    """Tests for BackgroundDispatcher."""

    @pytest.mark.core
    def test_submitted_coroutine_runs_off_caller_thread(self) -> None:
        dispatcher = BackgroundDispatcher()
        seen: list[str] = []

        async def work() -> None:
            await asyncio.sleep(0)
            seen.append(threading.current_thread().name)

        try:
            future = dispatcher.submit(work)
            assert future is not None
            future.result(timeout=2.0)
        finally:
            dispatcher.close()
        assert seen == ["loftlog-dispatch"]

    @pytest.mark.core
    def test_wait_idle_waits_for_pending_work(self) -> None:
        dispatcher = BackgroundDispatcher()
        done = threading.Event()

        async def slow() -> None:
            await asyncio.sleep(0.05)
            done.set()

        try:
            dispatcher.submit(slow)
            assert dispatcher.wait_idle(2.0)
            assert done.is_set()
        finally:
            dispatcher.close()

    @pytest.mark.core
    def test_wait_idle_reports_timeout(self) -> None:
        dispatcher = BackgroundDispatcher()
        release = threading.Event()

        async def blocked() -> None:
            while not release.is_set():
                await asyncio.sleep(0.01)

        try:
            dispatcher.submit(blocked)
            assert not dispatcher.wait_idle(0.05)
        finally:
            release.set()
            dispatcher.close()

    @pytest.mark.core
    def test_close_is_idempotent_and_rejects_new_work(self) -> None:
        dispatcher = BackgroundDispatcher()
        dispatcher.close()
        dispatcher.close()
        assert dispatcher.closed

        async def never() -> None:
            pass

        assert dispatcher.submit(never) is None
