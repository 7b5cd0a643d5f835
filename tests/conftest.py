"""Shared test fixtures for all test modules."""

from collections.abc import Callable, Iterator
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any

import httpx
import pytest

from loftlog.adapters.composition import create_logging_service
from loftlog.adapters.console import InMemoryConsoleSink
from loftlog.adapters.logging_context import clear_log_context
from loftlog.adapters.sinks.in_memory import InMemoryBatchSink
from loftlog.core.config import LoggingConfig
from loftlog.core.service import LoggingService

# Long enough that the periodic flush never fires during a test.
NO_TIMER = 3600.0


class ManualClock:
    """Clock returning a fixed moment until advanced by the test."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **delta: float) -> None:
        self.now += timedelta(**delta)


@pytest.fixture(autouse=True)
def _reset_log_context() -> Iterator[None]:
    """Ambient context must not leak between tests."""
    clear_log_context()
    yield
    clear_log_context()


@pytest.fixture
def log_db_path(tmp_path: Path) -> str:
    """Provide a temporary database path for log sink tests."""
    return str(tmp_path / "logs.db")


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock()


@pytest.fixture
def console() -> InMemoryConsoleSink:
    return InMemoryConsoleSink()


@pytest.fixture
def external_sink() -> InMemoryBatchSink:
    return InMemoryBatchSink()


@pytest.fixture
def local_sink() -> InMemoryBatchSink:
    return InMemoryBatchSink()


@pytest.fixture
def make_service(
    console: InMemoryConsoleSink,
    external_sink: InMemoryBatchSink,
    local_sink: InMemoryBatchSink,
    clock: ManualClock,
) -> Iterator[Callable[..., LoggingService]]:
    """Factory fixture building services wired to in-memory sinks.

    Keyword arguments are LoggingConfig fields; sinks and the clock can be
    overridden too. Every service created is shut down on teardown.

    Usage:
        def test_something(make_service):
            service = make_service(environment="production")
    """
    created: list[LoggingService] = []

    def _make(**overrides: Any) -> LoggingService:
        service_kwargs = {
            "console": overrides.pop("console", console),
            "external_sink": overrides.pop("external_sink", external_sink),
            "local_sink": overrides.pop("local_sink", local_sink),
            "clock": overrides.pop("clock", clock),
        }
        overrides.setdefault("flush_interval", NO_TIMER)
        service = create_logging_service(LoggingConfig(**overrides), **service_kwargs)
        created.append(service)
        return service

    yield _make
    for service in created:
        service.shutdown(timeout=2.0)


@pytest.fixture
def service(make_service: Callable[..., LoggingService]) -> LoggingService:
    """Development-mode service wired to in-memory sinks."""
    return make_service()


@pytest.fixture
def production_service(make_service: Callable[..., LoggingService]) -> LoggingService:
    """Production-mode service wired to in-memory sinks."""
    return make_service(environment="production")


# === ASGI Test Fixtures ===


@pytest.fixture
def asgi_test_client():
    """Factory fixture that creates an httpx.AsyncClient for ASGI testing.

    Usage:
        async def test_something(asgi_test_client):
            app = create_asgi_app(service)
            async with asgi_test_client(app) as client:
                response = await client.get("/logs")
    """

    def _get_client(app):
        """Return an AsyncClient context manager for the given app."""
        return httpx.AsyncClient(
            transport=httpx.ASGITransport(app=app), base_url="http://test"
        )

    return _get_client
