"""BDD step definitions for buffering.feature."""

from collections.abc import Iterator, Sequence
from dataclasses import dataclass, field

import pytest
from pytest_bdd import given, parsers, then, when

from loftlog.adapters.console import InMemoryConsoleSink
from loftlog.adapters.sinks.in_memory import InMemoryBatchSink
from loftlog.core.config import LoggingConfig
from loftlog.core.models import LogEntry, LogLevel
from loftlog.core.ports import BatchSinkPort
from loftlog.core.service import LoggingService
from tests.conftest import ManualClock


class UnreachableSink:
    """External sink whose collector is down."""

    async def send(self, entries: Sequence[LogEntry]) -> bool:
        raise ConnectionError("collector unreachable")


@dataclass
class ServiceScenarioContext:
    """State shared between the steps of one scenario."""

    console: InMemoryConsoleSink = field(default_factory=InMemoryConsoleSink)
    external_sink: InMemoryBatchSink = field(default_factory=InMemoryBatchSink)
    local_sink: InMemoryBatchSink = field(default_factory=InMemoryBatchSink)
    clock: ManualClock = field(default_factory=ManualClock)
    service: LoggingService | None = None
    logged: int = 0

    def start(
        self, mode: str, max_buffer_size: int = 1000, external: BatchSinkPort | None = None
    ) -> None:
        self.service = LoggingService(
            LoggingConfig(
                environment=mode, max_buffer_size=max_buffer_size, flush_interval=3600.0
            ),
            console=self.console,
            external_sink=external or self.external_sink,
            local_sink=self.local_sink,
            clock=self.clock,
        )

    @property
    def svc(self) -> LoggingService:
        assert self.service is not None, "no service started"
        return self.service


@pytest.fixture
def ctx() -> Iterator[ServiceScenarioContext]:
    """Fresh scenario context for each test."""
    context = ServiceScenarioContext()
    yield context
    if context.service is not None:
        context.service.shutdown(timeout=2.0)


# --- Given ---


@given(parsers.parse('a logging service in "{mode}" mode'))
def given_service(ctx: ServiceScenarioContext, mode: str) -> None:
    ctx.start(mode)


@given(
    parsers.parse('a logging service in "{mode}" mode with a buffer of {size:d} entries')
)
def given_bounded_service(ctx: ServiceScenarioContext, mode: str, size: int) -> None:
    ctx.start(mode, max_buffer_size=size)


@given(parsers.parse('a logging service in "{mode}" mode with a failing external sink'))
def given_failing_service(ctx: ServiceScenarioContext, mode: str) -> None:
    ctx.start(mode, external=UnreachableSink())


# --- When ---


@when(parsers.parse("{n:d} info entries are logged"))
def when_info_entries(ctx: ServiceScenarioContext, n: int) -> None:
    for _ in range(n):
        ctx.svc.info(f"entry-{ctx.logged}")
        ctx.logged += 1


@when(parsers.parse('a critical entry "{message}" is logged'))
def when_critical_entry(ctx: ServiceScenarioContext, message: str) -> None:
    ctx.svc.critical(message)


@when(parsers.parse('a debug entry "{message}" is logged'))
def when_debug_entry(ctx: ServiceScenarioContext, message: str) -> None:
    ctx.svc.debug(message)


@when("an error entry is logged")
def when_error_entry(ctx: ServiceScenarioContext) -> None:
    ctx.svc.error("Reservation sync failed")


@when(parsers.parse("{minutes:d} minutes pass"))
def when_minutes_pass(ctx: ServiceScenarioContext, minutes: int) -> None:
    ctx.clock.advance(minutes=minutes)


@when("the service is flushed")
def when_flushed(ctx: ServiceScenarioContext) -> None:
    ctx.svc.flush()


# --- Then ---


@then(parsers.parse("the buffer holds {n:d} entries"))
def then_buffer_holds(ctx: ServiceScenarioContext, n: int) -> None:
    assert ctx.svc.get_log_stats().total == n


@then(parsers.parse("the console shows {n:d} lines"))
def then_console_lines(ctx: ServiceScenarioContext, n: int) -> None:
    assert len(ctx.console.lines) == n


@then(parsers.parse('the newest entry is "{message}"'))
def then_newest_entry(ctx: ServiceScenarioContext, message: str) -> None:
    assert ctx.svc.get_logs(limit=1)[0].message == message


@then(parsers.parse("the local sink received {n:d} entries"))
def then_local_sink_received(ctx: ServiceScenarioContext, n: int) -> None:
    assert ctx.svc.wait_for_dispatch(2.0)
    assert len(ctx.local_sink.entries) == n


@then(parsers.parse("the external sink received {n:d} entries"))
def then_external_sink_received(ctx: ServiceScenarioContext, n: int) -> None:
    assert ctx.svc.wait_for_dispatch(2.0)
    assert len(ctx.external_sink.entries) == n


@then(parsers.parse('the first external batch contains only "{message}"'))
def then_first_batch(ctx: ServiceScenarioContext, message: str) -> None:
    assert ctx.svc.wait_for_dispatch(2.0)
    first = ctx.external_sink.batches[0]
    assert [entry.message for entry in first] == [message]
    assert first[0].level is LogLevel.CRITICAL


@then("the console reports a dispatch failure")
def then_dispatch_failure(ctx: ServiceScenarioContext) -> None:
    assert ctx.svc.wait_for_dispatch(2.0)
    diagnostics = [line.line for line in ctx.console.on_channel("error")]
    assert any("log dispatch failed" in line for line in diagnostics)


@then(parsers.parse("the stats count {errors:d} errors and {recent:d} recent errors"))
def then_stats(ctx: ServiceScenarioContext, errors: int, recent: int) -> None:
    stats = ctx.svc.get_log_stats()
    assert stats.by_level[LogLevel.ERROR] == errors
    assert stats.recent_errors == recent
