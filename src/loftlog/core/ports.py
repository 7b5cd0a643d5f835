"""Port interfaces for log output adapters.

These protocols define the contracts that sink adapters must implement.
The logging service depends only on these interfaces, not on concrete
implementations.
"""

from collections.abc import Callable, Mapping, Sequence
from datetime import datetime
from typing import Any, Literal, Protocol, runtime_checkable

from loftlog.core.models import LogEntry

ConsoleChannel = Literal["debug", "info", "warn", "error"]

Clock = Callable[[], datetime]

# Returns the ambient context fields merged into each new entry.
ContextProvider = Callable[[], Mapping[str, Any]]


@runtime_checkable
class ConsoleSinkPort(Protocol):
    """Port for the synchronous, human-readable console stream.

    Examples: LoggingConsoleSink, InMemoryConsoleSink.
    """

    def emit(self, channel: ConsoleChannel, line: str, payload: Any = None) -> None:
        """Write one formatted line, with an optional structured payload."""
        ...


@runtime_checkable
class BatchSinkPort(Protocol):
    """Port for the external batch destination of flushed entries.

    Examples: HTTPBatchSink, SQLiteLogSink, RingBufferBatchSink.
    """

    async def send(self, entries: Sequence[LogEntry]) -> bool:
        """Deliver a batch of entries.

        Returns:
            True if the sink accepted the batch, False otherwise.
        """
        ...
