"""In-memory batch sink."""

from collections.abc import Sequence

from loftlog.core.models import LogEntry


class InMemoryBatchSink:
    """In-memory implementation of BatchSinkPort.

    Keeps every received batch. Suitable for testing and for processes
    that inspect flushed entries themselves.
    """

    def __init__(self) -> None:
        self.batches: list[tuple[LogEntry, ...]] = []

    async def send(self, entries: Sequence[LogEntry]) -> bool:
        """Store a batch of entries."""
        self.batches.append(tuple(entries))
        return True

    @property
    def entries(self) -> list[LogEntry]:
        """All received entries, in delivery order."""
        return [entry for batch in self.batches for entry in batch]

    def clear(self) -> None:
        self.batches.clear()
