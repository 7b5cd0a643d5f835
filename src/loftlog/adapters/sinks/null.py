"""Batch sink that accepts and discards every batch."""

from collections.abc import Sequence

from loftlog.core.models import LogEntry


class NullBatchSink:
    """BatchSinkPort used when no external destination is configured."""

    async def send(self, entries: Sequence[LogEntry]) -> bool:
        return True
