"""Ring buffer batch sink.

Provides bounded in-memory retention of flushed entries that evicts the
oldest entries when full. Lets dashboards look at recent history after the
service buffer has been flushed, with predictable memory usage.
"""

import threading
from collections import deque
from collections.abc import Sequence

from loftlog.core.models import LogEntry, LogFilter
from loftlog.core.query import select_logs


class RingBufferBatchSink:
    """Ring buffer implementation of BatchSinkPort.

    Stores flushed entries in a fixed-size circular buffer. When the buffer
    is full, the oldest entry is automatically evicted to make room for
    new entries.

    Args:
        max_size: Maximum number of entries to retain.
    """

    def __init__(self, max_size: int) -> None:
        self._buffer: deque[LogEntry] = deque(maxlen=max_size)
        # send() runs on the dispatcher thread, query() on callers' threads.
        self._lock = threading.Lock()

    async def send(self, entries: Sequence[LogEntry]) -> bool:
        """Append a batch of entries, evicting the oldest if needed."""
        with self._lock:
            self._buffer.extend(entries)
        return True

    def __len__(self) -> int:
        return len(self._buffer)

    def query(
        self, log_filter: LogFilter | None = None, limit: int = 100
    ) -> list[LogEntry]:
        """Return retained entries matching the filter, newest first."""
        with self._lock:
            snapshot = list(self._buffer)
        return select_logs(snapshot, log_filter or LogFilter(), limit)
