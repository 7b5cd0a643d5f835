"""Local diagnostic sink: summarizes each flush on the console."""

from collections.abc import Sequence

from loftlog.core.models import LogEntry
from loftlog.core.ports import ConsoleSinkPort


class DiagnosticBatchSink:
    """BatchSinkPort that reports flushed batches as a console debug line.

    This is the default destination outside production mode, where the
    entries themselves have already been mirrored to the console.
    """

    def __init__(self, console: ConsoleSinkPort) -> None:
        self._console = console

    async def send(self, entries: Sequence[LogEntry]) -> bool:
        self._console.emit("debug", f"Flushed {len(entries)} log entries")
        return True
