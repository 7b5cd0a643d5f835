"""Console sink adapters.

The console stream is a human-readable side channel: one line per entry,
with the structured payload rendered after it.
"""

import logging
from dataclasses import dataclass, field
from typing import Any

from loftlog.core.ports import ConsoleChannel

_STDLIB_LEVELS: dict[str, int] = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "error": logging.ERROR,
}


class LoggingConsoleSink:
    """ConsoleSinkPort writing through the standard library logging module.

    Lines go to the ``loftlog.console`` logger by default, so the host
    application decides where they end up (stderr, files, aggregators).

    Example:
        ```python
        logging.basicConfig(level=logging.DEBUG, format="%(message)s")
        service = create_logging_service(console=LoggingConsoleSink())
        ```
    """

    def __init__(self, logger_name: str = "loftlog.console") -> None:
        self._logger = logging.getLogger(logger_name)

    def emit(self, channel: ConsoleChannel, line: str, payload: Any = None) -> None:
        level = _STDLIB_LEVELS[channel]
        if payload is None:
            self._logger.log(level, "%s", line)
        else:
            self._logger.log(level, "%s %s", line, payload)


@dataclass(frozen=True)
class ConsoleLine:
    """One line captured by InMemoryConsoleSink."""

    channel: ConsoleChannel
    line: str
    payload: Any = None


@dataclass
class InMemoryConsoleSink:
    """ConsoleSinkPort that keeps every emitted line in a list.

    Suitable for tests and for embedding the console stream in a UI.
    """

    lines: list[ConsoleLine] = field(default_factory=list)

    def emit(self, channel: ConsoleChannel, line: str, payload: Any = None) -> None:
        self.lines.append(ConsoleLine(channel, line, payload))

    def on_channel(self, channel: ConsoleChannel) -> list[ConsoleLine]:
        return [line for line in self.lines if line.channel == channel]

    def clear(self) -> None:
        self.lines.clear()
