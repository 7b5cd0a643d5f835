"""Python logging handler adapter for loftlog.

This adapter bridges Python's standard library logging module to a
LoggingService, so that records from libraries and legacy code end up in
the same buffer as structured entries.
"""

import logging

from loftlog.core.formatting import error_info_from_exception
from loftlog.core.models import LogCategory, LogContext, LogLevel
from loftlog.core.service import LoggingService

# Standard LogRecord attributes that should not be treated as extra fields
_STANDARD_LOGRECORD_ATTRS = frozenset(
    {
        "args",
        "asctime",
        "created",
        "exc_info",
        "exc_text",
        "filename",
        "funcName",
        "levelname",
        "levelno",
        "lineno",
        "message",
        "module",
        "msecs",
        "msg",
        "name",
        "pathname",
        "process",
        "processName",
        "relativeCreated",
        "stack_info",
        "taskName",
        "thread",
        "threadName",
    }
)

# Extra attributes routed to LogContext instead of data
_CONTEXT_ATTRS = frozenset(LogContext.__dataclass_fields__)

# Default attributes to extract from LogRecord
_DEFAULT_INCLUDE_ATTRS = ["module", "funcName", "lineno"]

# Records from these loggers are never bridged; the console sink writes
# through "loftlog.console" and would otherwise loop back into the buffer.
_OWN_LOGGER = "loftlog"


def _is_own_logger(name: str) -> bool:
    return name == _OWN_LOGGER or name.startswith(_OWN_LOGGER + ".")


def _level_for(levelno: int) -> LogLevel:
    if levelno >= logging.CRITICAL:
        return LogLevel.CRITICAL
    if levelno >= logging.ERROR:
        return LogLevel.ERROR
    if levelno >= logging.WARNING:
        return LogLevel.WARN
    if levelno >= logging.INFO:
        return LogLevel.INFO
    return LogLevel.DEBUG


class LoftLogHandler(logging.Handler):
    """Logging handler that forwards records to a LoggingService.

    Example:
        ```python
        service = create_logging_service(load_config())
        logging.getLogger("bookings").addHandler(LoftLogHandler(service))
        ```
    """

    def __init__(
        self,
        service: LoggingService,
        category: LogCategory = LogCategory.SYSTEM,
        include_attrs: list[str] | None = None,
    ) -> None:
        """Initialize the handler.

        Args:
            service: Service receiving the converted records.
            category: Category assigned to every bridged entry.
            include_attrs: LogRecord attributes copied into the entry data.
                Defaults to ["module", "funcName", "lineno"].
        """
        super().__init__()
        self._service = service
        self._category = category
        self._include_attrs = include_attrs or _DEFAULT_INCLUDE_ATTRS

    def emit(self, record: logging.LogRecord) -> None:
        """Convert a log record and hand it to the service."""
        if _is_own_logger(record.name):
            return
        try:
            attr_mapping: dict[str, str | int] = {
                "module": record.name,
                "funcName": record.funcName or "",
                "lineno": record.lineno,
                "pathname": record.pathname,
            }
            data: dict[str, object] = {
                key: attr_mapping[key]
                for key in self._include_attrs
                if key in attr_mapping
            }
            context_fields: dict[str, str] = {}
            for key, value in record.__dict__.items():
                if key in _STANDARD_LOGRECORD_ATTRS:
                    continue
                if key in _CONTEXT_ATTRS and isinstance(value, str):
                    context_fields[key] = value
                elif isinstance(value, (str, int, float, bool)):
                    data[key] = value

            level = _level_for(record.levelno)
            error = None
            if record.exc_info and record.exc_info[1] is not None:
                include_stack = (
                    level is LogLevel.CRITICAL or self._service.config.is_development
                )
                error = error_info_from_exception(record.exc_info[1], include_stack)

            self._service.log(
                level,
                self._category,
                record.getMessage(),
                context=LogContext(**context_fields) if context_fields else None,
                data=data,
                error=error,
            )
        except Exception:
            self.handleError(record)
