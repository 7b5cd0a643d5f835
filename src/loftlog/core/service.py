"""Buffered structured logging service.

The service stamps and buffers entries, mirrors each one to a console
sink, and hands the buffer to a batch sink periodically, when it fills
up, or right after a critical entry. Logging is strictly best-effort:
no fault inside the service ever reaches the caller.
"""

import inspect
import logging
import threading
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import replace
from datetime import timedelta
from types import TracebackType
from typing import Any

import psutil

from loftlog.core.config import LoggingConfig
from loftlog.core.dispatch import BackgroundDispatcher
from loftlog.core.formatting import (
    console_channel,
    error_info_from_exception,
    format_console_line,
    render_payload,
)
from loftlog.core.models import (
    ErrorInfo,
    LogCategory,
    LogContext,
    LogEntry,
    LogFilter,
    LogLevel,
    LogStats,
    PerformanceInfo,
    format_timestamp,
    utc_now,
)
from loftlog.core.ports import BatchSinkPort, Clock, ConsoleSinkPort, ContextProvider
from loftlog.core.query import compute_stats, select_logs

logger = logging.getLogger(__name__)


def _no_ambient_context() -> Mapping[str, Any]:
    return {}


class LoggingService:
    """Single point of structured log ingestion for a process.

    Construct one instance at startup and pass it to the components that
    log. The periodic flush thread starts with the instance and runs until
    :meth:`shutdown`. Applications usually build it through
    ``loftlog.adapters.composition.create_logging_service``, which wires
    the default adapters.

    Example:
        ```python
        service = LoggingService(
            LoggingConfig(environment="production"),
            console=LoggingConsoleSink(),
            external_sink=HTTPBatchSink(base_url),
            local_sink=NullBatchSink(),
        )
        service.info("Loft listing refreshed", LogCategory.LOFT)
        service.shutdown()
        ```
    """

    def __init__(
        self,
        config: LoggingConfig | None,
        console: ConsoleSinkPort,
        external_sink: BatchSinkPort,
        local_sink: BatchSinkPort,
        clock: Clock | None = None,
        context_provider: ContextProvider | None = None,
    ) -> None:
        """Initialize the service and start the periodic flush thread.

        Args:
            config: Runtime settings. ``None`` means ``LoggingConfig()``.
            console: Console sink.
            external_sink: Batch sink used in production mode.
            local_sink: Batch sink used outside production mode.
            clock: Callable returning the current aware datetime.
            context_provider: Callable returning the ambient context merged
                into each entry. Without one, entries carry only the
                context passed explicitly.
        """
        self._config = config or LoggingConfig()
        self._console = console
        self._external_sink = external_sink
        self._local_sink = local_sink
        self._clock = clock or utc_now
        self._context_provider = context_provider or _no_ambient_context
        self._process = psutil.Process()

        # Reentrant: signal handlers may call shutdown() while the
        # interrupted frame holds the lock.
        self._lock = threading.RLock()
        self._buffer: list[LogEntry] = []
        self._shutdown = False

        self._dispatcher = BackgroundDispatcher()
        self._stop_event = threading.Event()
        self._timer_thread = threading.Thread(
            target=self._flush_loop, name="loftlog-flush", daemon=True
        )
        self._timer_thread.start()

    @property
    def config(self) -> LoggingConfig:
        return self._config

    @property
    def is_active(self) -> bool:
        return not self._shutdown

    def __enter__(self) -> "LoggingService":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.shutdown()

    # --- Ingestion ---

    def log(
        self,
        level: LogLevel | str,
        category: LogCategory | str,
        message: str,
        context: LogContext | None = None,
        data: Mapping[str, Any] | None = None,
        error: ErrorInfo | None = None,
        performance: PerformanceInfo | None = None,
        tags: Iterable[str] | None = None,
    ) -> None:
        """Record one entry. Never raises.

        The entry is appended to the buffer and written to the console.
        Reaching the buffer bound flushes before returning; a critical
        entry is also sent on its own to the external sink.
        """
        try:
            entry = self._build_entry(
                level, category, message, context, data, error, performance, tags
            )
        except Exception:
            logger.exception("Dropping log entry that could not be built")
            return

        with self._lock:
            self._buffer.append(entry)
            full = len(self._buffer) >= self._config.max_buffer_size

        self._write_console(entry)
        if full:
            self.flush()
        if entry.level is LogLevel.CRITICAL and self._config.is_production:
            self._dispatch(self._external_sink, (entry,), "external")

    def _build_entry(
        self,
        level: LogLevel | str,
        category: LogCategory | str,
        message: str,
        context: LogContext | None,
        data: Mapping[str, Any] | None,
        error: ErrorInfo | None,
        performance: PerformanceInfo | None,
        tags: Iterable[str] | None,
    ) -> LogEntry:
        level = LogLevel(level)
        ambient = self._context_provider()
        if ambient:
            ambient_context = LogContext.from_dict(dict(ambient))
            context = (
                context.fill_from(ambient_context) if context else ambient_context
            )
        if (
            error is not None
            and error.stack is not None
            and level is not LogLevel.CRITICAL
            and not self._config.is_development
        ):
            error = replace(error, stack=None)
        return LogEntry(
            timestamp=format_timestamp(self._clock()),
            level=level,
            category=LogCategory(category),
            message=str(message),
            context=context,
            data=dict(data) if data is not None else None,
            error=error,
            performance=performance,
            tags=tuple(tags) if tags is not None else None,
        )

    def _write_console(self, entry: LogEntry) -> None:
        if entry.level is LogLevel.DEBUG and not self._config.is_development:
            return
        try:
            self._console.emit(
                console_channel(entry.level),
                format_console_line(entry),
                render_payload(entry),
            )
        except Exception:
            logger.exception("Console sink failed to write log entry")

    # --- Level helpers ---

    def debug(
        self,
        message: str,
        context: LogContext | None = None,
        data: Mapping[str, Any] | None = None,
    ) -> None:
        self.log(LogLevel.DEBUG, LogCategory.SYSTEM, message, context, data)

    def info(
        self,
        message: str,
        category: LogCategory = LogCategory.SYSTEM,
        context: LogContext | None = None,
        data: Mapping[str, Any] | None = None,
    ) -> None:
        self.log(LogLevel.INFO, category, message, context, data)

    def warn(
        self,
        message: str,
        category: LogCategory = LogCategory.SYSTEM,
        context: LogContext | None = None,
        data: Mapping[str, Any] | None = None,
    ) -> None:
        self.log(LogLevel.WARN, category, message, context, data)

    def error(
        self,
        message: str,
        exc: BaseException | None = None,
        category: LogCategory = LogCategory.SYSTEM,
        context: LogContext | None = None,
        data: Mapping[str, Any] | None = None,
    ) -> None:
        """Log an error, describing ``exc`` when given.

        The traceback is only kept in development mode.
        """
        error = self._describe(exc, include_stack=self._config.is_development)
        self.log(LogLevel.ERROR, category, message, context, data, error)

    def critical(
        self,
        message: str,
        exc: BaseException | None = None,
        category: LogCategory = LogCategory.SYSTEM,
        context: LogContext | None = None,
        data: Mapping[str, Any] | None = None,
    ) -> None:
        """Log a critical error with its traceback, then flush immediately."""
        error = self._describe(exc, include_stack=True)
        self.log(LogLevel.CRITICAL, category, message, context, data, error)
        self.flush()

    @staticmethod
    def _describe(exc: BaseException | None, include_stack: bool) -> ErrorInfo | None:
        if exc is None:
            return None
        try:
            return error_info_from_exception(exc, include_stack)
        except Exception:
            logger.exception("Could not describe exception for log entry")
            return ErrorInfo(name=type(exc).__name__, message="<undescribable error>")

    # --- Domain helpers ---

    def log_reservation(
        self,
        level: LogLevel,
        message: str,
        reservation_id: str | None = None,
        loft_id: str | None = None,
        context: LogContext | None = None,
        data: Mapping[str, Any] | None = None,
    ) -> None:
        base = context or LogContext()
        reservation_context = base.merged(
            reservation_id=reservation_id,
            loft_id=loft_id,
            operation=base.operation or "reservation_operation",
        )
        self.log(level, LogCategory.RESERVATION, message, reservation_context, data)

    def log_validation(
        self,
        level: LogLevel,
        message: str,
        validation_errors: Sequence[str] | None = None,
        context: LogContext | None = None,
    ) -> None:
        data = (
            {"validation_errors": list(validation_errors)}
            if validation_errors is not None
            else None
        )
        self.log(level, LogCategory.VALIDATION, message, context, data)

    def log_database(
        self,
        level: LogLevel,
        message: str,
        operation: str,
        table: str | None = None,
        context: LogContext | None = None,
        data: Mapping[str, Any] | None = None,
    ) -> None:
        db_context = (context or LogContext()).merged(operation=operation)
        db_data = {**(data or {}), "table": table, "operation": operation}
        self.log(level, LogCategory.DATABASE, message, db_context, db_data)

    def log_api(
        self,
        level: LogLevel,
        message: str,
        method: str,
        endpoint: str,
        status_code: int | None = None,
        response_time_ms: float | None = None,
        context: LogContext | None = None,
        data: Mapping[str, Any] | None = None,
    ) -> None:
        """Log an API request or response.

        A response time adds a performance block with the process memory.
        """
        api_context = (context or LogContext()).merged(operation=f"{method} {endpoint}")
        api_data = {
            **(data or {}),
            "method": method,
            "endpoint": endpoint,
            "status_code": status_code,
            "response_time_ms": response_time_ms,
        }
        performance = None
        if response_time_ms:
            performance = PerformanceInfo(
                duration_ms=response_time_ms, memory_usage=self._memory_usage()
            )
        self.log(
            level, LogCategory.API, message, api_context, api_data, None, performance
        )

    def log_performance(
        self,
        message: str,
        operation: str,
        duration_ms: float,
        context: LogContext | None = None,
        additional_metrics: Mapping[str, float] | None = None,
    ) -> None:
        data = {"operation": operation, **(additional_metrics or {})}
        performance = PerformanceInfo(
            duration_ms=duration_ms, memory_usage=self._memory_usage()
        )
        self.log(
            LogLevel.INFO,
            LogCategory.PERFORMANCE,
            message,
            context,
            data,
            None,
            performance,
        )

    def log_security(
        self,
        level: LogLevel,
        message: str,
        security_event: str,
        context: LogContext | None = None,
        data: Mapping[str, Any] | None = None,
    ) -> None:
        security_context = (context or LogContext()).merged(operation=security_event)
        security_data = {
            **(data or {}),
            "security_event": security_event,
            "timestamp": format_timestamp(self._clock()),
        }
        self.log(
            level,
            LogCategory.SECURITY,
            message,
            security_context,
            security_data,
            tags=["security"],
        )

    def _memory_usage(self) -> int | None:
        try:
            return int(self._process.memory_info().rss)
        except psutil.Error:
            return None

    # --- Queries ---

    def get_logs(self, log_filter: LogFilter | None = None, limit: int = 100) -> list[LogEntry]:
        """Return buffered entries matching the filter, newest first."""
        with self._lock:
            snapshot = list(self._buffer)
        return select_logs(snapshot, log_filter or LogFilter(), limit)

    def get_log_stats(self) -> LogStats:
        """Return per-level and per-category counts of buffered entries."""
        with self._lock:
            snapshot = list(self._buffer)
        window = timedelta(seconds=self._config.recent_error_window)
        return compute_stats(snapshot, self._clock(), window)

    def clear_logs(self) -> None:
        """Empty the buffer without flushing it."""
        with self._lock:
            self._buffer = []

    # --- Flushing ---

    def flush(self) -> int:
        """Hand the current buffer to the sink of the current mode.

        The buffer is swapped out under the lock before dispatch starts, so
        entries logged concurrently land in the fresh buffer and are never
        lost or sent twice. Delivery happens in the background.

        Returns:
            Number of entries handed off (0 when the buffer was empty).
        """
        with self._lock:
            if not self._buffer:
                return 0
            snapshot = tuple(self._buffer)
            self._buffer = []

        if self._config.is_production:
            self._dispatch(self._external_sink, snapshot, "external")
        else:
            self._dispatch(self._local_sink, snapshot, "local")
        return len(snapshot)

    def _dispatch(
        self, sink: BatchSinkPort, entries: Sequence[LogEntry], label: str
    ) -> None:
        future = self._dispatcher.submit(lambda: self._deliver(sink, entries, label))
        if future is None:
            self._diagnose(
                f"log dispatch failed: dispatcher closed, "
                f"{len(entries)} entries dropped ({label} sink)"
            )

    async def _deliver(
        self, sink: BatchSinkPort, entries: Sequence[LogEntry], label: str
    ) -> bool:
        try:
            result = sink.send(entries)
            if inspect.isawaitable(result):
                result = await result
        except Exception as exc:
            self._diagnose(
                f"log dispatch failed: {label} sink raised {exc!r} "
                f"for {len(entries)} entries"
            )
            return False
        if result is False:
            self._diagnose(
                f"log dispatch failed: {label} sink rejected {len(entries)} entries"
            )
            return False
        return True

    def _diagnose(self, message: str) -> None:
        try:
            self._console.emit("error", message)
        except Exception:
            logger.exception("Console sink failed to report: %s", message)

    def wait_for_dispatch(self, timeout: float | None = None) -> bool:
        """Block until background deliveries finish. False on timeout."""
        return self._dispatcher.wait_idle(timeout)

    def _flush_loop(self) -> None:
        while not self._stop_event.wait(self._config.flush_interval):
            try:
                self.flush()
            except Exception:
                logger.exception("Periodic log flush failed")

    # --- Lifecycle ---

    def shutdown(self, timeout: float = 5.0) -> None:
        """Stop the periodic flush, flush once more and wait for delivery.

        Calling it again is a no-op.
        """
        with self._lock:
            if self._shutdown:
                return
            self._shutdown = True
        self._stop_event.set()
        if self._timer_thread is not threading.current_thread():
            self._timer_thread.join(timeout)
        self.flush()
        self._dispatcher.close(timeout)
