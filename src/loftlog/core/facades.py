"""Caller-side logging helpers for common booking backend scenarios.

Each facade pre-fills category, level and message for one area and
delegates to a LoggingService passed at construction.
"""

from collections.abc import Mapping, Sequence
from typing import Any

from loftlog.core.models import LogContext, LogLevel
from loftlog.core.service import LoggingService


class ReservationLogger:
    """Reservation lifecycle events."""

    def __init__(self, service: LoggingService) -> None:
        self._service = service

    def created(
        self,
        reservation_id: str,
        loft_id: str,
        context: LogContext | None = None,
        data: Mapping[str, Any] | None = None,
    ) -> None:
        self._service.log_reservation(
            LogLevel.INFO,
            "Reservation created successfully",
            reservation_id,
            loft_id,
            context,
            data,
        )

    def failed(
        self,
        error: str,
        loft_id: str | None = None,
        context: LogContext | None = None,
        data: Mapping[str, Any] | None = None,
    ) -> None:
        self._service.log_reservation(
            LogLevel.ERROR,
            f"Reservation creation failed: {error}",
            None,
            loft_id,
            context,
            data,
        )

    def validated(
        self, reservation_id: str, loft_id: str, context: LogContext | None = None
    ) -> None:
        self._service.log_reservation(
            LogLevel.DEBUG, "Reservation data validated", reservation_id, loft_id, context
        )

    def validation_failed(
        self,
        errors: Sequence[str],
        loft_id: str | None = None,
        context: LogContext | None = None,
    ) -> None:
        if loft_id is not None:
            context = (context or LogContext()).merged(loft_id=loft_id)
        self._service.log_validation(
            LogLevel.WARN, "Reservation validation failed", errors, context
        )


class APILogger:
    """HTTP request and response events."""

    def __init__(self, service: LoggingService) -> None:
        self._service = service

    def request(
        self,
        method: str,
        endpoint: str,
        context: LogContext | None = None,
        data: Mapping[str, Any] | None = None,
    ) -> None:
        self._service.log_api(
            LogLevel.INFO,
            "API request received",
            method,
            endpoint,
            context=context,
            data=data,
        )

    def response(
        self,
        method: str,
        endpoint: str,
        status_code: int,
        response_time_ms: float,
        context: LogContext | None = None,
    ) -> None:
        """Log a response; client and server errors are logged as warnings."""
        level = LogLevel.WARN if status_code >= 400 else LogLevel.INFO
        self._service.log_api(
            level,
            "API response sent",
            method,
            endpoint,
            status_code,
            response_time_ms,
            context,
        )

    def error(
        self,
        method: str,
        endpoint: str,
        exc: BaseException,
        context: LogContext | None = None,
    ) -> None:
        self._service.log_api(
            LogLevel.ERROR,
            f"API error occurred: {exc}",
            method,
            endpoint,
            500,
            context=context,
            data={"error_type": type(exc).__name__},
        )


class DBLogger:
    """Database query events."""

    def __init__(self, service: LoggingService) -> None:
        self._service = service

    def query(
        self,
        operation: str,
        table: str,
        context: LogContext | None = None,
        data: Mapping[str, Any] | None = None,
    ) -> None:
        self._service.log_database(
            LogLevel.DEBUG, "Database query executed", operation, table, context, data
        )

    def error(
        self,
        operation: str,
        table: str,
        exc: BaseException,
        context: LogContext | None = None,
    ) -> None:
        self._service.log_database(
            LogLevel.ERROR,
            f"Database error: {exc}",
            operation,
            table,
            context,
            {"error_code": getattr(exc, "code", None)},
        )

    def slow_query(
        self,
        operation: str,
        table: str,
        duration_ms: float,
        context: LogContext | None = None,
    ) -> None:
        self._service.log_database(
            LogLevel.WARN,
            "Slow database query detected",
            operation,
            table,
            context,
            {"duration_ms": duration_ms},
        )
