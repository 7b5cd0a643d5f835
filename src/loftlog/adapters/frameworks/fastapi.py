"""FastAPI adapter for log query endpoints."""

from datetime import datetime

from fastapi import APIRouter, Query, Response

from loftlog.adapters.frameworks.query_params import DEFAULT_LIMIT, MAX_LIMIT
from loftlog.core.encoding.ndjson import encode_logs
from loftlog.core.models import LogCategory, LogFilter, LogLevel
from loftlog.core.service import LoggingService


def create_logs_router(service: LoggingService) -> APIRouter:
    """Create a FastAPI router with /logs and /logs/stats endpoints.

    Args:
        service: Logging service whose buffer is exposed.

    Returns:
        APIRouter with the endpoints configured.
    """
    router = APIRouter()

    @router.get("/logs")
    async def get_logs(
        level: LogLevel | None = None,
        category: LogCategory | None = None,
        request_id: str | None = None,
        user_id: str | None = None,
        loft_id: str | None = None,
        reservation_id: str | None = None,
        search: str | None = None,
        start_time: datetime | None = None,
        end_time: datetime | None = None,
        limit: int = Query(default=DEFAULT_LIMIT, ge=1, le=MAX_LIMIT),
    ) -> Response:
        """Return buffered entries in NDJSON format, newest first."""
        log_filter = LogFilter(
            level=level,
            category=category,
            start_time=start_time,
            end_time=end_time,
            request_id=request_id,
            user_id=user_id,
            loft_id=loft_id,
            reservation_id=reservation_id,
            search_term=search,
        )
        body = encode_logs(service.get_logs(log_filter, limit))
        return Response(content=body, media_type="application/x-ndjson")

    @router.get("/logs/stats")
    async def get_log_stats() -> dict[str, object]:
        """Return per-level and per-category counts of buffered entries."""
        return service.get_log_stats().to_dict()

    return router
