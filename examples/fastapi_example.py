"""Example booking API logging through a single LoggingService.

Run with:
    uvicorn examples.fastapi_example:app --reload

Endpoints:
    /lofts/{loft_id}/reservations   - POST a reservation (logs the outcome)
    /logs                           - NDJSON buffered entries, newest first
    /logs?category=<c>&level=<l>    - NDJSON entries filtered
    /logs/stats                     - per-level and per-category counts

Set LOFTLOG_ENV=production to route flushes to the SQLite sink instead of
the console summary.
"""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException

from loftlog.adapters.composition import create_logging_service
from loftlog.adapters.frameworks.asgi import ASGILoggingMiddleware
from loftlog.adapters.frameworks.fastapi import create_logs_router
from loftlog.adapters.logging import LoftLogHandler
from loftlog.adapters.process import install_global_error_handlers
from loftlog.adapters.sinks.sqlite import SQLiteLogSink
from loftlog.core.config import load_config
from loftlog.core.facades import ReservationLogger
from loftlog.core.models import LogContext

logging.basicConfig(level=logging.DEBUG, format="%(message)s")

service = create_logging_service(
    load_config(), external_sink=SQLiteLogSink("loftlog.db")
)
reservations = ReservationLogger(service)

# Records from stdlib loggers (libraries, legacy modules) land in the same buffer.
logging.getLogger("bookings").addHandler(LoftLogHandler(service))

_BOOKED: set[str] = set()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    uninstall = install_global_error_handlers(service, signals=())
    yield
    uninstall()
    service.shutdown()


app = FastAPI(title="Loft bookings", lifespan=lifespan)
app.add_middleware(ASGILoggingMiddleware, service=service, exclude_paths=["/logs*"])
app.include_router(create_logs_router(service))


@app.post("/lofts/{loft_id}/reservations")
async def create_reservation(loft_id: str, guest: str) -> dict[str, str]:
    context = LogContext(user_id=guest)
    if loft_id in _BOOKED:
        reservations.failed("loft already booked", loft_id, context)
        raise HTTPException(status_code=409, detail="Loft already booked")
    reservation_id = f"res-{len(_BOOKED) + 1}"
    _BOOKED.add(loft_id)
    reservations.created(reservation_id, loft_id, context)
    logging.getLogger("bookings").info("Confirmation email queued for %s", guest)
    return {"reservation_id": reservation_id}
