"""ASGI generic adapter for request logging and log query endpoints.

This adapter provides a framework-agnostic middleware and ASGI application
that can be used with any ASGI server (uvicorn, hypercorn, daphne) without
requiring FastAPI as a dependency.
"""

import fnmatch
import json
import random
import string
import time
from collections.abc import Callable, Coroutine
from typing import Any
from urllib.parse import parse_qs

from loftlog.adapters.frameworks.query_params import parse_limit, parse_log_filter
from loftlog.adapters.logging_context import clear_log_context, set_log_context
from loftlog.core.encoding.ndjson import encode_logs
from loftlog.core.facades import APILogger
from loftlog.core.models import LogCategory, LogContext
from loftlog.core.service import LoggingService

# ASGI type aliases
Scope = dict[str, Any]
Receive = Callable[[], Coroutine[Any, Any, dict[str, Any]]]
Send = Callable[[dict[str, Any]], Coroutine[Any, Any, None]]
ASGIApp = Callable[[Scope, Receive, Send], Coroutine[Any, Any, None]]

_REQUEST_ID_ALPHABET = string.ascii_lowercase + string.digits

DEFAULT_MAX_BODY_BYTES = 4096
TRUNCATED_SUFFIX = "...(truncated)"


def _parse_query_params(scope: Scope) -> dict[str, list[str]]:
    """Parse query string from ASGI scope into parameter dictionary.

    Returns an empty dict if query_string is missing or empty.
    """
    query_string = scope.get("query_string", b"").decode(errors="replace")
    return parse_qs(query_string)


def _get_header(scope: Scope, header_name: str) -> str | None:
    """Return the first value of a header (case-insensitive), if present."""
    header_bytes = header_name.lower().encode()
    headers: list[tuple[bytes, bytes]] = scope.get("headers", [])
    for name, value in headers:
        if name.lower() == header_bytes:
            return value.decode("utf-8", errors="replace")
    return None


def generate_request_id() -> str:
    """Generate a request id of the form ``req_<epoch ms>_<9 base36 chars>``."""
    suffix = "".join(random.choices(_REQUEST_ID_ALPHABET, k=9))
    return f"req_{int(time.time() * 1000)}_{suffix}"


def _extract_request_id(scope: Scope, header_name: str = "X-Request-ID") -> str:
    """Extract the request id header, or generate a new id if absent."""
    return _get_header(scope, header_name) or generate_request_id()


def _request_context(scope: Scope, request_id: str) -> LogContext:
    client = scope.get("client")
    return LogContext(
        request_id=request_id,
        ip_address=client[0] if client else None,
        user_agent=_get_header(scope, "user-agent"),
    )


def _flatten_query(params: dict[str, list[str]]) -> dict[str, str | list[str]]:
    return {key: values[0] if len(values) == 1 else values for key, values in params.items()}


async def _drain_body(receive: Receive) -> tuple[bytes, list[dict[str, Any]]]:
    """Read the whole request body, keeping the messages for replay."""
    messages: list[dict[str, Any]] = []
    chunks: list[bytes] = []
    while True:
        message = await receive()
        messages.append(message)
        if message["type"] != "http.request":
            break
        chunks.append(message.get("body", b""))
        if not message.get("more_body", False):
            break
    return b"".join(chunks), messages


def _replaying_receive(messages: list[dict[str, Any]], receive: Receive) -> Receive:
    pending = list(messages)

    async def replay() -> dict[str, Any]:
        if pending:
            return pending.pop(0)
        return await receive()

    return replay


def _loggable_body(body: bytes, max_bytes: int) -> Any:
    """Decode a request body for the log: JSON when possible, else text."""
    if len(body) > max_bytes:
        return body[:max_bytes].decode("utf-8", errors="replace") + TRUNCATED_SUFFIX
    text = body.decode("utf-8", errors="replace")
    try:
        return json.loads(text)
    except ValueError:
        return text


async def _send_response(send: Send, status: int, content_type: str, body: str) -> None:
    """Send an HTTP response with headers and body."""
    headers = [(b"content-type", content_type.encode())]
    await send({"type": "http.response.start", "status": status, "headers": headers})
    await send({"type": "http.response.body", "body": body.encode()})


class ASGILoggingMiddleware:
    """ASGI middleware that logs every HTTP request and its response.

    Each request gets a request id (taken from ``request_id_header`` or
    generated) which is also set as ambient log context, so entries logged
    by the wrapped application carry it. Exceptions raised by the app are
    logged as API errors and re-raised.

    For methods other than GET the body is read before the app runs,
    recorded under ``data["body"]`` and replayed to the app unchanged.
    """

    def __init__(
        self,
        app: ASGIApp,
        service: LoggingService,
        exclude_paths: list[str] | None = None,
        request_id_header: str = "X-Request-ID",
        log_request_body: bool = True,
        max_body_bytes: int = DEFAULT_MAX_BODY_BYTES,
    ) -> None:
        """Initialize the middleware.

        Args:
            app: The ASGI application to wrap.
            service: Logging service receiving the request entries.
            exclude_paths: Paths not to log. Supports exact matches and
                wildcard patterns (e.g., "/internal/*").
            request_id_header: Header carrying an incoming request id.
            log_request_body: Record non-GET request bodies.
            max_body_bytes: Bodies longer than this are logged truncated.
        """
        self.app = app
        self.api_logger = APILogger(service)
        self.exclude_paths = exclude_paths or []
        self.request_id_header = request_id_header
        self.log_request_body = log_request_body
        self.max_body_bytes = max_body_bytes

    def _path_excluded(self, path: str) -> bool:
        return any(fnmatch.fnmatch(path, pattern) for pattern in self.exclude_paths)

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http" or self._path_excluded(scope["path"]):
            await self.app(scope, receive, send)
            return

        start_time = time.perf_counter()
        method, path = scope["method"], scope["path"]
        request_id = _extract_request_id(scope, self.request_id_header)
        context = _request_context(scope, request_id)
        request_data: dict[str, Any] = {}
        query = _flatten_query(_parse_query_params(scope))
        if query:
            request_data["query"] = query
        if self.log_request_body and method != "GET":
            body, messages = await _drain_body(receive)
            receive = _replaying_receive(messages, receive)
            if body:
                request_data["body"] = _loggable_body(body, self.max_body_bytes)
        self.api_logger.request(method, path, context, request_data or None)

        captured: dict[str, Any] = {"status": None}

        async def wrapped_send(message: dict[str, Any]) -> None:
            if message["type"] == "http.response.start":
                captured["status"] = message["status"]
            await send(message)

        set_log_context(**context.to_dict())
        try:
            await self.app(scope, receive, wrapped_send)
        except Exception as exc:
            self.api_logger.error(method, path, exc, context)
            raise
        finally:
            clear_log_context()

        if captured["status"] is not None:
            duration_ms = (time.perf_counter() - start_time) * 1000
            self.api_logger.response(method, path, captured["status"], duration_ms, context)


def create_asgi_app(service: LoggingService) -> ASGIApp:
    """Create an ASGI app serving the buffered logs.

    Endpoints:
        /logs        NDJSON entries, newest first. Query parameters: level,
                     category, request_id, user_id, loft_id,
                     reservation_id, search, start_time, end_time, limit.
        /logs/stats  JSON statistics of the buffer.
    """

    async def app(scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            return

        path = scope["path"]
        try:
            if path == "/logs":
                params = _parse_query_params(scope)
                entries = service.get_logs(parse_log_filter(params), parse_limit(params))
                body = encode_logs(entries)
                content_type = "application/x-ndjson"
            elif path == "/logs/stats":
                body = json.dumps(service.get_log_stats().to_dict())
                content_type = "application/json"
            else:
                await _send_response(send, 404, "text/plain", "Not Found")
                return
        except Exception as exc:
            service.error(f"Error serving {path} endpoint", exc, LogCategory.API)
            error_body = json.dumps({"error": "Internal Server Error"})
            await _send_response(send, 500, "application/json", error_body)
            return
        await _send_response(send, 200, content_type, body)

    return app
