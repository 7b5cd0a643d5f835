"""Console rendering helpers and exception conversion."""

import json
import traceback
from typing import Any

from loftlog.core.models import ErrorInfo, LogEntry, LogLevel
from loftlog.core.ports import ConsoleChannel

UNSERIALIZABLE_PAYLOAD = "<unserializable payload>"
CRITICAL_MARKER = "CRITICAL: "

_CHANNELS: dict[LogLevel, ConsoleChannel] = {
    LogLevel.DEBUG: "debug",
    LogLevel.INFO: "info",
    LogLevel.WARN: "warn",
    LogLevel.ERROR: "error",
    LogLevel.CRITICAL: "error",
}


def console_channel(level: LogLevel) -> ConsoleChannel:
    """Map an entry level to the console channel it is written to."""
    return _CHANNELS[level]


def safe_dumps(value: Any) -> str | None:
    """Serialize value to JSON, returning None when it cannot be encoded.

    Circular structures raise ValueError in ``json.dumps``; other
    non-JSON types fall back to ``str``.
    """
    try:
        return json.dumps(value, default=str, ensure_ascii=False)
    except (TypeError, ValueError, RecursionError):
        return None


def format_console_line(entry: LogEntry) -> str:
    """Format the human-readable console line for an entry.

    Layout: ``<timestamp> [<CATEGORY>] [<request_id>] <message>``, with an
    empty bracket pair when the entry carries no request id. Critical
    entries get a distinguishing prefix.
    """
    request_id = entry.context.request_id if entry.context else None
    line = (
        f"{entry.timestamp} [{entry.category.value.upper()}] "
        f"[{request_id or ''}] {entry.message}"
    )
    if entry.level is LogLevel.CRITICAL:
        return CRITICAL_MARKER + line
    return line


def render_payload(entry: LogEntry) -> str | None:
    """Render the secondary console argument for an entry.

    Error and critical entries show their error descriptor when present,
    every other entry shows its data payload.
    """
    payload: Any = entry.data
    if entry.level in (LogLevel.ERROR, LogLevel.CRITICAL) and entry.error is not None:
        payload = entry.error.to_dict()
    if payload is None:
        return None
    rendered = safe_dumps(payload)
    return rendered if rendered is not None else UNSERIALIZABLE_PAYLOAD


def error_info_from_exception(exc: BaseException, include_stack: bool) -> ErrorInfo:
    """Convert an exception into an ErrorInfo.

    Args:
        exc: The exception to describe.
        include_stack: Whether to keep the formatted traceback.

    Returns:
        ErrorInfo with name, message, optional stack and optional code.
    """
    code = getattr(exc, "code", None)
    if code is None and isinstance(exc, OSError) and exc.errno is not None:
        code = exc.errno
    stack = None
    if include_stack:
        stack = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
    return ErrorInfo(
        name=type(exc).__name__,
        message=str(exc),
        stack=stack,
        code=str(code) if code is not None else None,
    )
