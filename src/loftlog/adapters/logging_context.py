"""Ambient log context carried across a request via contextvars.

Fields set here are merged into every entry logged from the same task or
thread, unless the caller supplies its own value for that field.
"""

from contextvars import ContextVar
from typing import Any

_log_context: ContextVar[dict[str, Any] | None] = ContextVar(
    "loftlog_context", default=None
)


def get_log_context() -> dict[str, Any]:
    """Return a copy of the current ambient context."""
    return dict(_log_context.get() or {})


def set_log_context(**fields: Any) -> None:
    """Replace the ambient context with the given fields."""
    _log_context.set({k: v for k, v in fields.items() if v is not None})


def update_log_context(**fields: Any) -> None:
    """Add or overwrite fields of the ambient context."""
    current = get_log_context()
    current.update({k: v for k, v in fields.items() if v is not None})
    _log_context.set(current)


def clear_log_context() -> None:
    """Remove every ambient context field."""
    _log_context.set(None)
