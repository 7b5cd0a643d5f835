"""Shared query parameter parsing utilities for framework adapters.

This module turns query parameters (as returned by urllib.parse.parse_qs)
into a LogFilter and a result limit. Invalid values are ignored rather
than rejected, so a dashboard typo never turns into an error page.
"""

from datetime import datetime

from loftlog.core.models import LogCategory, LogFilter, LogLevel, parse_timestamp

DEFAULT_LIMIT = 100
MAX_LIMIT = 1000

_CONTEXT_PARAMS = ("request_id", "user_id", "loft_id", "reservation_id")


def _first(params: dict[str, list[str]], name: str) -> str | None:
    values = params.get(name)
    if not values:
        return None
    value = values[0].strip()
    return value or None


def _parse_level_param(params: dict[str, list[str]]) -> LogLevel | None:
    """Parse the 'level' parameter (case-insensitive), None if invalid."""
    raw = _first(params, "level")
    if raw is None:
        return None
    try:
        return LogLevel(raw.lower())
    except ValueError:
        return None


def _parse_category_param(params: dict[str, list[str]]) -> LogCategory | None:
    """Parse the 'category' parameter (case-insensitive), None if invalid."""
    raw = _first(params, "category")
    if raw is None:
        return None
    try:
        return LogCategory(raw.lower())
    except ValueError:
        return None


def _parse_time_param(params: dict[str, list[str]], name: str) -> datetime | None:
    """Parse an ISO-8601 time parameter, None if missing or malformed."""
    raw = _first(params, name)
    if raw is None:
        return None
    try:
        return parse_timestamp(raw)
    except ValueError:
        return None


def _parse_limit_param(params: dict[str, list[str]]) -> int:
    """Parse the 'limit' parameter, clamped to [1, MAX_LIMIT]."""
    raw = _first(params, "limit")
    if raw is None:
        return DEFAULT_LIMIT
    try:
        value = int(raw)
    except ValueError:
        return DEFAULT_LIMIT
    return max(1, min(value, MAX_LIMIT))


def parse_log_filter(params: dict[str, list[str]]) -> LogFilter:
    """Build a LogFilter from query parameters.

    Recognized parameters: level, category, request_id, user_id, loft_id,
    reservation_id, search, start_time, end_time.
    """
    return LogFilter(
        level=_parse_level_param(params),
        category=_parse_category_param(params),
        start_time=_parse_time_param(params, "start_time"),
        end_time=_parse_time_param(params, "end_time"),
        search_term=_first(params, "search"),
        **{name: _first(params, name) for name in _CONTEXT_PARAMS},
    )


def parse_limit(params: dict[str, list[str]]) -> int:
    return _parse_limit_param(params)
