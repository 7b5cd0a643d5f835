"""Filtering, ordering and statistics over a sequence of log entries."""

from collections.abc import Iterable, Sequence
from datetime import datetime, timedelta, timezone

from loftlog.core.formatting import safe_dumps
from loftlog.core.models import LogEntry, LogFilter, LogLevel, LogStats

_ERROR_LEVELS = frozenset({LogLevel.ERROR, LogLevel.CRITICAL})


def _aware(moment: datetime | None) -> datetime | None:
    if moment is not None and moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment


def _context_value(entry: LogEntry, name: str) -> str | None:
    if entry.context is None:
        return None
    return getattr(entry.context, name)


def _matches_search(entry: LogEntry, term: str) -> bool:
    needle = term.lower()
    if needle in entry.message.lower():
        return True
    data_json = safe_dumps(entry.data or {})
    return data_json is not None and needle in data_json.lower()


def matches_filter(entry: LogEntry, log_filter: LogFilter) -> bool:
    """Return True if the entry satisfies every field set on the filter."""
    if log_filter.level is not None and entry.level != log_filter.level:
        return False
    if log_filter.category is not None and entry.category != log_filter.category:
        return False
    for key in ("request_id", "user_id", "loft_id", "reservation_id"):
        wanted = getattr(log_filter, key)
        if wanted is not None and _context_value(entry, key) != wanted:
            return False
    if log_filter.start_time is not None or log_filter.end_time is not None:
        created = entry.created_at
        start, end = _aware(log_filter.start_time), _aware(log_filter.end_time)
        if start is not None and created < start:
            return False
        if end is not None and created > end:
            return False
    if log_filter.search_term and not _matches_search(entry, log_filter.search_term):
        return False
    return True


def select_logs(
    entries: Sequence[LogEntry], log_filter: LogFilter, limit: int
) -> list[LogEntry]:
    """Filter entries and return them newest first, truncated to limit.

    ``entries`` must be in insertion order. Entries sharing a timestamp
    are returned latest-inserted first.
    """
    if limit <= 0:
        return []
    newest_first = [e for e in reversed(entries) if matches_filter(e, log_filter)]
    newest_first.sort(key=lambda e: e.created_at, reverse=True)
    return newest_first[:limit]


def compute_stats(
    entries: Iterable[LogEntry], now: datetime, recent_window: timedelta
) -> LogStats:
    """Count entries per level and category in a single pass.

    ``recent_errors`` counts error and critical entries created strictly
    after ``now - recent_window``.
    """
    stats = LogStats()
    cutoff = _aware(now) - recent_window
    for entry in entries:
        stats.total += 1
        stats.by_level[entry.level] += 1
        stats.by_category[entry.category] += 1
        if entry.level in _ERROR_LEVELS and entry.created_at > cutoff:
            stats.recent_errors += 1
    return stats
