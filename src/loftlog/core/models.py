"""Core domain models for structured log entries."""

from dataclasses import asdict, dataclass, field, fields, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any


class LogLevel(str, Enum):
    """Severity of a log entry, ordered from least to most severe."""

    DEBUG = "debug"
    INFO = "info"
    WARN = "warn"
    ERROR = "error"
    CRITICAL = "critical"

    @property
    def severity(self) -> int:
        """Rank of the level (debug=0 ... critical=4)."""
        return _LEVEL_ORDER.index(self)


_LEVEL_ORDER = list(LogLevel)


class LogCategory(str, Enum):
    """Subject area of a log entry. Classification only."""

    RESERVATION = "reservation"
    LOFT = "loft"
    VALIDATION = "validation"
    DATABASE = "database"
    API = "api"
    AUTHENTICATION = "authentication"
    PAYMENT = "payment"
    PERFORMANCE = "performance"
    SECURITY = "security"
    SYSTEM = "system"


@dataclass(frozen=True)
class LogContext:
    """Correlation identifiers attached to an entry.

    Every field is optional. The logging service never validates these
    values; it only carries them and uses them as filter keys.
    """

    request_id: str | None = None
    user_id: str | None = None
    session_id: str | None = None
    loft_id: str | None = None
    reservation_id: str | None = None
    operation: str | None = None
    ip_address: str | None = None
    user_agent: str | None = None
    correlation_id: str | None = None
    trace_id: str | None = None
    span_id: str | None = None

    def merged(self, **overrides: str | None) -> "LogContext":
        """Return a copy with the given fields replaced."""
        return replace(self, **overrides)

    def fill_from(self, other: "LogContext") -> "LogContext":
        """Return a copy where unset fields take their value from ``other``."""
        missing = {
            f.name: getattr(other, f.name)
            for f in fields(self)
            if getattr(self, f.name) is None and getattr(other, f.name) is not None
        }
        return replace(self, **missing) if missing else self

    def to_dict(self) -> dict[str, str]:
        return {k: v for k, v in asdict(self).items() if v is not None}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "LogContext":
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in known})


@dataclass(frozen=True)
class ErrorInfo:
    """Structured description of an exception attached to an entry.

    Attributes:
        name: Exception class name.
        message: Exception message.
        stack: Formatted traceback. Only kept for critical entries or
            when the service runs in development mode.
        code: Application or driver error code, if the exception had one.
    """

    name: str
    message: str
    stack: str | None = None
    code: str | None = None

    def to_dict(self) -> dict[str, str]:
        return {k: v for k, v in asdict(self).items() if v is not None}


@dataclass(frozen=True)
class PerformanceInfo:
    """Timing and resource figures attached to an entry."""

    duration_ms: float
    memory_usage: int | None = None
    cpu_usage: float | None = None

    def to_dict(self) -> dict[str, float | int]:
        return {k: v for k, v in asdict(self).items() if v is not None}


@dataclass(frozen=True)
class LogEntry:
    """A structured log entry.

    Entries are created by the logging service, which assigns the
    timestamp, and are never mutated afterwards.

    Attributes:
        timestamp: ISO-8601 UTC creation time.
        level: Severity of the entry.
        category: Subject area of the entry.
        message: Free text message.
        context: Optional correlation identifiers.
        data: Optional JSON-like payload with structured extras.
        error: Optional structured error descriptor.
        performance: Optional timing figures.
        tags: Optional free-text labels.
    """

    timestamp: str
    level: LogLevel
    category: LogCategory
    message: str
    context: LogContext | None = None
    data: dict[str, Any] | None = None
    error: ErrorInfo | None = None
    performance: PerformanceInfo | None = None
    tags: tuple[str, ...] | None = None

    @property
    def created_at(self) -> datetime:
        """The timestamp parsed as an aware datetime."""
        return parse_timestamp(self.timestamp)

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-ready mapping, omitting absent fields."""
        result: dict[str, Any] = {
            "timestamp": self.timestamp,
            "level": self.level.value,
            "category": self.category.value,
            "message": self.message,
        }
        if self.context is not None:
            result["context"] = self.context.to_dict()
        if self.data is not None:
            result["data"] = self.data
        if self.error is not None:
            result["error"] = self.error.to_dict()
        if self.performance is not None:
            result["performance"] = self.performance.to_dict()
        if self.tags is not None:
            result["tags"] = list(self.tags)
        return result

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "LogEntry":
        """Rebuild an entry from the mapping produced by :meth:`to_dict`."""
        context = data.get("context")
        error = data.get("error")
        performance = data.get("performance")
        tags = data.get("tags")
        return cls(
            timestamp=data["timestamp"],
            level=LogLevel(data["level"]),
            category=LogCategory(data["category"]),
            message=data["message"],
            context=LogContext.from_dict(context) if context is not None else None,
            data=data.get("data"),
            error=ErrorInfo(**error) if error is not None else None,
            performance=(
                PerformanceInfo(**performance) if performance is not None else None
            ),
            tags=tuple(tags) if tags is not None else None,
        )


@dataclass(frozen=True)
class LogFilter:
    """Query filter for buffered entries. All set fields are AND-combined.

    ``start_time`` and ``end_time`` bound the entry timestamp inclusively.
    ``search_term`` matches case-insensitively against the message or the
    JSON-serialized data payload. ``level`` and ``category`` accept their
    string values; an unknown value raises ValueError.
    """

    level: LogLevel | str | None = None
    category: LogCategory | str | None = None
    start_time: datetime | None = None
    end_time: datetime | None = None
    request_id: str | None = None
    user_id: str | None = None
    loft_id: str | None = None
    reservation_id: str | None = None
    search_term: str | None = None

    def __post_init__(self) -> None:
        if self.level is not None:
            object.__setattr__(self, "level", LogLevel(self.level))
        if self.category is not None:
            object.__setattr__(self, "category", LogCategory(self.category))


@dataclass
class LogStats:
    """Aggregate counts over the buffered entries."""

    total: int = 0
    by_level: dict[LogLevel, int] = field(
        default_factory=lambda: {level: 0 for level in LogLevel}
    )
    by_category: dict[LogCategory, int] = field(
        default_factory=lambda: {category: 0 for category in LogCategory}
    )
    recent_errors: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "total": self.total,
            "by_level": {level.value: n for level, n in self.by_level.items()},
            "by_category": {
                category.value: n for category, n in self.by_category.items()
            },
            "recent_errors": self.recent_errors,
        }


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def format_timestamp(moment: datetime) -> str:
    """Format a datetime as an ISO-8601 UTC string with microseconds."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc).isoformat(timespec="microseconds")


def parse_timestamp(value: str) -> datetime:
    """Parse an ISO-8601 string, treating naive values as UTC."""
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed
