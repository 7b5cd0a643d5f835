"""Configuration for the logging service, loaded from environment variables."""

import os
from dataclasses import dataclass

DEVELOPMENT = "development"
PRODUCTION = "production"


@dataclass(frozen=True)
class LoggingConfig:
    """Runtime settings of a LoggingService.

    Attributes:
        environment: Runtime mode. "development" enables debug console
            output and stack traces; "production" routes flushes to the
            external sink. Any other value behaves like neither.
        max_buffer_size: Buffer length that triggers an immediate flush.
        flush_interval: Seconds between periodic flushes.
        recent_error_window: Seconds counted as "recent" by the stats.
    """

    environment: str = DEVELOPMENT
    max_buffer_size: int = 1000
    flush_interval: float = 30.0
    recent_error_window: float = 3600.0

    def __post_init__(self) -> None:
        if self.max_buffer_size < 1:
            raise ValueError("max_buffer_size must be at least 1")
        if self.flush_interval <= 0:
            raise ValueError("flush_interval must be positive")

    @property
    def is_development(self) -> bool:
        return self.environment == DEVELOPMENT

    @property
    def is_production(self) -> bool:
        return self.environment == PRODUCTION


def load_config() -> LoggingConfig:
    """Build LoggingConfig from environment variables with sensible defaults."""
    return LoggingConfig(
        environment=os.environ.get("LOFTLOG_ENV", LoggingConfig.environment).lower(),
        max_buffer_size=int(
            os.environ.get("LOFTLOG_MAX_BUFFER_SIZE", LoggingConfig.max_buffer_size)
        ),
        flush_interval=float(
            os.environ.get("LOFTLOG_FLUSH_INTERVAL", LoggingConfig.flush_interval)
        ),
    )
