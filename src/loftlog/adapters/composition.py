"""Default wiring of a LoggingService with the bundled adapters."""

from loftlog.adapters.console import LoggingConsoleSink
from loftlog.adapters.logging_context import get_log_context
from loftlog.adapters.sinks.diagnostic import DiagnosticBatchSink
from loftlog.adapters.sinks.null import NullBatchSink
from loftlog.core.config import LoggingConfig
from loftlog.core.ports import BatchSinkPort, Clock, ConsoleSinkPort
from loftlog.core.service import LoggingService


def create_logging_service(
    config: LoggingConfig | None = None,
    console: ConsoleSinkPort | None = None,
    external_sink: BatchSinkPort | None = None,
    local_sink: BatchSinkPort | None = None,
    clock: Clock | None = None,
) -> LoggingService:
    """Build a LoggingService, filling unset collaborators with defaults.

    Args:
        config: Runtime settings. Defaults to ``LoggingConfig()``.
        console: Console sink. Defaults to a stdlib logging sink.
        external_sink: Batch sink used in production mode.
            Defaults to a sink that discards batches.
        local_sink: Batch sink used outside production mode.
            Defaults to a console summary of each flush.
        clock: Callable returning the current aware datetime.

    The service always reads the ambient context set by
    ``loftlog.adapters.logging_context`` and the request middleware.

    Example:
        ```python
        service = create_logging_service(
            load_config(), external_sink=HTTPBatchSink(base_url)
        )
        ```
    """
    console = console or LoggingConsoleSink()
    return LoggingService(
        config,
        console=console,
        external_sink=external_sink or NullBatchSink(),
        local_sink=local_sink or DiagnosticBatchSink(console),
        clock=clock,
        context_provider=get_log_context,
    )
