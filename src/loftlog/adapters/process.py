"""Process-level hooks routing uncaught errors and shutdown signals to the logger."""

import asyncio
import signal
import sys
import threading
from collections.abc import Callable, Iterable
from types import FrameType, TracebackType
from typing import Any

from loftlog.core.models import LogCategory
from loftlog.core.service import LoggingService

DEFAULT_SIGNALS = (signal.SIGTERM, signal.SIGINT)


def install_global_error_handlers(
    service: LoggingService,
    signals: Iterable[signal.Signals] = DEFAULT_SIGNALS,
    loop: asyncio.AbstractEventLoop | None = None,
) -> Callable[[], None]:
    """Log uncaught exceptions as critical and shut down cleanly on signals.

    - Uncaught exceptions in the main thread are logged as critical, the
      service is shut down so the entry gets delivered, then the previous
      ``sys.excepthook`` runs.
    - Uncaught exceptions in other threads are logged as critical.
    - Unhandled exceptions reported by ``loop`` (if given) are logged as
      critical.
    - Each signal in ``signals`` logs an info entry, shuts the service down
      and then chains to the previously installed handler.

    Must be called from the main thread when ``signals`` is not empty.

    Returns:
        A callable restoring every previous hook and handler.
    """
    previous_excepthook = sys.excepthook
    previous_thread_excepthook = threading.excepthook

    def excepthook(
        exc_type: type[BaseException],
        exc: BaseException,
        tb: TracebackType | None,
    ) -> None:
        if not issubclass(exc_type, KeyboardInterrupt):
            service.critical("Uncaught Exception", exc, LogCategory.SYSTEM)
            service.shutdown()
        previous_excepthook(exc_type, exc, tb)

    def thread_excepthook(args: threading.ExceptHookArgs) -> None:
        if args.exc_value is not None and not issubclass(args.exc_type, SystemExit):
            thread_name = args.thread.name if args.thread else "unknown"
            service.critical(
                f"Uncaught Exception in thread {thread_name}",
                args.exc_value,
                LogCategory.SYSTEM,
            )
        previous_thread_excepthook(args)

    sys.excepthook = excepthook
    threading.excepthook = thread_excepthook

    previous_signal_handlers: dict[signal.Signals, Any] = {}
    for signum in signals:
        previous_signal_handlers[signum] = signal.getsignal(signum)
        signal.signal(signum, _make_signal_handler(service, signum, previous_signal_handlers[signum]))

    previous_loop_handler = None
    if loop is not None:
        previous_loop_handler = loop.get_exception_handler()

        def loop_exception_handler(
            failed_loop: asyncio.AbstractEventLoop, context: dict[str, Any]
        ) -> None:
            service.critical(
                f"Unhandled asyncio exception: {context.get('message', '')}",
                context.get("exception"),
                LogCategory.SYSTEM,
            )
            if previous_loop_handler is not None:
                previous_loop_handler(failed_loop, context)
            else:
                failed_loop.default_exception_handler(context)

        loop.set_exception_handler(loop_exception_handler)

    def uninstall() -> None:
        sys.excepthook = previous_excepthook
        threading.excepthook = previous_thread_excepthook
        for signum, handler in previous_signal_handlers.items():
            signal.signal(signum, handler)
        if loop is not None:
            loop.set_exception_handler(previous_loop_handler)

    return uninstall


def _make_signal_handler(
    service: LoggingService, signum: signal.Signals, previous: Any
) -> Callable[[int, FrameType | None], None]:
    def handler(received: int, frame: FrameType | None) -> None:
        service.info(
            f"{signal.Signals(received).name} received, shutting down gracefully",
            LogCategory.SYSTEM,
        )
        service.shutdown()
        if callable(previous):
            previous(received, frame)
        elif previous == signal.SIG_DFL:
            signal.signal(signum, signal.SIG_DFL)
            signal.raise_signal(signum)

    return handler
