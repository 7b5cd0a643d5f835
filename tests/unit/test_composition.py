"""Tests for default service wiring and the core/adapters boundary."""

import ast
from pathlib import Path

import pytest

import loftlog.core.models
from loftlog.adapters.composition import create_logging_service
from loftlog.adapters.console import InMemoryConsoleSink, LoggingConsoleSink
from loftlog.adapters.logging_context import set_log_context
from loftlog.adapters.sinks.in_memory import InMemoryBatchSink
from loftlog.core.config import LoggingConfig
from loftlog.core.models import LogContext
from loftlog.core.service import LoggingService

CORE_DIR = Path(loftlog.core.models.__file__).parent


def _imported_modules(path: Path) -> set[str]:
    tree = ast.parse(path.read_text(encoding="utf-8"))
    modules: set[str] = set()
    for node in ast.walk(tree):
        if isinstance(node, ast.Import):
            modules.update(alias.name for alias in node.names)
        elif isinstance(node, ast.ImportFrom) and node.module:
            modules.add(node.module)
    return modules


class TestCoreBoundary:
    """The core package depends on ports, never on adapters."""

    @pytest.mark.core
    @pytest.mark.parametrize(
        "path", sorted(CORE_DIR.rglob("*.py")), ids=lambda p: p.name
    )
    def test_core_module_does_not_import_adapters(self, path: Path) -> None:
        offending = {
            name
            for name in _imported_modules(path)
            if name.startswith("loftlog.adapters")
        }
        assert offending == set()


class TestCreateLoggingService:
    """Tests for create_logging_service()."""

    @pytest.mark.core
    def test_defaults(self) -> None:
        with create_logging_service() as service:
            assert isinstance(service._console, LoggingConsoleSink)
            assert service.config == LoggingConfig()

    @pytest.mark.core
    def test_ambient_context_is_wired(self) -> None:
        with create_logging_service(
            console=InMemoryConsoleSink(), local_sink=InMemoryBatchSink()
        ) as service:
            set_log_context(request_id="req_ambient")
            service.info("with ambient context")
            (entry,) = service.get_logs()
        assert entry.context == LogContext(request_id="req_ambient")


class TestDirectConstruction:
    """LoggingService built without a context provider."""

    @pytest.mark.core
    def test_ambient_context_is_ignored(self) -> None:
        sink = InMemoryBatchSink()
        with LoggingService(
            None, console=InMemoryConsoleSink(), external_sink=sink, local_sink=sink
        ) as service:
            set_log_context(request_id="req_ambient")
            service.info("no provider")
            (entry,) = service.get_logs()
        assert entry.context is None

    @pytest.mark.core
    def test_custom_context_provider(self) -> None:
        sink = InMemoryBatchSink()
        with LoggingService(
            LoggingConfig(),
            console=InMemoryConsoleSink(),
            external_sink=sink,
            local_sink=sink,
            context_provider=lambda: {"user_id": "u-7", "unknown": "ignored"},
        ) as service:
            service.info("provided", context=LogContext(loft_id="loft-1"))
            (entry,) = service.get_logs()
        assert entry.context == LogContext(user_id="u-7", loft_id="loft-1")
