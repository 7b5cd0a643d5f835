"""Batch sink adapters implementing BatchSinkPort."""

from loftlog.adapters.sinks.diagnostic import DiagnosticBatchSink
from loftlog.adapters.sinks.http import HTTPBatchSink
from loftlog.adapters.sinks.in_memory import InMemoryBatchSink
from loftlog.adapters.sinks.null import NullBatchSink
from loftlog.adapters.sinks.ring_buffer import RingBufferBatchSink
from loftlog.adapters.sinks.sqlite import SQLiteLogSink

__all__ = [
    "DiagnosticBatchSink",
    "HTTPBatchSink",
    "InMemoryBatchSink",
    "NullBatchSink",
    "RingBufferBatchSink",
    "SQLiteLogSink",
]
