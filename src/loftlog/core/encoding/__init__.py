"""Wire encodings for log entries."""

from loftlog.core.encoding.ndjson import encode_logs, entry_to_json

__all__ = ["encode_logs", "entry_to_json"]
