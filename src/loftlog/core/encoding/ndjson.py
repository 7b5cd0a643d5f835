"""NDJSON encoder for log entries."""

import json
from collections.abc import Iterable
from typing import Any

from loftlog.core.formatting import UNSERIALIZABLE_PAYLOAD
from loftlog.core.models import LogEntry


def entry_to_json(entry: LogEntry) -> str:
    """Encode one entry as a single-line JSON object.

    A data payload that cannot be encoded (for instance a circular
    structure) is replaced by a placeholder instead of failing the entry.
    """
    obj: dict[str, Any] = entry.to_dict()
    try:
        return json.dumps(obj, default=str, ensure_ascii=False)
    except (TypeError, ValueError, RecursionError):
        obj["data"] = {"payload": UNSERIALIZABLE_PAYLOAD}
        return json.dumps(obj, default=str, ensure_ascii=False)


def encode_logs(entries: Iterable[LogEntry]) -> str:
    """Encode log entries to newline-delimited JSON.

    Args:
        entries: An iterable of LogEntry objects.

    Returns:
        NDJSON string with one JSON object per line.
        Empty string if no entries.
    """
    lines = [entry_to_json(entry) for entry in entries]

    if not lines:
        return ""

    return "\n".join(lines) + "\n"
