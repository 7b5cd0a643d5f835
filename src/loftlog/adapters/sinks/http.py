"""HTTP batch sink posting flushed entries to a log collection endpoint."""

from collections.abc import Sequence

import httpx

from loftlog.core.encoding.ndjson import entry_to_json
from loftlog.core.models import LogEntry


class HTTPBatchSink:
    """BatchSinkPort that POSTs ``{"logs": [...]}`` to a collector.

    Example:
        ```python
        sink = HTTPBatchSink("https://logs.example.com", api_key=token)
        service = create_logging_service(config, external_sink=sink)
        ```
    """

    def __init__(
        self,
        base_url: str,
        path: str = "/api/logs/batch",
        api_key: str | None = None,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the sink.

        Args:
            base_url: Collector base URL.
            path: Path of the batch endpoint.
            api_key: Optional bearer token sent with every request.
            timeout: Request timeout in seconds.
            transport: Optional httpx transport (e.g. ``httpx.MockTransport``).
        """
        self._base_url = base_url.rstrip("/")
        self._path = path
        self._timeout = timeout
        self._transport = transport
        self._headers = {"content-type": "application/json"}
        if api_key:
            self._headers["authorization"] = f"Bearer {api_key}"

    async def send(self, entries: Sequence[LogEntry]) -> bool:
        """POST the batch. Returns True on a 2xx response.

        Transport errors propagate as ``httpx.HTTPError``.
        """
        body = '{"logs": [' + ", ".join(entry_to_json(e) for e in entries) + "]}"
        # A client per call: the sink may be driven from different loops.
        async with httpx.AsyncClient(
            base_url=self._base_url,
            timeout=self._timeout,
            transport=self._transport,
        ) as client:
            response = await client.post(
                self._path, content=body.encode(), headers=self._headers
            )
        return response.is_success
