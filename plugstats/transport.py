"""One-way HTTP transport. POST only; the response body is returned as text
for optional logging and never interpreted.
"""
from __future__ import annotations

import gzip
import logging
import urllib.request

logger = logging.getLogger(__name__)

DEFAULT_ENDPOINT = "https://bStats.org/api/v2/data/{platform}"
TIMEOUT_SECONDS = 10
USER_AGENT = "Metrics-Service/1"


def compress(data: bytes) -> bytes:
    """Gzip the payload bytes."""
    return gzip.compress(data)


class HttpTransport:
    """Sends gzip-compressed payloads to the metrics collector.

    Instances are callable so they can be passed straight to
    MetricsCoordinator as its transport. Network and HTTP errors
    (urllib.error.URLError, OSError, ...) propagate to the caller.
    """

    def __init__(
        self,
        platform: str,
        endpoint: str = DEFAULT_ENDPOINT,
        timeout: float = TIMEOUT_SECONDS,
    ) -> None:
        self.url = endpoint.format(platform=platform)
        self.timeout = timeout

    def __call__(self, data: bytes) -> str:
        return self.send(data)

    def send(self, data: bytes) -> str:
        """POST the payload. Returns the decoded response body."""
        if data is None:
            raise ValueError("data must not be None")
        compressed = compress(data)
        req = urllib.request.Request(
            self.url,
            data=compressed,
            headers={
                "Accept": "application/json",
                "Connection": "close",
                "Content-Encoding": "gzip",
                "Content-Length": str(len(compressed)),
                "Content-Type": "application/json",
                "User-Agent": USER_AGENT,
            },
            method="POST",
        )
        with urllib.request.urlopen(req, timeout=self.timeout) as resp:
            body = resp.read().decode("utf-8", errors="replace")
            logger.debug("Metrics POST %s: HTTP %d", self.url, resp.status)
        return body
