"""Single HTTP probe against the gateway.

Every probe opens its own ``httpx.Client`` so no connection (and no
keep-alive state the gateway might key on) survives between attempts.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace

import httpx

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProbeRequest:
    """Immutable description of one request to send.

    Args:
        host: Address to connect to (IP or DNS name of the gateway).
        path: Request path.
        port: TCP port.
        host_header: Value for the ``Host`` header; virtual-host routing
            on the gateway keys on it.
        headers: Extra request headers as (name, value) pairs.
    """

    host: str
    path: str = "/"
    method: str = "GET"
    port: int = 80
    scheme: str = "http"
    host_header: str | None = None
    headers: tuple[tuple[str, str], ...] = ()
    body: str | None = None

    @property
    def url(self) -> str:
        path = self.path if self.path.startswith("/") else f"/{self.path}"
        return f"{self.scheme}://{self.host}:{self.port}{path}"

    def with_header(self, name: str, value: str) -> ProbeRequest:
        """Return a copy with one more request header."""
        return replace(self, headers=(*self.headers, (name, value)))

    def with_path(self, path: str) -> ProbeRequest:
        return replace(self, path=path)


@dataclass(frozen=True)
class ProbeExecutor:
    """Executes ``ProbeRequest``s and returns the fully read response.

    The caller owns the returned response and must close it. Transport
    failures propagate as ``httpx.TransportError`` with their cause chain
    intact.

    Args:
        timeout: Per-request timeout.
        transport: Optional transport override (``httpx.MockTransport`` in
            offline tests).
    """

    timeout: httpx.Timeout = field(default_factory=lambda: httpx.Timeout(10.0, connect=5.0))
    transport: httpx.BaseTransport | None = None

    def __call__(self, request: ProbeRequest) -> httpx.Response:
        headers = dict(request.headers)
        if request.host_header:
            headers["Host"] = request.host_header
        logger.debug("%s %s (host=%s)", request.method, request.url, request.host_header)
        with httpx.Client(timeout=self.timeout, transport=self.transport) as client:
            return client.request(
                request.method,
                request.url,
                headers=headers,
                content=request.body,
            )
