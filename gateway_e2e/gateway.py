"""Gateway endpoint and the per-scenario assertion facade.

The resolved ``Gateway`` is an immutable value created once per suite and
handed to every scenario through ``GatewayScenario``; nothing here is
module-level state.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field

import httpx

from gateway_e2e.burst import WindowBudget, verify_burst
from gateway_e2e.errors import (
    ResponseMismatch,
    RootCauseMismatch,
    UnexpectedResponseError,
    describe_error,
    root_cause,
)
from gateway_e2e.matchers import ExpectedResponse, match_response
from gateway_e2e.probe import ProbeExecutor, ProbeRequest
from gateway_e2e.retry import RetryPolicy, eventually

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NamespacedName:
    name: str
    namespace: str

    def __str__(self) -> str:
        return f"{self.namespace}/{self.name}"


@dataclass(frozen=True)
class Gateway:
    """A gateway that reported a connectable address."""

    ref: NamespacedName
    address: str
    port: int = 80


@dataclass(frozen=True)
class GatewayScenario:
    """Assertions against one gateway, as used by a single test scenario.

    Args:
        gateway: Resolved endpoint (read-only, shared across scenarios).
        executor: Probe executor; swap the transport for offline tests.
        policy: Retry budget for every single-probe assertion.
        budget: Burst size for ``send_burst``.
        host_header: Default ``Host`` header for requests built here.
        cancel: Run-wide cancellation event passed to every retry loop.
    """

    gateway: Gateway
    executor: ProbeExecutor = field(default_factory=ProbeExecutor)
    policy: RetryPolicy = field(default_factory=RetryPolicy)
    budget: WindowBudget = field(default_factory=WindowBudget)
    host_header: str | None = None
    cancel: threading.Event | None = field(default=None, compare=False)

    def request(
        self,
        path: str,
        *,
        headers: dict[str, str] | None = None,
        method: str = "GET",
        host_header: str | None = None,
    ) -> ProbeRequest:
        """Build a request aimed at the gateway address."""
        return ProbeRequest(
            host=self.gateway.address,
            port=self.gateway.port,
            path=path,
            method=method,
            host_header=host_header or self.host_header,
            headers=tuple((headers or {}).items()),
        )

    # --- Single-probe assertions ---

    def _check_response(self, request: ProbeRequest, expected: ExpectedResponse) -> None:
        response = self.executor(request)
        try:
            result = match_response(response, expected)
        finally:
            response.close()
        if not result.matched:
            raise ResponseMismatch(f"match failed: {result.diagnostic}")

    def send(self, expected: ExpectedResponse, request: ProbeRequest) -> None:
        """Probe until the response matches ``expected`` or the budget runs out.

        Raises:
            ResponseMismatch: Last mismatch diagnostic, once the budget is spent.
            httpx.TransportError: If the last attempt failed at transport level.
        """
        eventually(
            lambda: self._check_response(request, expected),
            self.policy,
            cancel=self.cancel,
        )

    def _check_error(self, request: ProbeRequest, expected_error: str) -> None:
        try:
            response = self.executor(request)
        except httpx.TransportError as exc:
            if not expected_error:
                return
            actual = describe_error(root_cause(exc))
            if actual != expected_error:
                raise RootCauseMismatch(actual, expected_error, exc) from exc
            return
        status = response.status_code
        response.close()
        raise UnexpectedResponseError(status)

    def send_expect_error(self, expected_error: str, request: ProbeRequest) -> None:
        """Probe until the connection fails with ``expected_error`` as root cause.

        An empty ``expected_error`` accepts any transport failure. Receiving
        any HTTP response, whatever its status, fails at once without retry.

        Raises:
            UnexpectedResponseError: An HTTP response arrived.
            RootCauseMismatch: The failure's root description differed.
        """
        eventually(
            lambda: self._check_error(request, expected_error),
            self.policy,
            cancel=self.cancel,
        )

    # --- Burst assertions ---

    def send_burst(self, expected: ExpectedResponse, request: ProbeRequest) -> None:
        """Issue ``budget.size`` back-to-back probes, each expected to match.

        Raises:
            BurstFailure: The first probe of the burst that never matched.
        """
        logger.debug(
            "burst of %d x %s %s expecting %d",
            self.budget.size, request.method, request.path, expected.status_code,
        )
        verify_burst(lambda r: self.send(expected, r), request, self.budget)
