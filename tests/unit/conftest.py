"""Offline fixtures for harness unit tests.

Provides:
    - fast_policy: short retry budget so failing loops end quickly
    - scripted_gateway: factory building a GatewayScenario whose probes are
      answered by an httpx.MockTransport replaying a scripted sequence
"""

from __future__ import annotations

import errno
import os
from collections.abc import Callable
from dataclasses import dataclass, field

import httpx
import pytest

from gateway_e2e.burst import WindowBudget
from gateway_e2e.gateway import Gateway, GatewayScenario, NamespacedName
from gateway_e2e.probe import ProbeExecutor
from gateway_e2e.retry import RetryPolicy

GATEWAY = Gateway(
    ref=NamespacedName(name="gateway", namespace="agentgateway-base"),
    address="10.0.0.7",
    port=8080,
)


def connection_reset(request: httpx.Request) -> httpx.ReadError:
    """httpx-shaped transport failure whose root cause is ECONNRESET."""
    exc = httpx.ReadError("connection reset", request=request)
    exc.__cause__ = ConnectionResetError(errno.ECONNRESET, os.strerror(errno.ECONNRESET))
    return exc


def connection_refused(request: httpx.Request) -> httpx.ConnectError:
    exc = httpx.ConnectError("connection refused", request=request)
    exc.__cause__ = ConnectionRefusedError(errno.ECONNREFUSED, os.strerror(errno.ECONNREFUSED))
    return exc


@dataclass
class ScriptedTransport:
    """Replays ``steps`` in order; the last step repeats forever.

    Steps are status codes or callables ``request -> exception``.
    """

    steps: list[int | Callable[[httpx.Request], BaseException]]
    requests: list[httpx.Request] = field(default_factory=list)

    def handle(self, request: httpx.Request) -> httpx.Response:
        index = min(len(self.requests), len(self.steps) - 1)
        self.requests.append(request)
        step = self.steps[index]
        if callable(step):
            raise step(request)
        return httpx.Response(step, headers={"x-probe": str(len(self.requests))}, text="ok")

    @property
    def calls(self) -> int:
        return len(self.requests)


@pytest.fixture
def fast_policy() -> RetryPolicy:
    return RetryPolicy(max_duration=0.3, poll_interval=0.01)


@pytest.fixture
def scripted_gateway(
    fast_policy: RetryPolicy,
) -> Callable[..., tuple[GatewayScenario, ScriptedTransport]]:
    """Factory: ``scripted_gateway(200, 429, ...)`` -> (scenario, transport)."""

    def _make(
        *steps: int | Callable[[httpx.Request], BaseException],
        budget: int = 3,
    ) -> tuple[GatewayScenario, ScriptedTransport]:
        script = ScriptedTransport(list(steps))
        scenario = GatewayScenario(
            gateway=GATEWAY,
            executor=ProbeExecutor(transport=httpx.MockTransport(script.handle)),
            policy=fast_policy,
            budget=WindowBudget(budget),
            host_header="example.com",
        )
        return scenario, script

    return _make
