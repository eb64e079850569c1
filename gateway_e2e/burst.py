"""Burst verification for fixed-window rate limiting.

Rate limiters that reset at clock-aligned boundaries (e.g. every minute at
:00) make long assertion loops flaky: a loop that straddles the boundary sees
the budget refilled halfway through. A burst of a few back-to-back probes
very likely completes inside one window, so state established by the first
probe can be confirmed by the rest without any clock awareness.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator
from dataclasses import dataclass

from gateway_e2e.errors import BurstFailure, RetryCancelled
from gateway_e2e.probe import ProbeRequest


@dataclass(frozen=True)
class WindowBudget:
    """Number of probes issued back-to-back inside one rate-limit window.

    The default of 3 is one probe to reach the limited state and two to
    confirm it persists. It is tuned to the limiter's window length and has
    to be re-derived if that changes.
    """

    size: int = 3

    def __post_init__(self) -> None:
        if self.size < 2:
            raise ValueError(f"burst size must be at least 2, got {self.size}")


@dataclass(frozen=True)
class BurstAttempt:
    """One position in a burst."""

    index: int
    total: int
    request: ProbeRequest


def burst_attempts(request: ProbeRequest, budget: WindowBudget) -> Iterator[BurstAttempt]:
    """Yield exactly ``budget.size`` independent attempt descriptors."""
    for index in range(budget.size):
        yield BurstAttempt(index=index, total=budget.size, request=request)


def verify_burst(
    check: Callable[[ProbeRequest], None],
    request: ProbeRequest,
    budget: WindowBudget,
) -> None:
    """Run ``check`` once per burst position, in order, without delay between them.

    ``check`` is expected to retry its own probe until it matches or its
    duration budget runs out. Any failing position fails the whole burst.

    Raises:
        BurstFailure: Naming the failing position, chained to its error.
    """
    for attempt in burst_attempts(request, budget):
        try:
            check(attempt.request)
        except RetryCancelled:
            raise
        except Exception as exc:
            raise BurstFailure(attempt.index, attempt.total, exc) from exc
