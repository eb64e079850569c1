"""Bounded-time polling primitive.

``eventually`` is the single retry loop used by every assertion and every
readiness wait in the harness. An attempt succeeds by returning and fails by
raising; the loop polls at a fixed interval until success or until the
duration budget is spent, then re-raises the most recent failure.
"""

from __future__ import annotations

import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import TypeVar

from tenacity import (
    Retrying,
    retry_if_exception_type,
    retry_if_not_exception_type,
    stop_after_delay,
    wait_fixed,
)

from gateway_e2e.errors import AbortRetry, RetryCancelled

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    """Duration budget and polling interval for one retry loop (seconds)."""

    max_duration: float = 30.0
    poll_interval: float = 0.1

    def __post_init__(self) -> None:
        if self.max_duration <= 0:
            raise ValueError(f"max_duration must be positive, got {self.max_duration}")
        if self.poll_interval < 0:
            raise ValueError(f"poll_interval must not be negative, got {self.poll_interval}")


def eventually(
    attempt: Callable[[], T],
    policy: RetryPolicy,
    *,
    cancel: threading.Event | None = None,
) -> T:
    """Call ``attempt`` until it returns, or until ``policy.max_duration`` elapses.

    Args:
        attempt: Zero-argument callable. Returning means success; raising an
            ``Exception`` means "not yet".
        policy: Duration budget, measured from the first attempt, and the
            wait between attempts.
        cancel: Optional event. Once set, the wait is cut short and no
            further attempt is made.

    Returns:
        The value returned by the first successful attempt.

    Raises:
        Exception: The most recent attempt's exception once the budget is
            exhausted, or immediately for ``AbortRetry`` subclasses.
        RetryCancelled: If ``cancel`` was set, chained to the last failure.
    """
    if cancel is not None and cancel.is_set():
        raise RetryCancelled("run cancelled before the first attempt")

    previous: Exception | None = None

    def _guarded() -> T:
        nonlocal previous
        if cancel is not None and cancel.is_set():
            raise RetryCancelled(
                f"run cancelled while retrying; last error: {previous}"
            ) from previous
        try:
            return attempt()
        except Exception as exc:
            previous = exc
            raise

    retrying = Retrying(
        stop=stop_after_delay(policy.max_duration),
        wait=wait_fixed(policy.poll_interval),
        retry=(
            retry_if_exception_type(Exception)
            & retry_if_not_exception_type((AbortRetry, RetryCancelled))
        ),
        sleep=cancel.wait if cancel is not None else time.sleep,
        reraise=True,
    )
    return retrying(_guarded)
