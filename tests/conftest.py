"""Root conftest.py — shared fixtures for all suites.

Fixture scoping strategy:
    session:   HarnessSettings, run-wide cancellation event, logging level
    module:    Suite fixtures (shared manifests, resolved gateway)
    function:  Scenario fixtures (routes, policies) with guaranteed cleanup

Provides:
    - settings: Pydantic HarnessSettings loaded from env / .env.test
    - cancel_event: set when GATEWAY_E2E_RUN_TIMEOUT elapses; every retry
      loop receives it and stops polling once it is set
"""

from __future__ import annotations

import os
import threading
from collections.abc import Generator

import pytest

from gateway_e2e.config import HarnessSettings
from gateway_e2e.log import setup_logging


# ---------------------------------------------------------------------------
# Hypothesis profiles
# ---------------------------------------------------------------------------

try:
    from hypothesis import HealthCheck
    from hypothesis import settings as hypothesis_settings

    hypothesis_settings.register_profile(
        "dev",
        max_examples=50,
        deadline=500,
    )
    hypothesis_settings.register_profile(
        "ci",
        max_examples=500,
        deadline=None,
        derandomize=True,
        print_blob=True,
        suppress_health_check=[HealthCheck.too_slow],
    )
    hypothesis_settings.load_profile(os.getenv("HYPOTHESIS_PROFILE", "dev"))
except ImportError:
    pass  # hypothesis not installed — property-based tests will be skipped


# ---------------------------------------------------------------------------
# Session-scoped fixtures
# ---------------------------------------------------------------------------


@pytest.fixture(scope="session")
def settings() -> HarnessSettings:
    """Load harness settings from environment / .env.test file."""
    loaded = HarnessSettings()
    setup_logging(loaded.log_level)
    return loaded


@pytest.fixture(scope="session")
def cancel_event(settings: HarnessSettings) -> Generator[threading.Event]:
    """Run-wide cancellation signal for retry loops.

    When a run timeout is configured, a timer sets the event once it
    elapses, so in-flight polls fail fast instead of spending their budget.
    """
    event = threading.Event()
    timer: threading.Timer | None = None
    if settings.run_timeout:
        timer = threading.Timer(settings.run_timeout, event.set)
        timer.daemon = True
        timer.start()

    yield event

    if timer is not None:
        timer.cancel()
