"""Verification harness for a live gateway.

Retry-driven assertions on HTTP responses, connection failures and
rate-limit windows, plus kubectl-backed fixture lifecycle for the suites
under ``tests/``.

Usage:
    pytest tests/unit                     # Offline checks of the harness
    pytest -m e2e tests/ratelimit         # Against a live cluster
"""
