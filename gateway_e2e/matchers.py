"""Comparison of observed HTTP responses against expected outcomes.

Pure functions only: no I/O, and the response is neither closed nor kept.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field

import httpx


@dataclass(frozen=True)
class ExpectedResponse:
    """Expected outcome of a probe. Unset optional fields are not compared."""

    status_code: int
    headers: Mapping[str, str] = field(default_factory=dict)
    body: str | None = None
    body_contains: str | None = None


@dataclass(frozen=True)
class MatchResult:
    """Outcome of one comparison."""

    matched: bool
    diagnostic: str = ""


def match_response(actual: httpx.Response, expected: ExpectedResponse) -> MatchResult:
    """Compare ``actual`` against every field specified in ``expected``.

    The diagnostic lists each compared field as ``actual`` vs ``expected`` and
    flags the mismatching ones, so a failure can be read without re-running.
    """
    lines: list[str] = []
    matched = True

    def _compare(label: str, got: object, want: object, ok: bool) -> None:
        nonlocal matched
        matched = matched and ok
        marker = "ok" if ok else "MISMATCH"
        lines.append(f"{label}: actual={got!r} expected={want!r} [{marker}]")

    _compare(
        "status",
        actual.status_code,
        expected.status_code,
        actual.status_code == expected.status_code,
    )

    for name, want in expected.headers.items():
        got = actual.headers.get(name)
        _compare(f"header {name}", got, want, got == want)

    if expected.body is not None or expected.body_contains is not None:
        text = actual.text
        if expected.body is not None:
            _compare("body", text, expected.body, text == expected.body)
        if expected.body_contains is not None:
            _compare(
                "body contains",
                text,
                expected.body_contains,
                expected.body_contains in text,
            )

    if matched:
        return MatchResult(matched=True)
    return MatchResult(matched=False, diagnostic="; ".join(lines))
