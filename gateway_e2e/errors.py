"""Error taxonomy and root-cause classification for probe failures.

Transport failures arrive as chains of wrapped exceptions. For httpx the
chain is typically::

    httpx.ReadError -> httpcore.ReadError -> ConnectionResetError(errno 104)

``root_cause`` walks that chain to the innermost exception so scenarios can
compare against a stable, OS-level description instead of library wording.
"""

from __future__ import annotations

import errno
import os
from typing import Protocol, runtime_checkable


# ---------------------------------------------------------------------------
# Failure taxonomy
# ---------------------------------------------------------------------------


class AbortRetry(Exception):
    """Marker base: the retry loop must stop immediately and re-raise."""


class ResponseMismatch(AssertionError):
    """A response arrived but did not match the expected outcome."""


class UnexpectedResponseError(AbortRetry, AssertionError):
    """An HTTP response arrived where a connection-level failure was expected."""

    def __init__(self, status_code: int) -> None:
        super().__init__(
            "expected a connection-level error but received a successful "
            f"HTTP response (status {status_code})"
        )
        self.status_code = status_code


class RootCauseMismatch(AssertionError):
    """A transport failure occurred, but not the expected one."""

    def __init__(self, actual: str, expected: str, error: BaseException) -> None:
        super().__init__(
            f"connection error root cause {actual!r} does not match expected "
            f"{expected!r} (full error: {error!r})"
        )
        self.actual = actual
        self.expected = expected


class RetryCancelled(AssertionError):
    """The run was cancelled while a retry loop was still polling."""


class BurstFailure(AssertionError):
    """One probe of a burst failed to match."""

    def __init__(self, index: int, total: int, error: BaseException) -> None:
        super().__init__(f"burst probe {index + 1}/{total} failed: {error}")
        self.index = index
        self.total = total


class KubectlError(RuntimeError):
    """kubectl rejected an apply/delete request."""


# ---------------------------------------------------------------------------
# Root-cause classifier
# ---------------------------------------------------------------------------


@runtime_checkable
class CausedError(Protocol):
    """Error-like objects exposing their wrapped inner error explicitly."""

    def cause(self) -> BaseException | None: ...


def _inner(exc: BaseException) -> BaseException | None:
    if isinstance(exc, CausedError) and callable(exc.cause):
        return exc.cause()
    if exc.__cause__ is not None:
        return exc.__cause__
    if exc.__context__ is not None and not exc.__suppress_context__:
        return exc.__context__
    return None


def root_cause(exc: BaseException) -> BaseException:
    """Return the innermost exception of a chain of wrapped causes.

    An exception with no inner cause is returned unchanged. A cyclic chain
    resolves to the exception the cycle closes on, which is itself its own
    root cause, so repeated calls agree.
    """
    seen = {id(exc)}
    while True:
        inner = _inner(exc)
        if inner is None:
            return exc
        if id(inner) in seen:
            return inner
        seen.add(id(inner))
        exc = inner


def describe_error(exc: BaseException) -> str:
    """Human-readable description used for root-cause comparison.

    OS errors are described by their ``strerror`` (``"Connection reset by
    peer"``) so the text does not depend on errno numbering in ``str()``.
    """
    if isinstance(exc, OSError) and exc.strerror:
        return exc.strerror
    return str(exc)


def errno_description(code: int) -> str:
    """OS description for an errno value, as ``describe_error`` reports it."""
    return os.strerror(code)


# Common connection-level failures scenarios expect.
CONNECTION_RESET = errno_description(errno.ECONNRESET)
CONNECTION_REFUSED = errno_description(errno.ECONNREFUSED)
