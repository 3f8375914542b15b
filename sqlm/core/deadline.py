"""
Cancellation / deadline token threaded through every sqlm call.

A Deadline is checked between stages (before begin, before a statement,
between fetched rows). It may also be cancelled from another thread.
"""

import threading
import time
from datetime import timedelta

from sqlm.core.errors import DeadlineExceededError


def to_seconds(value: float | timedelta) -> float:
    """Accept seconds or a timedelta and return seconds as float."""
    if isinstance(value, timedelta):
        return value.total_seconds()
    return float(value)


class Deadline:
    """Expiry time (monotonic) plus a cancel flag. ``timeout=None`` never expires."""

    def __init__(self, timeout: float | timedelta | None = None) -> None:
        self._expires_at: float | None = None
        if timeout is not None:
            self._expires_at = time.monotonic() + to_seconds(timeout)
        self._cancelled = threading.Event()

    def cancel(self) -> None:
        self._cancelled.set()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def remaining(self) -> float | None:
        """Seconds left (never negative), or None when there is no expiry."""
        if self._expires_at is None:
            return None
        return max(0.0, self._expires_at - time.monotonic())

    def expired(self) -> bool:
        if self.cancelled:
            return True
        return self._expires_at is not None and time.monotonic() >= self._expires_at

    def check(self) -> None:
        """Raise DeadlineExceededError if cancelled or past the expiry time."""
        if self.cancelled:
            raise DeadlineExceededError("operation cancelled")
        if self._expires_at is not None and time.monotonic() >= self._expires_at:
            raise DeadlineExceededError("deadline exceeded")

    def __repr__(self) -> str:
        return f"Deadline(remaining={self.remaining()!r}, cancelled={self.cancelled})"
