# Copyright 2025 Canonical Ltd.
# See LICENSE file for licensing details.

"""Cancellation token checked at every blocking database call."""

import threading
import time

from pg_replication.errors import PassCancelledError


class Deadline:
    """Pass deadline and external cancellation signal."""

    def __init__(self, timeout: float | None = None, cancelled: threading.Event | None = None):
        self._expires_at = time.monotonic() + timeout if timeout is not None else None
        self._cancelled = cancelled if cancelled is not None else threading.Event()

    def cancel(self) -> None:
        """Request the pass to stop at the next database call."""
        self._cancelled.set()

    @property
    def cancelled(self) -> bool:
        """Whether cancellation was requested."""
        return self._cancelled.is_set()

    @property
    def expired(self) -> bool:
        """Whether the deadline has passed."""
        return self._expires_at is not None and time.monotonic() >= self._expires_at

    def remaining(self) -> float | None:
        """Seconds left before the deadline, or None when there is none."""
        if self._expires_at is None:
            return None
        return max(0.0, self._expires_at - time.monotonic())

    def check(self) -> None:
        """Raise if the pass must stop.

        Raises:
            PassCancelledError: if cancelled or past the deadline.
        """
        if self.cancelled:
            raise PassCancelledError("convergence pass cancelled")
        if self.expired:
            raise PassCancelledError("convergence pass deadline exceeded")
