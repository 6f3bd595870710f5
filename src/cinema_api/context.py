"""Cancellation and deadline signal shared by one batch run."""

import threading
import time
from typing import Optional

from .errors import FatalAbortError


class BatchContext:
    """Deadline plus an explicit cancel flag for a batch.

    ``cancel`` may be called from any thread.
    """

    def __init__(self, timeout_seconds: Optional[float] = None):
        self._deadline = (
            time.monotonic() + timeout_seconds if timeout_seconds is not None else None
        )
        self._cancelled = threading.Event()
        self._reason: Optional[str] = None

    def cancel(self, reason: str = "batch cancelled") -> None:
        self._reason = reason
        self._cancelled.set()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def remaining(self) -> Optional[float]:
        """Seconds until the deadline, or None when there is none."""
        if self._deadline is None:
            return None
        return max(self._deadline - time.monotonic(), 0.0)

    def expired(self) -> bool:
        remaining = self.remaining()
        return remaining is not None and remaining <= 0

    def check(self) -> None:
        """Raise FatalAbortError if the batch must stop admitting units."""
        if self.cancelled:
            raise FatalAbortError(self._reason or "batch cancelled")
        if self.expired():
            raise FatalAbortError("batch deadline exceeded")
