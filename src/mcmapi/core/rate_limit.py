"""Client-side view of the server's rate budget."""

from __future__ import annotations

import threading
import time
from typing import Callable, Optional, Tuple


class RateBudget:
    """Tracks remaining requests and the reset time reported by the server.

    The count is optimistic between responses: ``try_consume`` decrements it
    locally and the next observed response replaces it. Observations are
    ordered by receipt stamp, so a response received earlier can never
    overwrite one received later.
    """

    def __init__(
        self,
        allowance: int,
        clock: Callable[[], float] = time.time,
        listener: Optional[Callable[[], None]] = None,
    ) -> None:
        if allowance < 1:
            raise ValueError("allowance must be at least 1")
        self._allowance = allowance
        self._clock = clock
        self._listener = listener
        self._remaining = allowance
        self._reset_at = 0.0
        self._stamps = 0
        self._applied = 0
        self._lock = threading.Lock()

    @property
    def allowance(self) -> int:
        return self._allowance

    def stamp(self) -> int:
        """Return a receipt number for a response that was just received."""

        with self._lock:
            self._stamps += 1
            return self._stamps

    def observe(self, remaining: int, reset_at: float, receipt: Optional[int] = None) -> bool:
        """Apply rate-limit metadata from a response. Returns False if stale."""

        with self._lock:
            if not self._accept(receipt):
                return False
            if reset_at <= self._clock():
                self._remaining = self._allowance
            else:
                self._remaining = max(int(remaining), 0)
            self._reset_at = reset_at
        self._notify()
        return True

    def exhaust(self, reset_at: float, receipt: Optional[int] = None) -> bool:
        """Treat the budget as empty until ``reset_at``."""

        with self._lock:
            if not self._accept(receipt):
                return False
            self._remaining = 0
            self._reset_at = reset_at
        self._notify()
        return True

    def try_consume(self) -> Optional[float]:
        """Take one unit of budget.

        Returns None when the request may proceed, otherwise the timestamp
        to wait until before trying again.
        """

        with self._lock:
            now = self._clock()
            if self._remaining <= 0 and self._reset_at <= now:
                self._remaining = self._allowance
            if self._remaining > 0:
                self._remaining -= 1
                return None
            return self._reset_at

    def snapshot(self) -> Tuple[int, float]:
        with self._lock:
            return self._remaining, self._reset_at

    def _notify(self) -> None:
        # Called outside the lock so the listener may read the budget.
        if self._listener is not None:
            self._listener()

    def _accept(self, receipt: Optional[int]) -> bool:
        if receipt is None:
            self._stamps += 1
            receipt = self._stamps
        if receipt < self._applied:
            return False
        self._applied = receipt
        return True
