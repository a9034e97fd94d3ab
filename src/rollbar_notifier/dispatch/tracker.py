from __future__ import annotations

import threading


class InFlightTracker:
    """Counter of accepted-but-unfinished records with a blocking wait.

    ``wait`` parks on a condition variable and is woken by the ``done`` call
    that brings the count to zero. A record added after a waiter has already
    observed zero is not covered by that wait.
    """

    def __init__(self) -> None:
        self._count = 0
        self._cond = threading.Condition()

    @property
    def count(self) -> int:
        with self._cond:
            return self._count

    def add(self, n: int = 1) -> None:
        with self._cond:
            self._count += n

    def done(self) -> None:
        with self._cond:
            if self._count <= 0:
                raise RuntimeError("InFlightTracker.done() called more times than add()")
            self._count -= 1
            if self._count == 0:
                self._cond.notify_all()

    def wait(self, timeout: float | None = None) -> bool:
        """Block until the count is zero. Returns False if ``timeout`` elapsed first."""
        with self._cond:
            return self._cond.wait_for(lambda: self._count == 0, timeout=timeout)
