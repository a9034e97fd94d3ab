from __future__ import annotations

import threading
from collections import deque
from typing import Deque, Generic, Iterator, Optional, TypeVar

from loguru import logger

from .types import BackpressureCallback, QueueClosed

T = TypeVar("T")


class BoundedQueue(Generic[T]):
    """Thread-safe bounded FIFO that rejects the newest item when full.

    ``offer`` never blocks: it either takes a free slot or returns False.
    ``get`` parks the single consumer on a condition variable until an item
    arrives or the queue is closed. Watermark callbacks fire once per
    crossing and run outside the lock.
    """

    def __init__(
        self,
        capacity: int,
        high_watermark: int | None = None,
        low_watermark: int | None = None,
        *,
        on_high: Optional[BackpressureCallback] = None,
        on_low: Optional[BackpressureCallback] = None,
    ):
        if capacity < 0:
            raise ValueError("capacity must be >= 0")

        self._capacity = capacity
        self._items: Deque[T] = deque()

        self._high_wm = (
            high_watermark if high_watermark is not None else max(1, int(0.8 * capacity))
        )
        self._low_wm = low_watermark if low_watermark is not None else int(0.5 * capacity)
        self._on_high = on_high
        self._on_low = on_low
        self._high_fired = False  # avoid duplicate signals

        self._dropped = 0
        self._closed = False

        self._lock = threading.Lock()
        self._not_empty = threading.Condition(self._lock)

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def high_watermark(self) -> int:
        return self._high_wm

    @property
    def low_watermark(self) -> int:
        return self._low_wm

    @property
    def size(self) -> int:
        with self._lock:
            return len(self._items)

    @property
    def dropped(self) -> int:
        """Items rejected because the queue was full or closed."""
        with self._lock:
            return self._dropped

    @property
    def closed(self) -> bool:
        return self._closed

    def offer(self, item: T) -> bool:
        """Append ``item`` if there is room. Returns False when rejected."""
        with self._lock:
            if self._closed or len(self._items) >= self._capacity:
                self._dropped += 1
                return False
            self._items.append(item)
            fire_high = self._check_high()
            self._not_empty.notify()

        if fire_high:
            self._fire(self._on_high, "high")
        return True

    def get(self, timeout: float | None = None) -> T:
        """Remove and return the oldest item.

        Raises:
            QueueClosed: the queue is closed and empty
            TimeoutError: nothing arrived within ``timeout`` seconds
        """
        with self._not_empty:
            if not self._not_empty.wait_for(
                lambda: self._items or self._closed, timeout=timeout
            ):
                raise TimeoutError("no item available")
            if not self._items:
                raise QueueClosed("queue closed")
            item = self._items.popleft()
            fire_low = self._check_low()

        if fire_low:
            self._fire(self._on_low, "low")
        return item

    def close(self) -> None:
        """Stop accepting items and wake the consumer. Idempotent."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            self._not_empty.notify_all()
        logger.debug(f"BoundedQueue closed with {self.size} item(s) pending")

    def __iter__(self) -> Iterator[T]:
        while True:
            try:
                yield self.get()
            except QueueClosed:
                return

    def __len__(self) -> int:
        return self.size

    # --- internals (called with the lock held)

    def _check_high(self) -> bool:
        if not self._high_fired and len(self._items) >= self._high_wm:
            self._high_fired = True
            return True
        return False

    def _check_low(self) -> bool:
        if self._high_fired and len(self._items) <= self._low_wm:
            self._high_fired = False
            return True
        return False

    @staticmethod
    def _fire(callback: Optional[BackpressureCallback], which: str) -> None:
        if callback is None:
            return
        try:
            callback()
        except Exception as exc:
            logger.debug(f"Watermark {which} callback error (ignored): {type(exc).__name__}: {exc}")
