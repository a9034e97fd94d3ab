"""
Unit tests for InFlightTracker.
"""

import threading
import time

import pytest

from rollbar_notifier.dispatch import InFlightTracker


def test_wait_returns_immediately_when_idle():
    assert InFlightTracker().wait(timeout=0) is True


def test_wait_times_out_while_busy():
    t = InFlightTracker()
    t.add()
    assert t.wait(timeout=0.01) is False
    assert t.count == 1


@pytest.mark.timeout(5)
def test_done_wakes_waiter():
    """The done() that reaches zero releases a blocked waiter."""
    t = InFlightTracker()
    t.add(2)
    released = threading.Event()

    def waiter():
        t.wait()
        released.set()

    th = threading.Thread(target=waiter)
    th.start()

    t.done()
    time.sleep(0.05)
    assert not released.is_set()

    t.done()
    assert released.wait(2)
    th.join(2)


def test_done_below_zero_raises():
    t = InFlightTracker()
    with pytest.raises(RuntimeError):
        t.done()
