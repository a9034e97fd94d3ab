"""
Pytest configuration and fixtures for rollbar-notifier.

Provides fake transports, a capturing diagnostic bus, and cross-platform
event loop configuration.
"""

import asyncio
import itertools
import json
import sys
import threading

import pytest

from rollbar_notifier.config import get_settings
from rollbar_notifier.dispatch import DiagnosticBus
from rollbar_notifier.errors import TransportError

# Set policy *before* pytest-asyncio creates any loops
if sys.platform.startswith("win"):
    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())

_ids = itertools.count()


class RecordingTransport:
    """Transport that records payloads and answers with a fixed status.

    ``gate``: if given, every send blocks until the event is set.
    ``fail_on``: call indexes (0-based) that raise ``TransportError``.
    """

    def __init__(self, status: int = 200, gate: threading.Event | None = None, fail_on=()):
        self.status = status
        self.gate = gate
        self.fail_on = set(fail_on)
        self.payloads: list[bytes] = []
        self.calls = 0
        self.entered = threading.Event()
        self.closed = False

    def send(self, payload: bytes) -> int:
        self.entered.set()
        if self.gate is not None:
            self.gate.wait(5)
        idx = self.calls
        self.calls += 1
        if idx in self.fail_on:
            raise TransportError("connection refused")
        self.payloads.append(payload)
        return self.status

    def close(self) -> None:
        self.closed = True

    @property
    def records(self) -> list[dict]:
        return [json.loads(p) for p in self.payloads]


class CapturingBus(DiagnosticBus):
    """DiagnosticBus without the log subscriber that keeps every event."""

    def __init__(self):
        super().__init__(log=False)
        self.events = []
        self.subscribe(self.events.append)

    def kinds(self):
        return [e.kind for e in self.events]

    def drop_events(self):
        return [e for e in self.events if e.is_drop]

    def drops(self):
        return [e.kind for e in self.drop_events()]


@pytest.fixture
def transport():
    return RecordingTransport()


@pytest.fixture
def make_transport():
    """Factory for RecordingTransport with custom status/gate/failures."""
    return RecordingTransport


@pytest.fixture
def bus():
    """Fresh capturing bus for each test."""
    return CapturingBus()


@pytest.fixture
def dispatcher_id(request):
    """Unique metrics label per test so Prometheus counters start at zero."""
    return f"{request.node.name}-{next(_ids)}"


@pytest.fixture(autouse=True)
def _clear_settings_cache(monkeypatch):
    for var in ("ROLLBAR_ACCESS_TOKEN", "ROLLBAR_ENVIRONMENT", "ROLLBAR_BUFFER"):
        monkeypatch.delenv(var, raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()
