"""
Rollbar notifier

Reports errors and messages to Rollbar without blocking the caller. Items are
queued in a bounded buffer and posted in order by a single background thread;
when the buffer is full new items are dropped and reported through
diagnostics instead of blocking.

Usage:
    from rollbar_notifier import Rollbar

    rb = Rollbar("POST_SERVER_ITEM_TOKEN", "production", code_version="abc123")
    rb.message("info", "deploy finished")
    try:
        do_work()
    except Exception as exc:
        rb.error("error", exc, extras={"job": "nightly"})
    rb.wait()

    # or from ROLLBAR_* environment variables
    rb = Rollbar.from_settings()
"""

from .client import Rollbar
from .config import RollbarSettings, get_settings
from .dispatch import DiagnosticBus, DiagnosticEvent, DiagnosticKind, Dispatcher
from .payload import CRITICAL, DEBUG, ERROR, INFO, NAME, VERSION, WARNING
from .request import FILTERED, RequestInfo
from .transport import HttpxTransport

__version__ = VERSION
__all__ = [
    "Rollbar",
    "RollbarSettings",
    "get_settings",
    "Dispatcher",
    "DiagnosticBus",
    "DiagnosticEvent",
    "DiagnosticKind",
    "HttpxTransport",
    "RequestInfo",
    "FILTERED",
    "NAME",
    "CRITICAL",
    "ERROR",
    "WARNING",
    "INFO",
    "DEBUG",
]
