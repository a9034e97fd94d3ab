"""
Unit tests for item payload builders.
"""

import sys
import time

from rollbar_notifier.payload import (
    NAME,
    VERSION,
    build_body,
    error_body,
    fingerprint,
    message_body,
)


def _raise(msg):
    raise ValueError(msg)


def _caught(msg):
    try:
        _raise(msg)
    except ValueError as exc:
        return exc


def test_build_body_metadata():
    before = int(time.time())
    body = build_body(
        "warning",
        "disk almost full",
        token="tok",
        environment="production",
        code_version="abc123",
        server_host="web-1",
        server_root="/srv/app",
    )

    assert body["access_token"] == "tok"
    data = body["data"]
    assert data["environment"] == "production"
    assert data["title"] == "disk almost full"
    assert data["level"] == "warning"
    assert data["timestamp"] >= before
    assert data["platform"] == sys.platform
    assert data["language"] == "python"
    assert data["code_version"] == "abc123"
    assert data["server"] == {"host": "web-1", "root": "/srv/app"}
    assert data["notifier"] == {"name": NAME, "version": VERSION}


def test_build_body_extras_merged_last():
    body = build_body("info", "t", token="x", extras={"custom": {"user": 7}, "level": "debug"})
    assert body["data"]["custom"] == {"user": 7}
    assert body["data"]["level"] == "debug"


def test_error_body_from_raised_exception():
    exc = _caught("bad input")
    body, fp = error_body(exc)

    trace = body["trace"]
    assert trace["exception"] == {"class": "ValueError", "message": "bad input"}
    methods = [f["method"] for f in trace["frames"]]
    assert methods == ["_caught", "_raise"]
    assert all(f["filename"].endswith("test_payload.py") for f in trace["frames"])
    assert len(fp) > 0


def test_error_body_unraised_uses_current_stack():
    """An exception that was never raised gets the caller's stack."""
    body, _ = error_body(RuntimeError("never raised"))
    frames = body["trace"]["frames"]
    assert frames[-1]["method"] == "test_error_body_unraised_uses_current_stack"


def test_error_body_skip_drops_caller_frames():
    def helper():
        return error_body(RuntimeError("x"), skip=1)

    body, _ = helper()
    assert body["trace"]["frames"][-1]["method"] == "test_error_body_skip_drops_caller_frames"


def test_fingerprint_stable_for_same_origin():
    _, fp1 = error_body(_caught("one"))
    _, fp2 = error_body(_caught("two"))
    assert fp1 == fp2


def test_fingerprint_differs_by_frames():
    a = [{"filename": "a.py", "lineno": 1, "method": "f"}]
    b = [{"filename": "a.py", "lineno": 2, "method": "f"}]
    assert fingerprint(a) != fingerprint(b)
    assert fingerprint(a) == fingerprint(list(a))


def test_message_body():
    assert message_body("hello") == {"message": {"body": "hello"}}
