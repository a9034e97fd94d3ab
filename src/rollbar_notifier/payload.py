"""
Builders for Rollbar item payloads.

Everything here runs on the reporting thread, before a record reaches the
dispatch queue.
"""

from __future__ import annotations

import sys
import time
import traceback
import zlib
from typing import Any, Mapping, Optional

NAME = "rollbar-notifier"
VERSION = "1.0.0"

CRITICAL = "critical"
ERROR = "error"
WARNING = "warning"
INFO = "info"
DEBUG = "debug"

LEVELS = (CRITICAL, ERROR, WARNING, INFO, DEBUG)


def build_body(
    level: str,
    title: str,
    *,
    token: str,
    environment: str = "",
    code_version: str = "",
    server_host: str = "",
    server_root: str = "",
    extras: Optional[Mapping[str, Any]] = None,
) -> dict[str, Any]:
    """Top-level item with access token and the common ``data`` metadata.

    ``extras`` are merged into ``data`` last and may override any key.
    """
    data: dict[str, Any] = {
        "environment": environment,
        "title": title,
        "level": level,
        "timestamp": int(time.time()),
        "platform": sys.platform,
        "language": "python",
        "code_version": code_version,
        "server": {
            "host": server_host,
            "root": server_root,
        },
        "notifier": {
            "name": NAME,
            "version": VERSION,
        },
    }
    if extras:
        data.update(extras)

    return {"access_token": token, "data": data}


def stack_frames(exc: BaseException, skip: int = 0) -> list[dict[str, Any]]:
    """Frames for ``exc``, outermost first.

    Uses the exception's own traceback when it was raised. Otherwise falls
    back to the caller's stack, dropping this function's frame plus ``skip``
    more.
    """
    if exc.__traceback__ is not None:
        summary = traceback.extract_tb(exc.__traceback__)
    else:
        summary = traceback.extract_stack()[: -(skip + 1)]

    return [
        {"filename": fs.filename, "lineno": fs.lineno, "method": fs.name}
        for fs in summary
    ]


def fingerprint(frames: list[dict[str, Any]]) -> str:
    """Stable hex CRC32 over filename, method and line of every frame."""
    crc = 0
    for frame in frames:
        key = f"{frame['filename']}{frame['method']}{frame['lineno']}"
        crc = zlib.crc32(key.encode("utf-8"), crc)
    return f"{crc:x}"


def error_body(exc: BaseException, skip: int = 0) -> tuple[dict[str, Any], str]:
    # +1 so the fallback stack excludes this function too
    frames = stack_frames(exc, skip + 1)
    body = {
        "trace": {
            "frames": frames,
            "exception": {
                "class": type(exc).__name__,
                "message": str(exc),
            },
        }
    }
    return body, fingerprint(frames)


def message_body(msg: str) -> dict[str, Any]:
    return {"message": {"body": msg}}
