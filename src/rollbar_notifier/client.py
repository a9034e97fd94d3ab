from __future__ import annotations

import re
from typing import Any, Mapping, Optional, Union

from .config import RollbarSettings, get_settings
from .dispatch import DEFAULT_CAPACITY, DiagnosticBus, Dispatcher, DispatcherHealth, Transport
from .payload import build_body, error_body, message_body
from .request import RequestInfo, error_request
from .transport import DEFAULT_ENDPOINT, HttpxTransport

Pattern = Union[str, re.Pattern]


class Rollbar:
    """Asynchronous Rollbar client.

    Reporting calls build the item on the caller's thread, redact request
    data, and hand the result to a bounded dispatch queue; a background
    thread posts items in order. Nothing here raises for delivery problems:
    drops and failures go to the diagnostic bus (logged through loguru by
    default) and to the Prometheus counters.

    Attributes such as ``token`` or ``environment`` may be reassigned at any
    time, but changing them while items are in flight is racy; set them
    before traffic starts.

    Usage:
        rb = Rollbar("POST_SERVER_ITEM_TOKEN", "production")
        try:
            ...
        except Exception as exc:
            rb.error("error", exc)
        rb.wait()
    """

    def __init__(
        self,
        token: str = "",
        environment: str = "",
        code_version: str = "",
        server_host: str = "",
        server_root: str = "",
        *,
        endpoint: str = DEFAULT_ENDPOINT,
        buffer: int = DEFAULT_CAPACITY,
        filter_headers: Pattern = "Authorization",
        filter_fields: Pattern = "password|secret|token",
        timeout: float = 10.0,
        transport: Optional[Transport] = None,
        diagnostics: Optional[DiagnosticBus] = None,
        client_id: str = "rollbar",
        autostart: bool = True,
    ):
        self.token = token
        self.environment = environment
        self.code_version = code_version
        self.server_host = server_host
        self.server_root = server_root
        self.filter_headers = re.compile(filter_headers)
        self.filter_fields = re.compile(filter_fields)

        self._owns_transport = transport is None
        self._transport = transport or HttpxTransport(endpoint, timeout=timeout)
        self._dispatcher = Dispatcher(
            self._transport,
            capacity=buffer,
            credential=lambda: self.token,
            diagnostics=diagnostics,
            dispatcher_id=client_id,
            autostart=autostart,
        )

    @classmethod
    def from_settings(cls, settings: Optional[RollbarSettings] = None, **overrides: Any) -> "Rollbar":
        s = settings or get_settings()
        kwargs: dict[str, Any] = {
            "token": s.access_token,
            "environment": s.environment,
            "code_version": s.code_version,
            "server_host": s.server_host,
            "server_root": s.server_root,
            "endpoint": s.endpoint,
            "buffer": s.buffer,
            "filter_headers": s.filter_headers,
            "filter_fields": s.filter_fields,
            "timeout": s.timeout_seconds,
        }
        kwargs.update(overrides)
        return cls(**kwargs)

    @property
    def dispatcher(self) -> Dispatcher:
        return self._dispatcher

    # ---------- error reporting

    def error(
        self,
        level: str,
        exc: BaseException,
        *,
        extras: Optional[Mapping[str, Any]] = None,
        skip: int = 0,
    ) -> None:
        """Queue ``exc`` with its stack trace at the given severity level.

        ``skip`` drops that many extra caller frames when ``exc`` was never
        raised and the current stack is used instead.
        """
        body = self._build_body(level, str(exc), extras)
        self._attach_error(body["data"], exc, skip + 1)
        self._dispatcher.enqueue(body)

    def request_error(
        self,
        level: str,
        request: Union[RequestInfo, Mapping[str, Any]],
        exc: BaseException,
        *,
        extras: Optional[Mapping[str, Any]] = None,
        skip: int = 0,
    ) -> None:
        """Like ``error`` plus redacted request details.

        ``request`` is a ``RequestInfo`` or a WSGI environ.
        """
        if not isinstance(request, RequestInfo):
            request = RequestInfo.from_wsgi(request)

        body = self._build_body(level, str(exc), extras)
        data = body["data"]
        self._attach_error(data, exc, skip + 1)
        data["request"] = error_request(request, self.filter_headers, self.filter_fields)
        self._dispatcher.enqueue(body)

    # ---------- message reporting

    def message(
        self, level: str, msg: str, *, extras: Optional[Mapping[str, Any]] = None
    ) -> None:
        body = self._build_body(level, msg, extras)
        body["data"]["body"] = message_body(msg)
        self._dispatcher.enqueue(body)

    # ---------- lifecycle

    def wait(self, timeout: float | None = None) -> bool:
        """Block until every queued item has been sent or dropped."""
        return self._dispatcher.drain(timeout)

    async def await_drain(self, timeout: float | None = None) -> bool:
        return await self._dispatcher.adrain(timeout)

    def close(self, timeout: float | None = None) -> bool:
        """Stop accepting items, flush what is queued, and stop the worker."""
        stopped = self._dispatcher.shutdown(timeout)
        if stopped and self._owns_transport:
            self._transport.close()
        return stopped

    def health(self) -> DispatcherHealth:
        return self._dispatcher.health()

    def __enter__(self) -> "Rollbar":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    # ---------- internals

    def _build_body(
        self, level: str, title: str, extras: Optional[Mapping[str, Any]]
    ) -> dict[str, Any]:
        return build_body(
            level,
            title,
            token=self.token,
            environment=self.environment,
            code_version=self.code_version,
            server_host=self.server_host,
            server_root=self.server_root,
            extras=extras,
        )

    @staticmethod
    def _attach_error(data: dict[str, Any], exc: BaseException, skip: int) -> None:
        err_body, fp = error_body(exc, skip + 1)
        data["body"] = err_body
        data["fingerprint"] = fp
