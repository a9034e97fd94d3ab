from __future__ import annotations

from typing import Optional

import httpx
from loguru import logger

from .errors import map_transport_error

DEFAULT_ENDPOINT = "https://api.rollbar.com/api/1/item/"


class HttpxTransport:
    """POSTs serialized records to the Rollbar item endpoint.

    Returns the response status code; connection errors and timeouts are
    raised as ``TransportError``. A client passed in is not closed by
    ``close()``.
    """

    def __init__(
        self,
        endpoint: str = DEFAULT_ENDPOINT,
        *,
        timeout: float = 10.0,
        client: Optional[httpx.Client] = None,
    ):
        self.endpoint = endpoint
        self._owns_client = client is None
        self._client = client or httpx.Client(timeout=timeout)

    def send(self, payload: bytes) -> int:
        try:
            resp = self._client.post(
                self.endpoint,
                content=payload,
                headers={"Content-Type": "application/json"},
            )
        except httpx.HTTPError as exc:
            raise map_transport_error(exc) from exc

        if resp.status_code != 200:
            logger.debug(f"Rollbar responded {resp.status_code}: {resp.text[:200]}")
        return resp.status_code

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def __enter__(self) -> "HttpxTransport":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
