"""
HTTP request extraction with redaction of sensitive headers and fields.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Mapping, Sequence
from urllib.parse import parse_qs, urlencode

FILTERED = "[FILTERED]"

MultiDict = Mapping[str, Sequence[str]]


@dataclass
class RequestInfo:
    """Framework-neutral view of an incoming HTTP request."""

    url: str
    method: str = "GET"
    headers: dict[str, list[str]] = field(default_factory=dict)
    query: dict[str, list[str]] = field(default_factory=dict)
    form: dict[str, list[str]] = field(default_factory=dict)

    @classmethod
    def from_wsgi(cls, environ: Mapping[str, Any]) -> "RequestInfo":
        """Build from a WSGI environ. The body is parsed only for urlencoded forms."""
        scheme = environ.get("wsgi.url_scheme", "http")
        host = environ.get("HTTP_HOST") or environ.get("SERVER_NAME", "localhost")
        path = environ.get("SCRIPT_NAME", "") + environ.get("PATH_INFO", "")
        query_string = environ.get("QUERY_STRING", "")
        url = f"{scheme}://{host}{path}"
        if query_string:
            url += f"?{query_string}"

        headers: dict[str, list[str]] = {}
        for key, value in environ.items():
            if key.startswith("HTTP_"):
                name = key[5:].replace("_", "-").title()
                headers.setdefault(name, []).append(value)
        for key in ("CONTENT_TYPE", "CONTENT_LENGTH"):
            if environ.get(key):
                headers[key.replace("_", "-").title()] = [environ[key]]

        form: dict[str, list[str]] = {}
        if environ.get("CONTENT_TYPE", "").startswith("application/x-www-form-urlencoded"):
            stream = environ.get("wsgi.input")
            try:
                length = int(environ.get("CONTENT_LENGTH") or 0)
            except ValueError:
                length = 0
            if stream is not None and length > 0:
                form = parse_qs(stream.read(length).decode("latin-1"), keep_blank_values=True)

        return cls(
            url=url,
            method=environ.get("REQUEST_METHOD", "GET"),
            headers=headers,
            query=parse_qs(query_string, keep_blank_values=True),
            form=form,
        )


def filter_params(pattern: re.Pattern[str], values: MultiDict) -> dict[str, list[str]]:
    """Copy of ``values`` with every key matching ``pattern`` redacted.

    The input mapping is left untouched.
    """
    return {
        key: [FILTERED] if pattern.search(key) else list(vals)
        for key, vals in values.items()
    }


def flatten_values(values: MultiDict) -> dict[str, Any]:
    """Collapse single-element lists to their only value."""
    return {key: vals[0] if len(vals) == 1 else list(vals) for key, vals in values.items()}


def error_request(
    request: RequestInfo,
    filter_headers: re.Pattern[str],
    filter_fields: re.Pattern[str],
) -> dict[str, Any]:
    """The ``request`` section of an item, with sensitive values redacted."""
    clean_query = filter_params(filter_fields, request.query)

    return {
        "url": request.url,
        "method": request.method,
        "headers": flatten_values(filter_params(filter_headers, request.headers)),
        # GET params
        "query_string": urlencode(clean_query, doseq=True),
        "GET": flatten_values(clean_query),
        # POST / PUT params
        "POST": flatten_values(filter_params(filter_fields, request.form)),
    }
