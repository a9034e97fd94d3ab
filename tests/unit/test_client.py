"""
Unit tests for the Rollbar client facade.
"""

import io

import pytest

from rollbar_notifier import FILTERED, Rollbar, RollbarSettings
from rollbar_notifier.dispatch import DiagnosticKind
from rollbar_notifier.request import RequestInfo

pytestmark = pytest.mark.timeout(10)


@pytest.fixture
def client(transport, bus, dispatcher_id):
    rb = Rollbar(
        "tok",
        "test",
        code_version="v1",
        server_host="host-1",
        server_root="/srv",
        transport=transport,
        diagnostics=bus,
        client_id=dispatcher_id,
    )
    yield rb
    rb.close(timeout=5)


def _boom():
    raise KeyError("missing")


def test_message_item(client, transport):
    assert client.message("info", "deployed", extras={"build": 42}) is None
    assert client.wait(timeout=5)

    (item,) = transport.records
    assert item["access_token"] == "tok"
    data = item["data"]
    assert data["level"] == "info"
    assert data["title"] == "deployed"
    assert data["environment"] == "test"
    assert data["code_version"] == "v1"
    assert data["server"] == {"host": "host-1", "root": "/srv"}
    assert data["build"] == 42
    assert data["body"] == {"message": {"body": "deployed"}}


def test_error_item(client, transport):
    try:
        _boom()
    except KeyError as exc:
        client.error("error", exc, extras={"job": "nightly"})
    assert client.wait(timeout=5)

    (item,) = transport.records
    data = item["data"]
    assert data["job"] == "nightly"
    assert data["body"]["trace"]["exception"]["class"] == "KeyError"
    assert data["body"]["trace"]["frames"][-1]["method"] == "_boom"
    assert data["fingerprint"]


def test_unraised_error_uses_callers_stack(client, transport):
    client.error("warning", RuntimeError("not raised"))
    assert client.wait(timeout=5)

    frames = transport.records[0]["data"]["body"]["trace"]["frames"]
    assert frames[-1]["method"] == "test_unraised_error_uses_callers_stack"


def test_request_error_redacts(client, transport):
    req = RequestInfo(
        url="https://example.com/pay",
        method="POST",
        headers={"Authorization": ["Bearer secret-value"], "Accept": ["*/*"]},
        query={"page": ["2"]},
        form={"card": ["4111"], "password": ["hunter2"]},
    )
    try:
        _boom()
    except KeyError as exc:
        client.request_error("critical", req, exc)
    assert client.wait(timeout=5)

    request = transport.records[0]["data"]["request"]
    assert request["headers"] == {"Authorization": FILTERED, "Accept": "*/*"}
    assert request["POST"] == {"card": "4111", "password": FILTERED}
    assert request["GET"] == {"page": "2"}
    # caller's data is left as it was
    assert req.form["password"] == ["hunter2"]


def test_request_error_accepts_wsgi_environ(client, transport):
    environ = {
        "REQUEST_METHOD": "GET",
        "HTTP_HOST": "example.com",
        "PATH_INFO": "/search",
        "QUERY_STRING": "q=shoes&secret=s3",
    }
    client.request_error("error", environ, ValueError("bad query"))
    assert client.wait(timeout=5)

    request = transport.records[0]["data"]["request"]
    assert request["method"] == "GET"
    assert request["GET"] == {"q": "shoes", "secret": FILTERED}


def test_request_error_with_bad_content_length_still_reported(client, transport):
    environ = {
        "REQUEST_METHOD": "POST",
        "HTTP_HOST": "example.com",
        "PATH_INFO": "/upload",
        "CONTENT_TYPE": "application/x-www-form-urlencoded",
        "CONTENT_LENGTH": "abc",
        "wsgi.input": io.BytesIO(b"a=1"),
    }
    client.request_error("error", environ, RuntimeError("boom"))
    assert client.wait(timeout=5)

    data = transport.records[0]["data"]
    assert data["body"]["trace"]["exception"]["message"] == "boom"
    assert data["request"]["POST"] == {}


def test_empty_token_drops_and_reports(transport, bus, dispatcher_id):
    with Rollbar(transport=transport, diagnostics=bus, client_id=dispatcher_id) as rb:
        rb.message("info", "nobody will see this")
        assert rb.wait(timeout=5)

    assert transport.payloads == []
    assert bus.drops() == [DiagnosticKind.MISSING_CREDENTIAL]


def test_token_set_after_construction(transport, bus, dispatcher_id):
    rb = Rollbar(transport=transport, diagnostics=bus, client_id=dispatcher_id)
    rb.token = "later"
    rb.message("info", "hello")
    assert rb.wait(timeout=5)
    rb.close(timeout=5)

    assert transport.records[0]["access_token"] == "later"


def test_full_buffer_is_silent_for_caller(transport, bus, dispatcher_id):
    rb = Rollbar("tok", buffer=1, transport=transport, diagnostics=bus, client_id=dispatcher_id, autostart=False)
    rb.message("info", "one")
    rb.message("info", "two")  # dropped, no exception

    assert bus.drops() == [DiagnosticKind.QUEUE_FULL]
    rb.close(timeout=5)
    assert [r["data"]["title"] for r in transport.records] == ["one"]


def test_close_does_not_close_injected_transport(client, transport):
    client.message("info", "x")
    assert client.close(timeout=5)
    assert not transport.closed
    assert client.health().closed


def test_from_settings(transport, bus, dispatcher_id):
    settings = RollbarSettings(
        access_token="env-token",
        environment="staging",
        buffer=7,
        filter_fields="card",
    )
    rb = Rollbar.from_settings(settings, transport=transport, diagnostics=bus, client_id=dispatcher_id)

    assert rb.token == "env-token"
    assert rb.environment == "staging"
    assert rb.health().capacity == 7
    assert rb.filter_fields.pattern == "card"
    rb.close(timeout=5)


@pytest.mark.asyncio
async def test_await_drain(client, transport):
    client.message("debug", "from a coroutine")
    assert await client.await_drain(timeout=5)
    assert len(transport.payloads) == 1
