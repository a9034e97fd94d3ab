"""
Example: report unhandled errors from a WSGI app.

Run with a real token to see items arrive in Rollbar:

    ROLLBAR_ACCESS_TOKEN=... python examples/wsgi_error_reporting.py

Without a token every item is dropped and the reason is logged.
"""

from wsgiref.simple_server import make_server

from loguru import logger

from rollbar_notifier import ERROR, Rollbar

rb = Rollbar.from_settings()


def app(environ, start_response):
    try:
        if environ.get("PATH_INFO") == "/boom":
            raise RuntimeError("boom")
        start_response("200 OK", [("Content-Type", "text/plain")])
        return [b"ok\n"]
    except Exception as exc:
        # returns immediately; the item is posted from the background thread
        rb.request_error(ERROR, environ, exc, extras={"handler": "app"})
        start_response("500 Internal Server Error", [("Content-Type", "text/plain")])
        return [b"error\n"]


if __name__ == "__main__":
    with make_server("127.0.0.1", 8000, app) as httpd:
        logger.info("Serving on http://127.0.0.1:8000 (try /boom), Ctrl+C to stop")
        try:
            httpd.serve_forever()
        except KeyboardInterrupt:
            pass
    rb.close(timeout=10)
    logger.info(f"Final dispatcher state: {rb.health()}")
