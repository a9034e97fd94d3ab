from __future__ import annotations

import json
from typing import Optional

import typer

from .client import Rollbar
from .config import RollbarSettings
from .dispatch import DiagnosticBus, DiagnosticEvent
from .payload import LEVELS

app = typer.Typer(help="rollbar_notifier operational CLI")

# ---------------------------
# Common options
# ---------------------------


def token_opt() -> Optional[str]:
    return typer.Option(None, "--token", envvar="ROLLBAR_ACCESS_TOKEN", help="Project access token")


def environment_opt() -> Optional[str]:
    return typer.Option(None, "--environment", help="Override ROLLBAR_ENVIRONMENT")


def level_opt(default: str) -> str:
    return typer.Option(default, "--level", help=f"One of: {', '.join(LEVELS)}")


def timeout_opt() -> float:
    return typer.Option(15.0, "--timeout", help="Seconds to wait for delivery before giving up")


def _client(token: Optional[str], environment: Optional[str], bus: DiagnosticBus) -> Rollbar:
    overrides = {"diagnostics": bus, "client_id": "cli"}
    if token is not None:
        overrides["token"] = token
    if environment is not None:
        overrides["environment"] = environment
    return Rollbar.from_settings(RollbarSettings(), **overrides)


def _send(rb: Rollbar, events: list[DiagnosticEvent], timeout: float) -> None:
    finished = rb.close(timeout)
    h = rb.health()
    typer.echo(
        json.dumps(
            {
                "finished": finished,
                "delivered": h.delivered,
                "failed": h.failed,
                "dropped": h.dropped,
                "errors": [e.message + (f" ({e.error})" if e.error else "") for e in events if e.is_drop],
            },
            indent=2,
        )
    )
    if not finished or h.failed or h.dropped:
        raise typer.Exit(code=1)


def _check_level(level: str) -> None:
    if level not in LEVELS:
        raise typer.BadParameter(f"level must be one of {', '.join(LEVELS)}", param_hint="--level")


def _parse_extra(extra: Optional[str]) -> Optional[dict]:
    if not extra:
        return None
    try:
        value = json.loads(extra)
    except json.JSONDecodeError as e:
        raise typer.BadParameter(f"invalid JSON: {e}", param_hint="--extra") from e
    if not isinstance(value, dict):
        raise typer.BadParameter("must be a JSON object", param_hint="--extra")
    return value


# ---------------------------
# Commands
# ---------------------------


@app.command("message")
def message(
    text: str = typer.Argument(..., help="Message body"),
    level: str = level_opt("info"),
    extra: Optional[str] = typer.Option(None, "--extra", help="JSON object merged into item data"),
    token: Optional[str] = token_opt(),
    environment: Optional[str] = environment_opt(),
    timeout: float = timeout_opt(),
):
    """Send one message item and wait for the result."""
    _check_level(level)
    extras = _parse_extra(extra)
    events: list[DiagnosticEvent] = []
    bus = DiagnosticBus()
    bus.subscribe(events.append)

    rb = _client(token, environment, bus)
    rb.message(level, text, extras=extras)
    _send(rb, events, timeout)


@app.command("error")
def error(
    text: str = typer.Argument(..., help="Error message"),
    level: str = level_opt("error"),
    token: Optional[str] = token_opt(),
    environment: Optional[str] = environment_opt(),
    timeout: float = timeout_opt(),
):
    """Raise and report a RuntimeError, useful to verify a token end to end."""
    _check_level(level)
    events: list[DiagnosticEvent] = []
    bus = DiagnosticBus()
    bus.subscribe(events.append)

    rb = _client(token, environment, bus)
    try:
        raise RuntimeError(text)
    except RuntimeError as exc:
        rb.error(level, exc)
    _send(rb, events, timeout)


@app.command("config")
def config():
    """Print the effective settings with the token masked."""
    s = RollbarSettings()
    data = s.model_dump()
    tok = data.get("access_token") or ""
    data["access_token"] = (tok[:4] + "…") if tok else ""
    typer.echo(json.dumps(data, indent=2))


if __name__ == "__main__":
    app()
