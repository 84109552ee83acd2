"""Unified CLI entry point for scrollcap.

Config precedence: settings.default.toml -> settings.<env>.toml -> settings.local.toml
-> env vars (SCROLLCAP_* with double underscores) -> CLI flags.
"""

from __future__ import annotations

import json
import logging
import os
import sys

import typer

from scrollcap.cli.record import record, serve
from scrollcap.cli.settings_cmd import settings_app

try:
    from importlib.metadata import version

    VERSION = version("scrollcap")
except Exception:
    VERSION = "unknown"

APP_HELP = (
    "scrollcap: record scrolling videos of web pages with cookie banners suppressed. "
    "Config precedence: settings.default.toml -> settings.local.toml -> env vars (SCROLLCAP_* with __) -> CLI flags."
)

app = typer.Typer(add_completion=True, help=APP_HELP)

app.command("record")(record)
app.command("serve")(serve)
app.add_typer(settings_app, name="settings")


class _CloudFormatter(logging.Formatter):
    """JSON formatter emitting Cloud Logging-compatible entries."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "severity": record.levelname,
            "message": record.getMessage(),
            "logger": record.name,
            "time": self.formatTime(record, "%Y-%m-%dT%H:%M:%S"),
        }
        if record.exc_info and record.exc_info[1]:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


def configure_logging() -> None:
    """Set up root logging.

    Outside ``SCROLLCAP_ENV=local`` emits one JSON object per line; locally a
    plain-text format. Level comes from ``SCROLLCAP_LOG_LEVEL`` (default INFO).
    """
    level = getattr(logging, os.environ.get("SCROLLCAP_LOG_LEVEL", "INFO").upper(), logging.INFO)
    env = os.environ.get("SCROLLCAP_ENV", "local").strip()

    if env != "local":
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(_CloudFormatter())
        logging.root.handlers.clear()
        logging.root.addHandler(handler)
        logging.root.setLevel(level)
    else:
        logging.basicConfig(
            level=level,
            format="%(asctime)s %(levelname)-8s %(name)s - %(message)s",
            datefmt="%Y-%m-%dT%H:%M:%S",
            stream=sys.stderr,
        )

    # Quieten noisy libraries
    logging.getLogger("asyncio").setLevel(logging.WARNING)


@app.callback(invoke_without_command=True)
def main(ctx: typer.Context, version: bool = typer.Option(False, "--version", help="Show version and exit.")) -> None:
    """Show help when no subcommand is provided."""
    if version:
        typer.echo(f"scrollcap {VERSION}")
        raise typer.Exit()
    if ctx.invoked_subcommand is None:
        typer.echo(ctx.get_help())
        raise typer.Exit()
    configure_logging()


if __name__ == "__main__":
    app()
