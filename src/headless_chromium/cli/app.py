"""CLI entry point: ``headless-chromium <flags passed to Chromium>``.

Config precedence: settings.default.toml -> settings.local.toml -> env vars (HCR_* with double underscores) -> legacy env vars.
"""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console

from headless_chromium.exceptions import HeadlessChromiumError

APP_HELP = (
    "Run Chromium inside Xvfb and print its JavaScript console. "
    "All arguments are passed to Chromium."
)

# Exit code for failures before Chromium starts.
SETUP_FAILURE_EXIT_CODE = -1

app = typer.Typer(add_completion=False, help=APP_HELP)
err_console = Console(stderr=True)


@app.command(
    add_help_option=False,
    context_settings={"allow_extra_args": True, "ignore_unknown_options": True},
)
def main(
    ctx: typer.Context,
    flags: Optional[list[str]] = typer.Argument(None, help="Flags passed to Chromium, e.g. --disable-gpu URL."),
) -> None:
    """Run Chromium headless and exit with the page's completion code."""
    from headless_chromium.settings import get_settings

    if not flags:
        prog = ctx.info_name or Path(sys.argv[0]).name
        typer.echo(f"Usage: {prog} flags passed to Chromium")
        typer.echo("Require at least one flag")
        raise typer.Exit(code=SETUP_FAILURE_EXIT_CODE)

    try:
        settings = get_settings()
        _configure_logging(settings.env, settings.log_level)

        from headless_chromium.runner import run

        exit_code = run(flags, settings)
    except HeadlessChromiumError as e:
        err_console.print(f"[red]✗[/red] {e}", highlight=False)
        raise typer.Exit(code=SETUP_FAILURE_EXIT_CODE)

    raise typer.Exit(code=exit_code)


def _configure_logging(env: str, log_level: str) -> None:
    """Send the runner's own diagnostics to stderr.

    Outside the ``local`` environment (CI), emits one JSON object per line::

        {"severity": "ERROR", "message": "...", "logger": "..."}

    Locally, uses a human-readable plain-text format. Stdout is left to
    Chromium's forwarded output either way.
    """
    level = getattr(logging, log_level.upper(), logging.INFO)

    if env != "local":

        class _JsonFormatter(logging.Formatter):
            """JSON formatter emitting one entry per line with a severity."""

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

        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(_JsonFormatter())
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

    logging.getLogger("asyncio").setLevel(logging.WARNING)


if __name__ == "__main__":
    app()
