"""Typer application and CLI entry point for atelier_client.

This module wires together the top-level Typer application and registers
the built-in sub-command groups (``server``, ``doc``, ``action``,
``session``, ``config``).

The :func:`main` function is the console-script entry point declared in
``pyproject.toml``. Unhandled :class:`~atelier_client.exceptions.AtelierError`
instances exit with the error's ``exit_code``; anything else is written to
a crash log under the data directory.
"""

from __future__ import annotations

import signal
import sys
import traceback
from datetime import datetime
from typing import Any, Optional

import typer

from atelier_client import __version__
from atelier_client.exit_codes import EXIT_GENERIC_FAILURE


app = typer.Typer(
    name="atelier",
    help="Work with source documents on a server through the Atelier REST API.",
    no_args_is_help=True,
    add_completion=False,
    rich_markup_mode="rich",
)


def _version_callback(value: bool) -> None:
    """Print version and exit when --version is passed."""
    if value:
        typer.echo(f"atelier {__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    ctx: typer.Context,
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
    connection: Optional[str] = typer.Option(
        None, "--connection", "-c", help="Connection or server name to use."
    ),
    namespace: Optional[str] = typer.Option(
        None, "--namespace", "-n", help="Namespace override."
    ),
    json_output: bool = typer.Option(False, "--json", help="JSON output format."),
    plain_output: bool = typer.Option(False, "--plain", help="Plain text output."),
    no_color: bool = typer.Option(False, "--no-color", help="Disable color output."),
    quiet: bool = typer.Option(
        False, "--quiet", "-q", help="Suppress non-essential output."
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug output."),
) -> None:
    """Root callback executed before every sub-command.

    Installs the global :class:`~atelier_client.output.OutputManager` from
    CLI flags and stores the connection options in ``ctx.obj`` for
    :func:`~atelier_client.runtime.run_with_api`.
    """
    from atelier_client.output import OutputFormat, OutputManager, set_output

    fmt = OutputFormat.AUTO
    if json_output:
        fmt = OutputFormat.JSON
    elif plain_output:
        fmt = OutputFormat.PLAIN

    set_output(OutputManager(format=fmt, no_color=no_color, quiet=quiet, verbose=verbose))

    ctx.ensure_object(dict)
    ctx.obj["connection"] = connection
    ctx.obj["namespace"] = namespace
    ctx.obj["verbose"] = verbose


# ------------------------------------------------------------------ #
# Sub-commands
# ------------------------------------------------------------------ #

from atelier_client.commands.action import action_app  # noqa: E402
from atelier_client.commands.config import config_app  # noqa: E402
from atelier_client.commands.doc import doc_app  # noqa: E402
from atelier_client.commands.server import server_app  # noqa: E402
from atelier_client.commands.session import session_app  # noqa: E402

app.add_typer(server_app, name="server", help="Server information.")
app.add_typer(doc_app, name="doc", help="Read and write documents.")
app.add_typer(action_app, name="action", help="Compile, index, search and query.")
app.add_typer(session_app, name="session", help="Cookie session management.")
app.add_typer(config_app, name="config", help="Servers and connections.")


def _setup_signal_handlers() -> None:
    """Install a SIGINT handler so Ctrl-C exits cleanly."""

    def _handler(signum: int, frame: Any) -> None:  # noqa: ANN401
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)

    signal.signal(signal.SIGINT, _handler)


def _write_crash_log(exc: Exception) -> str:
    """Write a crash traceback to disk and return the log file path."""
    from atelier_client.config import get_data_dir

    logs_dir = get_data_dir() / "logs"
    logs_dir.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now().strftime("%Y%m%d-%H%M%S")
    log_path = logs_dir / f"crash-{timestamp}.log"
    log_path.write_text(traceback.format_exc())
    return str(log_path)


def main() -> None:
    """CLI entry point invoked by the ``atelier`` console script.

    Raises:
        SystemExit: Always raised (either by Typer or explicitly).
    """
    _setup_signal_handlers()
    try:
        app()
    except SystemExit:
        raise
    except KeyboardInterrupt:
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)
    except Exception as exc:
        from atelier_client.exceptions import AtelierError
        from atelier_client.output import error

        if isinstance(exc, AtelierError):
            error(str(exc))
            sys.exit(exc.exit_code)
        log_path = _write_crash_log(exc)
        error(f"Unexpected error. Debug log: {log_path}")
        sys.exit(EXIT_GENERIC_FAILURE)
