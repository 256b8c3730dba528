"""Typer application and CLI entry point for apitree.

This module wires together the top-level Typer application and registers the
built-in sub-commands (``call``, ``inspect``, ``auth``, ``config``).

The :func:`main` function is the console-script entry point declared in
``pyproject.toml``. It installs signal handlers and invokes the Typer app.
:class:`~apitree.exceptions.ApiTreeError` exits with the error's exit code;
any other exception is written to a crash log under the data directory.

See Also:
    :mod:`apitree.config`: Settings and credential resolution.
    :mod:`apitree.output`: Output formatting initialised in :func:`main_callback`.
"""

from __future__ import annotations

import logging
import signal
import sys
import traceback
from datetime import datetime
from typing import Any

import typer

from apitree import __version__
from apitree.commands.auth import auth_app
from apitree.commands.call import call_command
from apitree.commands.config import config_app
from apitree.commands.inspect import inspect_command
from apitree.exit_codes import EXIT_GENERIC_FAILURE


app = typer.Typer(
    name="apitree",
    help="Compile API descriptions into navigable, callable clients.",
    no_args_is_help=True,
    add_completion=False,
    rich_markup_mode="rich",
)

app.command("call")(call_command)
app.command("inspect")(inspect_command)
app.add_typer(auth_app, name="auth", help="Stored credential management.")
app.add_typer(config_app, name="config", help="Settings management.")

LOG_FORMAT = "%(levelname)s %(name)s: %(message)s"


def _version_callback(value: bool) -> None:
    """Print version and exit when --version is passed."""
    if value:
        typer.echo(f"apitree {__version__}")
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
    json_output: bool = typer.Option(
        False, "--json", help="JSON output format."
    ),
    plain_output: bool = typer.Option(
        False, "--plain", help="Plain text output."
    ),
    no_color: bool = typer.Option(
        False, "--no-color", help="Disable color output."
    ),
    quiet: bool = typer.Option(
        False, "--quiet", "-q", help="Suppress non-essential output."
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Enable debug output and library logging."
    ),
    force: bool = typer.Option(
        False, "--force", "-f", help="Skip confirmations."
    ),
) -> None:
    """Root callback executed before every sub-command.

    Initialises the global :class:`~apitree.output.OutputManager` from CLI
    flags and stores shared options in ``ctx.obj``. With ``--verbose`` the
    library loggers (compiler warnings, auth selection, dispatch) are
    routed to stderr at ``DEBUG`` level.
    """
    from apitree.output import OutputFormat, OutputManager, set_output

    fmt = OutputFormat.AUTO
    if json_output:
        fmt = OutputFormat.JSON
    elif plain_output:
        fmt = OutputFormat.PLAIN

    set_output(OutputManager(format=fmt, no_color=no_color, quiet=quiet, verbose=verbose))

    if verbose:
        logging.basicConfig(level=logging.DEBUG, stream=sys.stderr, format=LOG_FORMAT)

    ctx.ensure_object(dict)
    ctx.obj["force"] = force
    ctx.obj["verbose"] = verbose


def _setup_signal_handlers() -> None:
    """Install a SIGINT handler so Ctrl-C exits cleanly."""

    def _handler(signum: int, frame: Any) -> None:  # noqa: ANN401
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)

    signal.signal(signal.SIGINT, _handler)


def _write_crash_log(exc: Exception) -> str:
    """Write a crash traceback to disk and return the log file path."""
    from apitree.config import get_data_dir

    logs_dir = get_data_dir() / "logs"
    logs_dir.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now().strftime("%Y%m%d-%H%M%S")
    log_path = logs_dir / f"crash-{timestamp}.log"
    log_path.write_text(
        "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
    )
    return str(log_path)


def main() -> None:
    """CLI entry point invoked by the ``apitree`` console script.

    Unhandled :class:`~apitree.exceptions.ApiTreeError` instances cause a
    clean exit with the error's ``exit_code``. All other exceptions produce
    a crash log and a generic failure exit.

    Raises:
        SystemExit: Always raised (either by Typer or explicitly).
    """
    _setup_signal_handlers()
    try:
        app(standalone_mode=True)
    except SystemExit:
        raise
    except KeyboardInterrupt:
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)
    except Exception as exc:
        from apitree.exceptions import ApiTreeError
        from apitree.output import error

        if isinstance(exc, ApiTreeError):
            error(str(exc))
            sys.exit(exc.exit_code)
        else:
            log_path = _write_crash_log(exc)
            error(f"Unexpected error. Debug log: {log_path}")
            sys.exit(EXIT_GENERIC_FAILURE)
