"""Typer application and CLI entry point for aiq.

This module wires together the top-level Typer application and registers
the built-in sub-commands (``run``, ``list``, ``test``, ``history``,
``last``, ``replay``, ``config``).

The :func:`main` function is the console-script entry point declared in
``pyproject.toml``. It installs signal handlers, rewrites ``aiq <command>``
into ``aiq run <command>`` for configured commands, and invokes the Typer
app. :class:`~aiq.exceptions.AiqError` is printed with its hint and exits
with its code; anything else is written to a crash log under the data
directory.

See Also:
    :mod:`aiq.runner`: The execution pipeline behind ``aiq run``.
    :mod:`aiq.output`: Output formatting initialised in :func:`main_callback`.
"""

from __future__ import annotations

import logging
import signal
import sys
import traceback
from datetime import datetime
from typing import Any, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler

from aiq import __version__
from aiq.exit_codes import EXIT_GENERIC_FAILURE, EXIT_INTERRUPTED


app = typer.Typer(
    name="aiq",
    help="Run reusable AI prompts from the command line.",
    no_args_is_help=True,
    add_completion=False,
    rich_markup_mode="rich",
)

# ------------------------------------------------------------------ #
# Built-in commands
# ------------------------------------------------------------------ #

from aiq.commands.config import config_app  # noqa: E402
from aiq.commands.history import history_app, last_command, replay_command  # noqa: E402
from aiq.commands.run import (  # noqa: E402
    RUN_CONTEXT_SETTINGS,
    list_command,
    preview_command,
    run_command,
)

app.command("run", context_settings=RUN_CONTEXT_SETTINGS)(run_command)
app.command("list")(list_command)
app.command("ls", hidden=True)(list_command)
app.command("test")(preview_command)
app.command("last")(last_command)
app.command("replay")(replay_command)
app.add_typer(history_app, name="history", help="Browse and search command history.")
app.add_typer(config_app, name="config", help="Configuration management.")

BUILTIN_COMMANDS = frozenset(
    {"run", "list", "ls", "test", "history", "last", "replay", "config"}
)


def _version_callback(value: bool) -> None:
    """Print version and exit when --version is passed."""
    if value:
        typer.echo(f"aiq {__version__}")
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
        False, "--verbose", "-v", help="Enable debug output."
    ),
    no_input: bool = typer.Option(
        False, "--no-input", help="Disable interactive prompts."
    ),
) -> None:
    """Root callback executed before every sub-command.

    Initialises the global :class:`~aiq.output.OutputManager` and the
    ``aiq`` logger from CLI flags, and stores shared options in the Typer
    context so that sub-commands can read them via ``ctx.obj``.
    """
    from aiq.output import OutputFormat, OutputManager, set_output

    fmt = OutputFormat.AUTO
    if json_output:
        fmt = OutputFormat.JSON
    elif plain_output:
        fmt = OutputFormat.PLAIN

    set_output(OutputManager(format=fmt, no_color=no_color, quiet=quiet, verbose=verbose))
    _configure_logging(verbose=verbose, no_color=no_color)

    ctx.ensure_object(dict)
    ctx.obj["no_input"] = no_input
    ctx.obj["verbose"] = verbose


def _configure_logging(verbose: bool, no_color: bool = False) -> None:
    """Route the ``aiq`` logger to stderr through Rich.

    DEBUG and above with ``--verbose``, WARNING and above otherwise.
    """
    handler = RichHandler(
        console=Console(stderr=True, no_color=no_color),
        show_time=False,
        show_path=verbose,
        rich_tracebacks=verbose,
    )
    handler.setFormatter(logging.Formatter("%(message)s"))

    logger = logging.getLogger("aiq")
    logger.handlers.clear()
    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG if verbose else logging.WARNING)


def rewrite_argv(args: list[str]) -> list[str]:
    """Insert ``run`` before the first word when it is not a built-in command.

    Leading global flags are skipped, so ``aiq -q summarize text`` becomes
    ``aiq -q run summarize text``.
    """
    for index, arg in enumerate(args):
        if arg.startswith("-"):
            continue
        if arg in BUILTIN_COMMANDS:
            return args
        return [*args[:index], "run", *args[index:]]
    return args


def _setup_signal_handlers() -> None:
    """Install a SIGINT handler so Ctrl-C exits cleanly."""

    def _handler(signum: int, frame: Any) -> None:  # noqa: ANN401
        sys.stderr.write("\nCancelled.\n")
        sys.exit(EXIT_INTERRUPTED)

    signal.signal(signal.SIGINT, _handler)


def _write_crash_log(exc: Exception) -> str:
    """Write a crash traceback to disk and return the log file path."""
    from aiq.config import get_data_dir

    logs_dir = get_data_dir() / "logs"
    logs_dir.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now().strftime("%Y%m%d-%H%M%S")
    log_path = logs_dir / f"crash-{timestamp}.log"
    log_path.write_text(
        "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
    )
    return str(log_path)


def main(argv: Optional[list[str]] = None) -> None:
    """CLI entry point invoked by the ``aiq`` console script.

    Unhandled :class:`~aiq.exceptions.AiqError` instances print the message
    and hint and exit with the error's ``exit_code``. All other exceptions
    produce a crash log and a generic failure exit; the traceback is also
    printed with ``--verbose``.

    Args:
        argv: Arguments without the program name; defaults to ``sys.argv[1:]``.

    Raises:
        SystemExit: Always raised (either by Typer or explicitly).
    """
    args = rewrite_argv(list(sys.argv[1:] if argv is None else argv))
    _setup_signal_handlers()
    try:
        app(args=args, prog_name="aiq")
    except SystemExit:
        raise
    except KeyboardInterrupt:
        sys.stderr.write("\nCancelled.\n")
        sys.exit(EXIT_INTERRUPTED)
    except Exception as exc:
        from aiq.exceptions import AiqError
        from aiq.output import error, suggest

        if isinstance(exc, AiqError):
            error(exc.message)
            if exc.hint:
                suggest(exc.hint)
            sys.exit(exc.exit_code)

        log_path = _write_crash_log(exc)
        if "--verbose" in args or "-v" in args:
            traceback.print_exception(type(exc), exc, exc.__traceback__, file=sys.stderr)
        error(f"Unexpected error. Debug log: {log_path}")
        sys.exit(EXIT_GENERIC_FAILURE)
