"""History commands -- browse, search, clear, and replay recorded exchanges.

Provides the ``aiq history`` sub-command group plus the top-level ``last``
and ``replay`` commands. All of them read the log configured by the
``history`` section of the config; when history is disabled they print a
warning and exit successfully, except ``replay``, which fails.
"""

from __future__ import annotations

import typer

from aiq.commands.context import build_runner, history_or_exit
from aiq.config import load_config
from aiq.history import HistoryManager, excerpt, format_timestamp, preview
from aiq.output import OutputFormat, get_output, info, success, suggest

history_app = typer.Typer(no_args_is_help=False, invoke_without_command=True)


@history_app.callback()
def history_callback(ctx: typer.Context) -> None:
    """Manage command history. Shows the last 10 entries when no sub-command is given."""
    if ctx.invoked_subcommand is None:
        history_show(number=10)


@history_app.command("show")
def history_show(
    number: int = typer.Option(10, "--number", "-n", min=1, help="Number of entries to show."),
) -> None:
    """Show recent command history, most recent first.

    Example::

        aiq history show -n 5
        aiq --json history show
    """
    history = history_or_exit(load_config())
    entries = history.get_last(number)
    if not entries:
        info("No history yet")
        return

    output = get_output()
    if output.format == OutputFormat.JSON:
        output.print_json([entry.model_dump(mode="json") for entry in entries])
        return

    output.print_data(f"Showing last {len(entries)} commands:\n")
    for entry in entries:
        output.print_data(HistoryManager.format_entry(entry))
        output.print_data(f"  Prompt: {preview(entry.prompt)}")
        output.print_data(f"  Response: {preview(entry.response)}")
        output.print_data("")
    suggest('Use "aiq replay <id>" to re-run a command')


@history_app.command("search")
def history_search(
    query: str = typer.Argument(help="Text to look for in commands, prompts and responses."),
) -> None:
    """Search command history, ignoring case.

    Example::

        aiq history search docker
    """
    history = history_or_exit(load_config())
    entries = history.search(query)
    if not entries:
        info(f'No results found for "{query}"')
        return

    output = get_output()
    if output.format == OutputFormat.JSON:
        output.print_json([entry.model_dump(mode="json") for entry in entries])
        return

    output.print_data(f"Found {len(entries)} matching entries:\n")
    needle = query.lower()
    for entry in entries:
        output.print_data(f"[{format_timestamp(entry.timestamp)}] {entry.command}")
        output.print_data(f"  ID: {entry.id}")
        if needle in entry.prompt.lower():
            output.print_data(f"  Prompt: {excerpt(entry.prompt, query)}")
        if needle in entry.response.lower():
            output.print_data(f"  Response: {excerpt(entry.response, query)}")
        output.print_data("")


@history_app.command("clear")
def history_clear(
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip the confirmation prompt."),
) -> None:
    """Delete every recorded entry.

    Example::

        aiq history clear --yes
    """
    history = history_or_exit(load_config())
    if not yes and not typer.confirm("This will delete all command history. Are you sure?"):
        info("Cancelled.")
        raise typer.Exit()

    history.clear()
    success("History cleared")


def last_command() -> None:
    """Print the response of the most recent command.

    Example::

        aiq last | pbcopy
    """
    history = history_or_exit(load_config())
    entry = history.get_last_response()
    if entry is None:
        info("No previous commands in history")
        return

    info(f"Last command: {entry.command} ({format_timestamp(entry.timestamp)})")
    get_output().print_response(entry.response, command=entry.command)


def replay_command(
    entry_id: str = typer.Argument(help="History entry ID (see \"aiq history\")."),
) -> None:
    """Send a recorded prompt again and print the new response.

    Example::

        aiq replay 3f9a1c0d2b7e4a65
    """
    runner = build_runner()
    result = runner.replay(entry_id)
    info("New response:")
    get_output().print_response(result)
