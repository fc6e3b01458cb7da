"""Run commands -- execute, list, and test configured prompt commands.

``aiq run`` accepts parameter flags that are only known once the config is
loaded, so Typer is told to pass unknown options through and
:func:`parse_extra_args` maps them onto the command's parameters:

* ``--maxWords 30`` / ``--maxWords=30`` -- long form by parameter name;
* ``-w 30`` -- short form by the parameter's ``alias``;
* ``--verbose`` / ``--no-verbose`` -- boolean parameters without a value.

Everything else is input text; the words are joined with single spaces.
"""

from __future__ import annotations

from typing import Any, Optional

import typer

from aiq.commands.context import build_runner, is_no_input
from aiq.exceptions import InvalidUsageError
from aiq.models import CommandDef, ParamType
from aiq.output import get_output, info, print_table, suggest
from aiq.runner import CommandRunner, RunOptions
from aiq.template import INPUT_KEY, extract_params

RUN_CONTEXT_SETTINGS = {"allow_extra_args": True, "ignore_unknown_options": True}


def parse_extra_args(args: list[str], command: CommandDef) -> tuple[dict[str, Any], list[str]]:
    """Split pass-through arguments into parameter values and input words.

    Flags may name a declared parameter or any free-form placeholder of the
    template. Values stay strings; coercion happens in
    :func:`~aiq.template.validate_params`.

    Returns:
        ``(params, words)``.

    Raises:
        InvalidUsageError: On an unknown flag or a flag missing its value.
    """
    aliases = {d.alias: name for name, d in command.params.items() if d.alias}
    known = set(command.params) | (set(extract_params(command.prompt)) - {INPUT_KEY})

    params: dict[str, Any] = {}
    words: list[str] = []
    i = 0
    while i < len(args):
        arg = args[i]
        i += 1

        if arg.startswith("--") and len(arg) > 2:
            key, sep, value = arg[2:].partition("=")
            if key not in known and key.startswith("no-") and _is_boolean(command, key[3:]):
                params[key[3:]] = False
                continue
            if key not in known:
                raise InvalidUsageError(
                    f"Unknown option: --{key}",
                    hint=f'Run "aiq list" to see the options of {command.name}',
                )
            name = key
        elif len(arg) == 2 and arg[0] == "-" and arg[1].isalpha():
            name = aliases.get(arg[1], "")
            if not name:
                raise InvalidUsageError(
                    f"Unknown option: {arg}",
                    hint=f'Run "aiq list" to see the options of {command.name}',
                )
            sep, value = "", ""
        else:
            words.append(arg)
            continue

        if sep:
            params[name] = value
        elif _is_boolean(command, name):
            params[name] = True
        elif i < len(args):
            params[name] = args[i]
            i += 1
        else:
            raise InvalidUsageError(f"Option '--{name}' expects a value")

    return params, words


def _is_boolean(command: CommandDef, name: str) -> bool:
    definition = command.params.get(name)
    return definition is not None and definition.type == ParamType.BOOLEAN


def run_command(
    ctx: typer.Context,
    command: str = typer.Argument(help="Name of the configured command."),
    dry_run: bool = typer.Option(
        False, "--dry-run", "-d", help="Show the prompt without sending it."
    ),
) -> None:
    """Run a configured command.

    Input comes from the remaining arguments or, when there are none, from
    piped stdin. The response is printed to stdout.

    Example::

        aiq run summarize -w 30 "$(cat notes.txt)"
        git diff | aiq run explain
        aiq summarize --dry-run "some text"
    """
    runner = build_runner(validate=not dry_run)
    definition = runner.get_command(command)
    params, words = parse_extra_args(list(ctx.args), definition)

    options = RunOptions(dry_run=dry_run, params=params, input=" ".join(words) or None)
    result = runner.run(command, options)
    if result:
        get_output().print_response(result, command=command)


def list_command() -> None:
    """List the configured commands and their options.

    Example::

        aiq list
        aiq --json list
    """
    runner = build_runner(validate=False)
    commands = runner.list_commands()
    if not commands:
        info("No commands configured.")
        return

    rows = [
        [cmd.name, cmd.description or "", CommandRunner.describe_params(cmd)]
        for cmd in commands
    ]
    print_table(["Command", "Description", "Options"], rows, title="Available Commands")
    suggest('Preview a prompt with "aiq <command> --dry-run <input>"')


def preview_command(
    ctx: typer.Context,
    command: str = typer.Argument(help="Name of the configured command."),
    test_input: Optional[str] = typer.Option(
        None, "--input", "-i", help="Test input (prompted for when omitted)."
    ),
    yes: bool = typer.Option(False, "--yes", "-y", help="Send without asking."),
) -> None:
    """Preview a command's prompt with sample input, then optionally send it.

    Example::

        aiq test summarize --input "The quick brown fox"
    """
    runner = build_runner()
    if test_input is None:
        if is_no_input(ctx):
            raise InvalidUsageError(
                "No test input provided", hint="Pass --input when prompts are disabled"
            )
        test_input = typer.prompt("Enter test input")

    def _confirm(question: str) -> bool:
        return yes or typer.confirm(question, default=False)

    result = runner.test_command(command, test_input, _confirm)
    if result is None:
        info("Cancelled.")
        return
    get_output().print_response(result, command=command)
