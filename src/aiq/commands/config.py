"""Config commands -- create, inspect, and validate the configuration file.

Provides the ``aiq config`` sub-command group. ``init`` and ``reset`` write
the starter document built by :func:`~aiq.config.default_config`; ``init``
asks the provider's :meth:`~aiq.providers.base.Provider.get_init_questions`
through Typer prompts unless ``--no-input`` is active.
"""

from __future__ import annotations

from typing import Any

import typer

from aiq.commands.context import ensure_registry, is_no_input
from aiq.config import (
    config_exists,
    config_path,
    default_config,
    load_config,
    resolve_env_vars,
    save_config,
)
from aiq.exceptions import AiqError, ConfigError
from aiq.output import get_output, info, print_table, success, suggest, warning
from aiq.providers.base import InitQuestion
from aiq.providers.registry import resolve_provider

config_app = typer.Typer(no_args_is_help=True)

_EDITOR_CHOICES: list[tuple[str, str]] = [
    ("VS Code", "code"),
    ("Vim", "vim"),
    ("Nano", "nano"),
    ("Emacs", "emacs"),
    ("System default", "${EDITOR:-nano}"),
]


def ask(question: InitQuestion) -> Any:
    """Ask one :class:`~aiq.providers.base.InitQuestion` on the terminal.

    ``select`` questions list numbered choices and accept either the number
    or the value. ``input`` questions are re-asked until ``validate``
    accepts the answer.
    """
    if question.kind == "confirm":
        return typer.confirm(question.message, default=bool(question.default))

    if question.kind == "select":
        values = [value for _, value in question.choices]
        for index, (label, _) in enumerate(question.choices, start=1):
            info(f"  {index}. {label}")
        default_index = values.index(question.default) + 1 if question.default in values else 1
        while True:
            answer = typer.prompt(question.message, default=str(default_index))
            if answer.isdigit() and 1 <= int(answer) <= len(values):
                return values[int(answer) - 1]
            if answer in values:
                return answer
            warning(f"Choose a number between 1 and {len(values)}")

    while True:
        answer = typer.prompt(
            question.message,
            default=question.default,
            hide_input=question.secret,
        )
        verdict = question.validate(answer) if question.validate else True
        if verdict is True:
            return answer
        warning(str(verdict))


@config_app.command("init")
def config_init(
    ctx: typer.Context,
    provider_name: str = typer.Option("gemini", "--provider", help="Provider to configure."),
    force: bool = typer.Option(False, "--force", "-f", help="Overwrite an existing config."),
) -> None:
    """Create the configuration file with the starter commands.

    Example::

        aiq config init
        GEMINI_API_KEY=... aiq --no-input config init --force
    """
    path = config_path()
    if config_exists(path) and not force:
        raise ConfigError(
            f"Config file already exists at {path}",
            hint='Use "aiq config init --force" to overwrite it',
        )

    registry = ensure_registry()
    provider = registry.get(provider_name)
    metadata = registry.get_metadata(provider_name)
    provider_config: dict[str, Any] = dict(metadata.default_config) if metadata else {}

    editor = "${EDITOR:-nano}"
    history_enabled = True
    if not is_no_input(ctx):
        info(f"Setting up aiq with {provider.display_name}\n")
        for question in provider.get_init_questions():
            provider_config[question.name] = ask(question)
        editor = ask(
            InitQuestion(
                name="editor",
                message="Choose your preferred editor",
                kind="select",
                choices=_EDITOR_CHOICES,
                default=editor,
            )
        )
        history_enabled = typer.confirm("Enable command history?", default=True)

        if not _check_connection(provider_name, provider_config):
            if not typer.confirm("Continue anyway?", default=True):
                info("Setup cancelled.")
                raise typer.Exit()

    config = default_config(provider_config, history_enabled=history_enabled)
    config.editor = editor
    save_config(config, path)

    success(f"Configuration saved to {path}")
    for command in config.commands:
        info(f"  - {command.name}: {command.description}")
    suggest('Try: echo "some text" | aiq summarize')


def _check_connection(provider_name: str, provider_config: dict[str, Any]) -> bool:
    info("Testing API connection...")
    try:
        provider = ensure_registry().get(provider_name, resolve_env_vars(provider_config))
        provider.validate_config()
        connected = provider.validate_connection()
    except AiqError as exc:
        warning(f"Could not validate API connection: {exc.message}")
        return False
    if connected:
        success("API connection successful")
    else:
        warning("Could not validate API connection")
    return connected


@config_app.command("validate")
def config_validate(
    offline: bool = typer.Option(
        False, "--offline", help="Skip the test request to the provider."
    ),
) -> None:
    """Validate the configuration and test the provider connection.

    Exits non-zero when the file or the provider config is invalid, or when
    the test request fails.

    Example::

        aiq config validate
    """
    config = load_config()
    success(f"Config file is valid: {config_path()}")
    success(f"{len(config.commands)} commands configured")

    provider = resolve_provider(config.provider, ensure_registry())
    success(f"Provider '{provider.display_name}' is configured")

    if offline:
        return

    info("Testing API connection...")
    with get_output().status(f"Contacting {provider.display_name}..."):
        connected = provider.validate_connection()
    if not connected:
        raise AiqError(
            "API connection failed",
            hint="Check your network and provider settings, then retry",
        )
    success("API connection successful")


@config_app.command("show")
def config_show() -> None:
    """Show the configuration with ``${VAR}`` tokens expanded.

    Secrets are masked; only the last four characters of ``apiKey`` remain.

    Example::

        aiq config show
        aiq --json config show
    """
    config = load_config()
    data = config.model_dump(mode="json", by_alias=True, exclude_none=True)
    api_key = data["provider"].get("apiKey")
    if isinstance(api_key, str) and api_key:
        data["provider"]["apiKey"] = "*" * max(len(api_key) - 4, 0) + api_key[-4:]

    info(f"Config file: {config_path()}")
    get_output().print_json(data)


@config_app.command("path")
def config_path_command() -> None:
    """Print the path of the configuration file."""
    get_output().print_data(str(config_path()))


@config_app.command("providers")
def config_providers() -> None:
    """List the registered providers.

    Example::

        aiq config providers
    """
    registry = ensure_registry()
    rows = []
    for identifier in registry.list():
        metadata = registry.get_metadata(identifier)
        model = metadata.default_config.get("model", "") if metadata else ""
        rows.append([identifier, metadata.display_name if metadata else identifier, str(model)])

    if not rows:
        info("No providers registered.")
        return
    print_table(["Name", "Display name", "Default model"], rows, title="Providers")


@config_app.command("reset")
def config_reset(
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip the confirmation prompt."),
) -> None:
    """Replace the configuration with the starter document.

    The provider keeps its identifier but falls back to its default config,
    so the API key is read from the environment again.

    Example::

        aiq config reset --yes
    """
    registry = ensure_registry()
    provider_name = "gemini"
    if config_exists():
        try:
            provider_name = load_config().provider.name
        except ConfigError as exc:
            warning(f"Current config is unreadable, using defaults: {exc.message}")

    if not yes and not typer.confirm(
        "This will reset your config to defaults. Continue?", default=False
    ):
        info("Reset cancelled.")
        raise typer.Exit()

    metadata = registry.get_metadata(provider_name)
    provider_config = dict(metadata.default_config) if metadata else {"name": provider_name}
    path = save_config(default_config(provider_config))
    success(f"Config reset to defaults: {path}")
    suggest("Remember to set your API key")
