"""Command execution: resolve, validate, render, send, record.

:class:`CommandRunner` is the orchestrator behind ``aiq run``. For one
invocation it

1. looks the command up in the loaded :class:`~aiq.models.Config`;
2. acquires the input (explicit text, else piped stdin);
3. validates and coerces parameters with
   :func:`~aiq.template.validate_params`;
4. renders the prompt with :func:`~aiq.template.render`;
5. either prints the prompt (dry run) or sends it to the provider;
6. records the exchange with :class:`~aiq.history.HistoryManager`.

Every failure before step 5 happens before any network traffic. A failure
to record history is logged and never fails the run.
"""

from __future__ import annotations

import logging
import sys
import time
from dataclasses import dataclass, field
from typing import IO, Any, Callable, Optional

from aiq.exceptions import CommandNotFoundError, HistoryError
from aiq.exit_codes import EXIT_NOT_FOUND
from aiq.history import HistoryManager
from aiq.models import CommandDef, Config
from aiq.output import get_output
from aiq.providers.base import Provider
from aiq.template import INPUT_KEY, format_value, render, validate_params

logger = logging.getLogger(__name__)


@dataclass
class RunOptions:
    """Per-invocation options for :meth:`CommandRunner.run`.

    Attributes:
        dry_run: Print the rendered prompt instead of sending it.
        params: Raw parameter values keyed by parameter name.
        input: Input text; when empty, piped stdin is read instead.
    """

    dry_run: bool = False
    params: dict[str, Any] = field(default_factory=dict)
    input: Optional[str] = None


class CommandRunner:
    """Run configured commands against one provider.

    Args:
        config: The loaded configuration document.
        provider: A provider that already passed ``validate_config``.
        history: History log; created from ``config.history`` when omitted
            and history is enabled.
        stdin: Stream to read piped input from; defaults to ``sys.stdin``.

    Example::

        runner = CommandRunner(config, resolve_provider(config.provider))
        text = runner.run("summarize", RunOptions(params={"maxWords": "30"}))
    """

    def __init__(
        self,
        config: Config,
        provider: Provider,
        history: Optional[HistoryManager] = None,
        stdin: Optional[IO[str]] = None,
    ) -> None:
        self._config = config
        self._provider = provider
        if history is None and config.history is not None and config.history.enabled:
            history = HistoryManager(config.history)
        self._history = history
        self._stdin = stdin

    @property
    def provider(self) -> Provider:
        return self._provider

    @property
    def history(self) -> Optional[HistoryManager]:
        return self._history

    # ------------------------------------------------------------------ #
    # Discovery
    # ------------------------------------------------------------------ #

    def get_command(self, name: str) -> CommandDef:
        """Return the command called *name*.

        Raises:
            CommandNotFoundError: If the config defines no such command.
        """
        command = self._config.get_command(name)
        if command is None:
            raise CommandNotFoundError(
                f"Command '{name}' not found",
                hint='Run "aiq list" to see available commands',
            )
        return command

    def list_commands(self) -> list[CommandDef]:
        """Commands in config order."""
        return list(self._config.commands)

    @staticmethod
    def describe_params(command: CommandDef) -> str:
        """One-line flag summary, e.g. ``-w, --maxWords (default: 50)``."""
        parts = []
        for name, definition in command.params.items():
            alias = f"-{definition.alias}, " if definition.alias else ""
            default = (
                f" (default: {format_value(definition.default)})"
                if definition.default is not None
                else ""
            )
            parts.append(f"{alias}--{name}{default}")
        return ", ".join(parts)

    # ------------------------------------------------------------------ #
    # Execution
    # ------------------------------------------------------------------ #

    def render(self, command_name: str, options: RunOptions) -> str:
        """Resolve *command_name*, acquire input, validate, and render.

        Raises:
            CommandNotFoundError: If the command is not defined.
            InvalidUsageError: On missing input or invalid parameters.
        """
        command = self.get_command(command_name)
        values: dict[str, Any] = {**options.params, INPUT_KEY: self._read_input(options.input)}
        validate_params(command.prompt, values, command.params)
        return render(command.prompt, values, command.params)

    def run(self, command_name: str, options: Optional[RunOptions] = None) -> str:
        """Run *command_name* and return the provider's response.

        A dry run prints the rendered prompt and returns ``""`` without
        contacting the provider or touching history.
        """
        options = options or RunOptions()
        prompt = self.render(command_name, options)

        if options.dry_run:
            get_output().print_prompt(prompt)
            return ""

        return self._execute(command_name, options.params, prompt)

    def test_command(
        self,
        command_name: str,
        test_input: str,
        confirm: Callable[[str], bool],
    ) -> Optional[str]:
        """Preview a command with its declared defaults, then optionally run it.

        Args:
            command_name: Command to test.
            test_input: Input text to render with.
            confirm: Asked ``"Send this to <provider>?"``; the previewed prompt
                is sent unchanged only when it returns ``True``.

        Returns:
            The provider response, or ``None`` when the user declined.
        """
        command = self.get_command(command_name)
        output = get_output()
        output.info(f"Testing command: {command_name}")
        output.info(f"Input: {test_input}")

        values: dict[str, Any] = {INPUT_KEY: test_input}
        for name, definition in command.params.items():
            if definition.default is not None:
                values[name] = definition.default
        prompt = render(command.prompt, values, command.params)

        output.info("--- Generated Prompt ---")
        output.info(prompt)
        output.info("--- End of Prompt ---")

        if not confirm(f"Send this to {self._provider.display_name}?"):
            return None
        return self._execute(command_name, {}, prompt)

    def replay(self, entry_id: str) -> str:
        """Resend the prompt recorded under *entry_id*.

        The recorded prompt is sent verbatim and the new exchange is
        recorded under the original command name and parameters.

        Raises:
            HistoryError: If history is disabled or no entry has that id.
        """
        if self._history is None or not self._history.enabled:
            raise HistoryError(
                "History is disabled in config",
                hint='Set "history": {"enabled": true} in your config file',
            )

        entry = self._history.get_by_id(entry_id)
        if entry is None:
            raise HistoryError(
                f"Command with ID '{entry_id}' not found",
                hint='Use "aiq history" to see available IDs',
                exit_code=EXIT_NOT_FOUND,
            )

        get_output().info(f"Replaying command: {entry.command}")
        return self._execute(entry.command, entry.params, entry.prompt)

    # ------------------------------------------------------------------ #
    # Private helpers
    # ------------------------------------------------------------------ #

    def _read_input(self, explicit: Optional[str]) -> Optional[str]:
        if explicit is not None:
            return explicit or None
        stream = self._stdin if self._stdin is not None else sys.stdin
        if stream is None or stream.isatty():
            return None
        return stream.read().strip() or None

    def _execute(self, command_name: str, params: dict[str, Any], prompt: str) -> str:
        output = get_output()
        logger.debug("Sending %d characters to provider '%s'", len(prompt), self._provider.name)

        start = time.monotonic()
        with output.status(f"Sending to {self._provider.display_name}..."):
            response = self._provider.execute_prompt(prompt)
        duration = int((time.monotonic() - start) * 1000)
        output.success("Response received")

        self._record(command_name, params, prompt, response, duration)
        return response

    def _record(
        self,
        command_name: str,
        params: dict[str, Any],
        prompt: str,
        response: str,
        duration: int,
    ) -> None:
        if self._history is None:
            return
        try:
            self._history.add(command_name, params, prompt, response, duration)
        except HistoryError as exc:
            logger.warning("Could not record history: %s", exc.message)
