"""Shared test fixtures for aiq.

Provides reusable fixtures for isolated config environments, output and
registry state, a scriptable in-memory provider, and a Typer CLI runner.
These fixtures are automatically discovered by pytest and available to all
test modules without explicit imports.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Optional

import pytest

from aiq.config import save_config
from aiq.models import Config
from aiq.output import OutputFormat, OutputManager, reset_output, set_output
from aiq.providers.base import InitQuestion, Provider
from aiq.providers.registry import ProviderRegistry, reset_registry, set_registry


# ---------------------------------------------------------------------------
# Auto-reset global state between tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_globals_between_tests() -> None:
    """Reset the global OutputManager and provider registry after every test.

    The OutputManager caches references to sys.stdout/sys.stderr at
    creation time.  When Typer's CliRunner redirects those streams during
    a test and the test finishes, the cached references become stale
    ("I/O operation on closed file").  Resetting forces a fresh manager
    to be created on next use.
    """
    yield
    reset_output()
    reset_registry()


# ---------------------------------------------------------------------------
# In-memory provider
# ---------------------------------------------------------------------------


class EchoProvider(Provider):
    """Provider that answers locally and remembers every prompt it was sent.

    Set ``response`` to control the answer, or ``error`` to make
    :meth:`execute_prompt` raise instead.
    """

    instances: list[EchoProvider] = []

    def __init__(self, config: Any, display_name: Optional[str] = None) -> None:
        super().__init__(config, display_name)
        self.prompts: list[str] = []
        self.response: Optional[str] = None
        self.error: Optional[Exception] = None
        EchoProvider.instances.append(self)

    def execute_prompt(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if self.error is not None:
            raise self.error
        return self.response if self.response is not None else f"echo: {prompt}"

    def validate_config(self) -> None:
        pass

    def validate_connection(self) -> bool:
        return True

    def get_init_questions(self) -> list[InitQuestion]:
        return []


@pytest.fixture
def echo_provider() -> EchoProvider:
    """A standalone EchoProvider instance."""
    return EchoProvider({"name": "echo"}, display_name="Echo")


@pytest.fixture
def echo_registry() -> ProviderRegistry:
    """Install a registry that only knows the ``echo`` provider.

    Every EchoProvider the registry constructs is appended to
    ``EchoProvider.instances`` so CLI tests can inspect the prompts sent.
    """
    EchoProvider.instances = []
    registry = ProviderRegistry()
    registry.register("echo", EchoProvider, "Echo", {"model": "echo-1"})
    set_registry(registry)
    return registry


# ---------------------------------------------------------------------------
# Config fixtures
# ---------------------------------------------------------------------------


def make_config_data(history_path: Optional[Path] = None, **overrides: Any) -> dict[str, Any]:
    """Build a raw config document with a representative set of commands."""
    data: dict[str, Any] = {
        "version": "1.0",
        "provider": {"name": "echo"},
        "commands": [
            {
                "name": "summarize",
                "description": "Summarize text concisely",
                "prompt": "Summarize this in {maxWords} words or less:\n\n{input}",
                "params": {
                    "maxWords": {
                        "type": "number",
                        "default": 50,
                        "alias": "w",
                        "description": "Maximum words for summary",
                    }
                },
            },
            {
                "name": "translate",
                "description": "Translate text",
                "prompt": "Translate to {lang} in a {tone} tone.",
                "params": {
                    "lang": {
                        "type": "string",
                        "required": True,
                        "alias": "l",
                        "choices": ["fr", "de", "es"],
                    },
                    "formal": {"type": "boolean", "default": False},
                },
            },
            {
                "name": "explain",
                "description": "Explain code or concept clearly",
                "prompt": "Explain this clearly:\n\n{input}",
            },
        ],
        "history": {
            "enabled": True,
            "maxEntries": 100,
        },
    }
    if history_path is not None:
        data["history"]["location"] = str(history_path)
    data.update(overrides)
    return data


@pytest.fixture
def sample_config(tmp_path: Path) -> Config:
    """A validated Config using the ``echo`` provider and a tmp history file."""
    return Config.model_validate(make_config_data(tmp_path / "history.json"))


@pytest.fixture
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Isolate configuration and data to a temporary directory.

    Sets HOME, AIQ_CONFIG_DIR, XDG_CONFIG_HOME, and XDG_DATA_HOME to
    subdirectories of tmp_path so that tests never touch real user
    files, clears provider credentials, and changes the working directory
    to tmp_path.

    Returns:
        The tmp_path root directory for additional file creation.
    """
    monkeypatch.setenv("HOME", str(tmp_path / "home"))
    monkeypatch.setenv("AIQ_CONFIG_DIR", str(tmp_path / "config"))
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg-config"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)
    monkeypatch.delenv("NO_COLOR", raising=False)

    monkeypatch.chdir(tmp_path)
    return tmp_path


@pytest.fixture
def installed_config(isolated_config: Path, echo_registry: ProviderRegistry) -> Config:
    """Write the sample config to the isolated config dir and return it."""
    config = Config.model_validate(make_config_data(isolated_config / "history.json"))
    save_config(config)
    return config


# ---------------------------------------------------------------------------
# Output fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def plain_output() -> OutputManager:
    """Install a PLAIN-format, non-quiet OutputManager."""
    output = OutputManager(format=OutputFormat.PLAIN, no_color=True)
    set_output(output)
    yield output
    reset_output()


# ---------------------------------------------------------------------------
# CLI runner fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def cli_runner():
    """Typer CLI test runner.

    Returns a CliRunner instance that captures stdout/stderr and
    provides a consistent interface for invoking Typer apps in tests.
    """
    from typer.testing import CliRunner

    return CliRunner()
