"""Shared wiring for CLI sub-commands.

Every command that talks to a provider needs the same three things: the
loaded :class:`~aiq.models.Config`, a populated
:class:`~aiq.providers.registry.ProviderRegistry`, and a
:class:`~aiq.runner.CommandRunner` built from both. This module builds them
once per invocation so the command modules stay thin.
"""

from __future__ import annotations

from typing import Optional

import typer

from aiq.config import load_config
from aiq.history import HistoryManager
from aiq.models import Config
from aiq.output import warning
from aiq.providers.registry import (
    ProviderRegistry,
    discover_providers,
    get_registry,
    register_builtin_providers,
    resolve_provider,
)
from aiq.runner import CommandRunner


def ensure_registry() -> ProviderRegistry:
    """Return the process-wide registry, populating it on first use.

    Built-in providers are registered first so that a third-party entry
    point registering the same identifier replaces the bundled backend.
    """
    registry = get_registry()
    if not registry.list():
        register_builtin_providers(registry)
        discover_providers(registry)
    return registry


def build_runner(validate: bool = True, config: Optional[Config] = None) -> CommandRunner:
    """Load the config and construct a :class:`~aiq.runner.CommandRunner`.

    Args:
        validate: Run the provider's ``validate_config`` before returning.
            Dry runs pass ``False`` so a prompt can be previewed without a
            credential.
        config: Already-loaded config; loaded from disk when omitted.
    """
    config = config or load_config()
    registry = ensure_registry()
    if validate:
        provider = resolve_provider(config.provider, registry)
    else:
        provider = registry.get(config.provider.name, config.provider)
    return CommandRunner(config, provider)


def history_or_exit(config: Config) -> HistoryManager:
    """Return the history log, or warn and exit 0 when history is disabled."""
    if config.history is None or not config.history.enabled:
        warning("History is disabled in config")
        raise typer.Exit()
    return HistoryManager(config.history)


def is_no_input(ctx: typer.Context) -> bool:
    """Whether ``--no-input`` was passed to the root command."""
    root = ctx.find_root()
    return bool(root.obj and root.obj.get("no_input"))
