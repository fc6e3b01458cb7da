"""Pluggable text-generation backends for aiq.

The main entry points are:

- :class:`Provider` -- abstract base class every backend implements.
- :class:`ProviderRegistry` -- maps provider identifiers to classes and
  their default configs.
- :func:`register_builtin_providers` / :func:`discover_providers` --
  explicit start-up registration of bundled and third-party backends.
- :func:`resolve_provider` -- build and validate the configured backend.

Typical usage::

    from aiq.providers import get_registry, register_builtin_providers, resolve_provider

    registry = get_registry()
    register_builtin_providers(registry)
    provider = resolve_provider(config.provider, registry)
    text = provider.execute_prompt(prompt)
"""

from aiq.providers.base import InitQuestion, Provider
from aiq.providers.registry import (
    ProviderMetadata,
    ProviderRegistry,
    discover_providers,
    get_registry,
    register_builtin_providers,
    reset_registry,
    resolve_provider,
    set_registry,
)

__all__ = [
    "InitQuestion",
    "Provider",
    "ProviderMetadata",
    "ProviderRegistry",
    "discover_providers",
    "get_registry",
    "register_builtin_providers",
    "reset_registry",
    "resolve_provider",
    "set_registry",
]
