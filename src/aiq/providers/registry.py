"""Provider registry -- the process-wide table of text-generation backends.

:class:`ProviderRegistry` maps a lowercase identifier (the ``name`` field of
the provider config) to a :class:`~aiq.providers.base.Provider` subclass and
its :class:`ProviderMetadata` (display name and default config). The
registry is populated once at start-up by explicit calls:

* :func:`register_builtin_providers` -- the backends shipped with aiq.
* :func:`discover_providers` -- third-party backends declared as entry
  points in the ``aiq.providers`` group. Each entry point names a callable
  that receives the registry and registers its classes::

      [project.entry-points."aiq.providers"]
      ollama = "aiq_ollama:register"

After start-up the registry is only read. Tests swap it with
:func:`set_registry` / :func:`reset_registry`.

See Also:
    :func:`resolve_provider` -- lookup plus config validation, used by the
    CLI before constructing the runner.
"""

from __future__ import annotations

import importlib.metadata
import logging
from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping, Optional, Union

from aiq.exceptions import ProviderNotFoundError
from aiq.models import ProviderConfig
from aiq.providers.base import Provider

logger = logging.getLogger(__name__)

ENTRY_POINT_GROUP = "aiq.providers"
"""The entry-point group name used for third-party provider discovery."""


@dataclass(frozen=True)
class ProviderMetadata:
    """Registration record of one provider.

    Attributes:
        identifier: Lowercase key matched against ``provider.name``.
        display_name: Human-readable name (e.g. ``"Gemini"``).
        default_config: Provider config values applied before the user's.
    """

    identifier: str
    display_name: str
    default_config: dict[str, Any] = field(default_factory=dict)


class ProviderRegistry:
    """Registry and factory for provider implementations.

    Identifiers are case-insensitive. Registering an identifier twice keeps
    the last registration and logs a warning. :meth:`list` returns
    identifiers in registration order.

    Example::

        registry = ProviderRegistry()
        registry.register("gemini", GeminiProvider, "Gemini", GEMINI_DEFAULT_CONFIG)
        provider = registry.get("gemini", {"apiKey": "..."})
    """

    def __init__(self) -> None:
        self._classes: dict[str, type[Provider]] = {}
        self._metadata: dict[str, ProviderMetadata] = {}

    def register(
        self,
        identifier: str,
        provider_cls: type[Provider],
        display_name: Optional[str] = None,
        default_config: Optional[Mapping[str, Any]] = None,
    ) -> None:
        """Register *provider_cls* under *identifier*.

        Args:
            identifier: Provider key; stored lowercase.
            provider_cls: Concrete :class:`~aiq.providers.base.Provider`
                subclass.
            display_name: Human-readable name; defaults to *identifier*.
            default_config: Config values merged under the user's config.
        """
        key = identifier.lower()
        if key in self._classes:
            logger.warning("Provider '%s' is already registered. Overwriting.", key)

        defaults = dict(default_config or {})
        defaults["name"] = key
        self._classes[key] = provider_cls
        self._metadata[key] = ProviderMetadata(
            identifier=key,
            display_name=display_name or identifier,
            default_config=defaults,
        )
        logger.debug("Registered provider '%s' (%s)", key, provider_cls.__name__)

    def get(
        self,
        identifier: str,
        config: Union[ProviderConfig, Mapping[str, Any], None] = None,
    ) -> Provider:
        """Construct the provider registered under *identifier*.

        The effective config is the registered default config, overlaid with
        *config*, overlaid with ``name=identifier``; later sources win.

        Raises:
            ProviderNotFoundError: If *identifier* is not registered. The
                message lists every registered identifier.
        """
        key = identifier.lower()
        provider_cls = self._classes.get(key)
        if provider_cls is None:
            available = ", ".join(self._classes) or "none"
            raise ProviderNotFoundError(
                f'Provider "{identifier}" not found. Available providers: {available}',
                hint="Set provider.name in your config to one of the available providers",
            )

        if isinstance(config, ProviderConfig):
            overrides = config.model_dump(by_alias=True)
        else:
            overrides = dict(config or {})

        metadata = self._metadata[key]
        merged = {**metadata.default_config, **overrides, "name": key}
        return provider_cls(merged, display_name=metadata.display_name)

    def get_class(self, identifier: str) -> Optional[type[Provider]]:
        """Return the registered class for *identifier*, or ``None``."""
        return self._classes.get(identifier.lower())

    def get_metadata(self, identifier: str) -> Optional[ProviderMetadata]:
        """Return the registration record for *identifier*, or ``None``."""
        return self._metadata.get(identifier.lower())

    def has(self, identifier: str) -> bool:
        """Whether *identifier* is registered."""
        return identifier.lower() in self._classes

    def list(self) -> list[str]:
        """Return registered identifiers in registration order."""
        return list(self._classes)

    def clear(self) -> None:
        """Remove every registration."""
        self._classes.clear()
        self._metadata.clear()


# ------------------------------------------------------------------ #
# Start-up registration
# ------------------------------------------------------------------ #


def register_builtin_providers(registry: ProviderRegistry) -> None:
    """Register the backends shipped with aiq.

    - ``gemini`` -- Google Gemini ``generateContent`` HTTP JSON API.
    """
    from aiq.providers.gemini import GEMINI_DEFAULT_CONFIG, GeminiProvider

    registry.register("gemini", GeminiProvider, "Gemini", GEMINI_DEFAULT_CONFIG)


def discover_providers(
    registry: ProviderRegistry,
    disabled: Iterable[str] = (),
) -> list[str]:
    """Register third-party providers from the ``aiq.providers`` entry points.

    Each entry point must load to a callable accepting the registry. Entry
    points named in *disabled* are skipped; ones that fail to load are
    logged and skipped so a broken plugin never blocks built-in backends.

    Returns:
        Names of the entry points that were loaded.
    """
    loaded: list[str] = []
    disabled_set = set(disabled)

    for ep in importlib.metadata.entry_points(group=ENTRY_POINT_GROUP):
        if ep.name in disabled_set:
            logger.debug("Provider plugin '%s' is disabled, skipping", ep.name)
            continue
        try:
            register = ep.load()
            register(registry)
            loaded.append(ep.name)
        except Exception as exc:
            logger.warning("Failed to load provider plugin '%s': %s", ep.name, exc)

    return loaded


def resolve_provider(
    config: ProviderConfig,
    registry: Optional[ProviderRegistry] = None,
) -> Provider:
    """Construct the configured provider and validate its config.

    Args:
        config: The ``provider`` section of the loaded configuration.
        registry: Registry to look in; defaults to :func:`get_registry`.

    Returns:
        A provider ready for :meth:`~aiq.providers.base.Provider.execute_prompt`.

    Raises:
        ProviderNotFoundError: If ``config.name`` is not registered.
        ConfigError: If the backend rejects its config.
    """
    registry = registry or get_registry()
    provider = registry.get(config.name, config)
    provider.validate_config()
    return provider


# ------------------------------------------------------------------ #
# Process-wide instance
# ------------------------------------------------------------------ #

_registry: Optional[ProviderRegistry] = None


def get_registry() -> ProviderRegistry:
    """Return the process-wide :class:`ProviderRegistry`, creating an empty one lazily."""
    global _registry
    if _registry is None:
        _registry = ProviderRegistry()
    return _registry


def set_registry(registry: ProviderRegistry) -> None:
    """Install *registry* as the process-wide instance."""
    global _registry
    _registry = registry


def reset_registry() -> None:
    """Drop the process-wide instance. Primarily useful in test suites."""
    global _registry
    _registry = None
