"""Abstract base class for text-generation providers.

This module defines the two foundational types of the provider subsystem:

- :class:`InitQuestion` -- a plain description of one interactive setup
  question, rendered by ``aiq config init``.
- :class:`Provider` -- the capability every backend must implement.

To add a backend, subclass :class:`Provider`, point :attr:`Provider.config_model`
at a :class:`~aiq.models.ProviderConfig` subclass describing its fields, and
implement the four abstract operations. Then register the class with
:class:`~aiq.providers.registry.ProviderRegistry` under an identifier; the
runner and the renderer never look at the concrete class.

See Also:
    :mod:`aiq.providers.registry` for registration and lookup.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Callable, ClassVar, Mapping, Optional, Union

from pydantic import ValidationError

from aiq.exceptions import ConfigError
from aiq.models import ProviderConfig


@dataclass
class InitQuestion:
    """One interactive question asked while creating the configuration.

    Attributes:
        name: Provider config key the answer is stored under.
        message: Prompt text shown to the user.
        kind: ``"input"``, ``"select"``, or ``"confirm"``.
        choices: ``(label, value)`` pairs for ``"select"`` questions.
        default: Pre-filled answer.
        secret: Hide the answer while typing.
        validate: Returns ``True`` when the answer is acceptable, or an
            error message to show before asking again.
    """

    name: str
    message: str
    kind: str = "input"
    choices: list[tuple[str, str]] = field(default_factory=list)
    default: Any = None
    secret: bool = False
    validate: Optional[Callable[[str], Union[bool, str]]] = None


class Provider(ABC):
    """Abstract base class for text-generation backends.

    A provider is constructed from a provider config mapping (already merged
    with its registered defaults by the registry) and exposes exactly four
    operations: :meth:`execute_prompt`, :meth:`validate_config`,
    :meth:`validate_connection`, and :meth:`get_init_questions`.

    Args:
        config: Provider config values keyed as in the JSON document.
        display_name: Human-readable backend name used in progress messages.

    Raises:
        ConfigError: If *config* does not match :attr:`config_model`.
    """

    config_model: ClassVar[type[ProviderConfig]] = ProviderConfig

    def __init__(self, config: Mapping[str, Any], display_name: Optional[str] = None) -> None:
        try:
            self.config = self.config_model.model_validate(dict(config))
        except ValidationError as exc:
            raise ConfigError(
                f"Invalid configuration for provider '{config.get('name')}': {exc}",
                hint="Check the provider section of your config file",
            ) from exc
        self.display_name = display_name or self.config.name

    @property
    def name(self) -> str:
        """The identifier this provider was registered under."""
        return self.config.name

    @abstractmethod
    def execute_prompt(self, prompt: str) -> str:
        """Send *prompt* to the backend and return the response text.

        Raises:
            ProviderError: On transport failure, a non-success status, or a
                malformed response payload.
        """
        ...

    @abstractmethod
    def validate_config(self) -> None:
        """Check required fields before any network call.

        Raises:
            ConfigError: If a required field is missing or still holds an
                unresolved ``${VAR}`` token.
        """
        ...

    @abstractmethod
    def validate_connection(self) -> bool:
        """Perform a minimal real round-trip to confirm the backend is usable.

        Returns:
            ``True`` when the round-trip succeeded, ``False`` for soft
            failures the caller should treat as "unverified".

        Raises:
            AiqError: For structured failures (bad key, unknown model, ...).
        """
        ...

    @abstractmethod
    def get_init_questions(self) -> list[InitQuestion]:
        """Return the setup questions ``aiq config init`` should ask."""
        ...

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__}(name={self.name!r})>"
