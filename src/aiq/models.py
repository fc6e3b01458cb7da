"""Canonical Pydantic models shared across all aiq modules.

This is the single source of truth for data shapes in the project. The
models mirror the persisted JSON documents:

**Configuration document** -- ``config.json`` in the user's config directory:
    :class:`ParamDef`, :class:`CommandDef`, :class:`ProviderConfig`,
    :class:`HistoryConfig`, and :class:`Config`.

**History log** -- one :class:`HistoryEntry` per executed command.

The persisted documents use camelCase keys (``maxEntries``, ``apiKey``);
the Python attributes are snake_case and the mapping is done with field
aliases. Models are dumped with ``by_alias=True`` so files round-trip.
"""

from __future__ import annotations

import enum
import math
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


_COMMAND_NAME_PATTERN = r"^[a-z0-9]+(?:-[a-z0-9]+)*$"


# --- Commands ---


class ParamType(str, enum.Enum):
    """Value types a command parameter can declare."""

    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"


def parse_number(value: Any) -> int | float:
    """Parse *value* as a number, preferring ``int`` when it is integral text.

    Raises:
        ValueError: If *value* is not numeric (``NaN`` counts as non-numeric).
    """
    if isinstance(value, bool):
        raise ValueError(f"not a number: {value!r}")
    if isinstance(value, (int, float)):
        number: int | float = value
    else:
        text = str(value).strip()
        try:
            number = int(text)
        except ValueError:
            number = float(text)
    if isinstance(number, float) and math.isnan(number):
        raise ValueError(f"not a number: {value!r}")
    return number


def format_value(value: Any) -> str:
    """Render a parameter value the way it appears in a prompt.

    Booleans become ``true``/``false`` and integral floats lose their
    fractional part, so ``50.0`` renders as ``50``.
    """
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


class ParamDef(BaseModel):
    """Schema for one named parameter of a :class:`CommandDef`.

    Example::

        ParamDef(type="number", default=50, alias="w",
                 description="Maximum words for summary")
    """

    type: ParamType
    default: Any = None
    alias: Optional[str] = Field(
        default=None, description="Single-letter short flag, e.g. 'w' for -w"
    )
    required: bool = False
    description: Optional[str] = None
    choices: Optional[list[str]] = Field(
        default=None, description="Allowed values, compared as strings"
    )

    @field_validator("alias")
    @classmethod
    def _single_letter_alias(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and (len(value) != 1 or not value.isalpha()):
            raise ValueError(f"alias must be a single letter, got '{value}'")
        return value

    @field_validator("choices", mode="before")
    @classmethod
    def _stringify_choices(cls, value: Any) -> Any:
        if isinstance(value, list):
            return [str(choice) for choice in value]
        return value

    @model_validator(mode="after")
    def _numeric_choices(self) -> ParamDef:
        if self.type == ParamType.NUMBER and self.choices:
            normalized = []
            for choice in self.choices:
                try:
                    normalized.append(format_value(parse_number(choice)))
                except ValueError:
                    raise ValueError(
                        f"choices for a number parameter must all be numbers, got '{choice}'"
                    ) from None
            self.choices = normalized
        return self


class CommandDef(BaseModel):
    """A named, reusable prompt template plus its parameter schema."""

    name: str = Field(pattern=_COMMAND_NAME_PATTERN, description="Lowercase-kebab key")
    description: Optional[str] = None
    prompt: str = Field(min_length=1, description="Template with {placeholders}")
    params: dict[str, ParamDef] = Field(default_factory=dict)


# --- Provider ---


class ProviderConfig(BaseModel):
    """Provider section of the configuration document.

    Only ``name`` is common to every backend; it selects the registered
    implementation. Backend-specific keys (``apiKey``, ``model``, ...) are
    preserved in ``model_extra`` and validated by the backend itself, see
    :class:`~aiq.providers.gemini.GeminiConfig`.
    """

    model_config = ConfigDict(extra="allow")

    name: str = Field(min_length=1, description="Registered provider identifier")


# --- History ---


class HistoryConfig(BaseModel):
    """History log settings stored in :class:`Config`."""

    model_config = ConfigDict(populate_by_name=True)

    enabled: bool = True
    max_entries: int = Field(default=100, ge=1, alias="maxEntries")
    location: Optional[str] = Field(
        default=None,
        description="Path to the history JSON file; ${VAR} and ~ are expanded. "
        "Defaults to history.json in the data directory.",
    )


class HistoryEntry(BaseModel):
    """One recorded exchange: the rendered prompt and the provider's response."""

    id: str
    timestamp: int = Field(description="Epoch milliseconds")
    command: str
    params: dict[str, Any] = Field(default_factory=dict)
    prompt: str
    response: str
    duration: int = Field(description="Provider round-trip in milliseconds")


# --- Top-level document ---


class Config(BaseModel):
    """The whole configuration document persisted as ``config.json``.

    Loaded once per process by :func:`~aiq.config.load_config` and passed
    explicitly to :class:`~aiq.runner.CommandRunner` and
    :func:`~aiq.providers.registry.resolve_provider`.
    """

    version: str = "1.0"
    provider: ProviderConfig
    editor: Optional[str] = None
    commands: list[CommandDef] = Field(default_factory=list)
    history: Optional[HistoryConfig] = None

    @model_validator(mode="after")
    def _unique_command_names(self) -> Config:
        seen: set[str] = set()
        for command in self.commands:
            if command.name in seen:
                raise ValueError(f"Duplicate command name: {command.name}")
            seen.add(command.name)
        return self

    def get_command(self, name: str) -> Optional[CommandDef]:
        """Return the command called *name*, or ``None``."""
        for command in self.commands:
            if command.name == name:
                return command
        return None
