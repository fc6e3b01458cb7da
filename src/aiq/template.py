"""Prompt template rendering and parameter validation.

Templates contain ``{name}`` placeholders. The text between the braces is
used verbatim as the lookup key, so ``{ name }`` looks up ``" name "``.
Nested braces never form a placeholder.

Two operations share that grammar:

* :func:`validate_params` -- enforces required-ness, numeric and boolean
  coercion, and choice constraints, then writes the coerced values back
  into the value map.
* :func:`render` -- substitutes placeholders with an ordered fallback
  (explicit value, declared default, error or empty string) and appends
  the input when the template never references ``{input}``.

Both are pure apart from the documented in-place update in
:func:`validate_params`; neither does any I/O.

Example::

    params = {"maxWords": ParamDef(type="number", default=50)}
    values = {"input": "The quick brown fox..."}
    validate_params(template, values, params)
    prompt = render(template, values, params)
"""

from __future__ import annotations

import re
from typing import Any, Mapping, MutableMapping, Optional

from aiq.exceptions import InvalidUsageError
from aiq.models import ParamDef, ParamType, format_value, parse_number

INPUT_KEY = "input"

_PLACEHOLDER_RE = re.compile(r"\{([^{}]+)\}")
_INPUT_PLACEHOLDER = "{" + INPUT_KEY + "}"


def extract_params(template: str) -> list[str]:
    """Return the distinct placeholder keys of *template* in first-seen order."""
    seen: dict[str, None] = {}
    for match in _PLACEHOLDER_RE.finditer(template):
        seen.setdefault(match.group(1), None)
    return list(seen)


def has_input_placeholder(template: str) -> bool:
    """Whether *template* references ``{input}`` explicitly."""
    return _INPUT_PLACEHOLDER in template


def render(
    template: str,
    values: Mapping[str, Any],
    params: Optional[Mapping[str, ParamDef]] = None,
) -> str:
    """Render *template* against *values* and the parameter definitions.

    Each placeholder resolves, in order, to:

    1. the value in *values* when it is not ``None``;
    2. the parameter's declared ``default``;
    3. for ``{input}``, an :class:`~aiq.exceptions.InvalidUsageError`;
    4. for a ``required`` parameter, an
       :class:`~aiq.exceptions.InvalidUsageError` naming the flag;
    5. the empty string.

    When the template has no ``{input}`` placeholder but an input was
    supplied, the input is appended after a blank line. The result is
    stripped of surrounding whitespace.

    Args:
        template: The command's prompt template.
        values: Parameter values plus the ``input`` key.
        params: Parameter definitions of the command.

    Returns:
        The rendered prompt text.

    Raises:
        InvalidUsageError: On missing input or a missing required parameter.
    """
    params = params or {}

    def _substitute(match: re.Match[str]) -> str:
        key = match.group(1)
        value = values.get(key)
        if value is not None:
            return format_value(value)

        definition = params.get(key)
        if definition is not None and definition.default is not None:
            return format_value(definition.default)

        if key == INPUT_KEY:
            raise InvalidUsageError(
                "No input provided",
                hint="Pass the text as an argument or pipe it on stdin",
            )

        if definition is not None and definition.required:
            raise InvalidUsageError(
                f"Required parameter missing: {key}",
                hint=f"Use --{key} to provide a value",
            )

        return ""

    rendered = _PLACEHOLDER_RE.sub(_substitute, template)

    supplied_input = values.get(INPUT_KEY)
    if supplied_input and not has_input_placeholder(template):
        rendered = f"{rendered.strip()}\n\n{supplied_input}"

    return rendered.strip()


def validate_params(
    template: str,
    values: MutableMapping[str, Any],
    params: Optional[Mapping[str, ParamDef]] = None,
) -> None:
    """Validate and coerce the parameters referenced by *template*.

    Only placeholders with a matching :class:`~aiq.models.ParamDef` are
    checked; free-form placeholders and ``{input}`` are ignored. Number
    parameters are parsed, boolean text is coerced by case-insensitive
    comparison with ``"true"``, and ``choices`` are compared against the
    formatted value.

    Coerced values are written into *values* only after every parameter
    has passed, so a failing call leaves the map untouched.

    Raises:
        InvalidUsageError: On a missing required parameter, a non-numeric
            value for a number parameter, or a value outside ``choices``.
    """
    params = params or {}
    coerced: dict[str, Any] = {}

    for name in extract_params(template):
        if name == INPUT_KEY:
            continue
        definition = params.get(name)
        if definition is None:
            continue

        value = values.get(name)
        if value is None:
            value = definition.default

        if value is None:
            if definition.required:
                raise InvalidUsageError(
                    f"Required parameter missing: {name}",
                    hint=definition.description or f"Provide --{name}",
                )
            continue

        if definition.type == ParamType.NUMBER:
            try:
                value = parse_number(value)
            except ValueError:
                raise InvalidUsageError(
                    f"Parameter '{name}' must be a number",
                    hint=f"You provided: {value}",
                ) from None
            coerced[name] = value
        elif definition.type == ParamType.BOOLEAN and isinstance(value, str):
            value = value.lower() == "true"
            coerced[name] = value

        if definition.choices and format_value(value) not in definition.choices:
            raise InvalidUsageError(
                f"Invalid value for '{name}': {format_value(value)}",
                hint=f"Available choices: {', '.join(definition.choices)}",
            )

    values.update(coerced)
