"""Exception hierarchy for aiq.

Every user-facing failure is an :class:`AiqError`. It carries a short
``message``, an optional actionable ``hint`` and a class-level ``exit_code``
taken from :mod:`aiq.exit_codes`. :func:`aiq.app.main` prints the message and
hint and exits with the code; anything that is not an ``AiqError`` is
treated as unexpected and produces a crash log instead.

Subclass hierarchy::

    AiqError (exit 1)
    +-- InvalidUsageError         (exit 2)
    +-- CommandNotFoundError      (exit 4)
    +-- ConfigError               (exit 1)
    |   +-- ProviderNotFoundError (exit 10)
    +-- HistoryError              (exit 1)
    +-- ProviderError             (exit 10)
        +-- AuthError             (exit 3)
        +-- ModelNotFoundError    (exit 4)
        +-- RateLimitError        (exit 7)
        +-- ServerError           (exit 5)
        +-- ConnectionError_      (exit 6)
        +-- TimeoutError_         (exit 6)
"""

from __future__ import annotations

from typing import Optional

from aiq.exit_codes import (
    EXIT_AUTH_FAILURE,
    EXIT_CONNECTION_ERROR,
    EXIT_GENERIC_FAILURE,
    EXIT_INVALID_USAGE,
    EXIT_NOT_FOUND,
    EXIT_PROVIDER_ERROR,
    EXIT_RATE_LIMITED,
    EXIT_SERVER_ERROR,
)


class AiqError(Exception):
    """Base exception for all user-facing aiq errors.

    Args:
        message: Human-readable error description printed to stderr.
        hint: Optional next step shown below the message.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(
        self,
        message: str,
        hint: Optional[str] = None,
        exit_code: Optional[int] = None,
    ):
        super().__init__(message)
        self.message = message
        self.hint = hint
        if exit_code is not None:
            self.exit_code = exit_code


class InvalidUsageError(AiqError):
    """Raised for missing input, missing or invalid parameters and bad CLI arguments."""

    exit_code = EXIT_INVALID_USAGE


class CommandNotFoundError(AiqError):
    """Raised when a command name is not defined in the configuration."""

    exit_code = EXIT_NOT_FOUND


class ConfigError(AiqError):
    """Raised for configuration problems (missing file, invalid JSON, bad provider config)."""

    exit_code = EXIT_GENERIC_FAILURE


class ProviderNotFoundError(ConfigError):
    """Raised when the configured provider identifier is not registered."""

    exit_code = EXIT_PROVIDER_ERROR


class HistoryError(AiqError):
    """Raised when the history log cannot be read or written."""

    exit_code = EXIT_GENERIC_FAILURE


class ProviderError(AiqError):
    """Raised when a provider call fails or returns an unusable payload."""

    exit_code = EXIT_PROVIDER_ERROR


class AuthError(ProviderError):
    """Raised when the provider rejects the credential (HTTP 401/403)."""

    exit_code = EXIT_AUTH_FAILURE


class ModelNotFoundError(ProviderError):
    """Raised when the provider does not know the configured model (HTTP 404)."""

    exit_code = EXIT_NOT_FOUND


class RateLimitError(ProviderError):
    """Raised when the provider rate-limits the request (HTTP 429)."""

    exit_code = EXIT_RATE_LIMITED


class ServerError(ProviderError):
    """Raised when the provider returns an HTTP 5xx error."""

    exit_code = EXIT_SERVER_ERROR


class ConnectionError_(ProviderError):
    """Raised when the provider cannot be reached (connection refused, DNS failure).

    Named with a trailing underscore to avoid shadowing the built-in
    ``ConnectionError``.
    """

    exit_code = EXIT_CONNECTION_ERROR


class TimeoutError_(ProviderError):
    """Raised when the transport gives up waiting for the provider.

    Named with a trailing underscore to avoid shadowing the built-in
    ``TimeoutError``.
    """

    exit_code = EXIT_CONNECTION_ERROR
