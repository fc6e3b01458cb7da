"""Numeric process exit codes following `clig.dev <https://clig.dev/>`_ conventions.

Each constant maps to an error category and is referenced by the matching
:class:`~aiq.exceptions.AiqError` subclass. Shell wrappers can branch on
the exit code without parsing stderr.

Example::

    $ aiq summarize notes.txt
    $ echo $?
    7   # EXIT_RATE_LIMITED -- the provider asked us to slow down
"""

EXIT_SUCCESS = 0
"""The command completed successfully."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred (also used for configuration problems)."""

EXIT_INVALID_USAGE = 2
"""Missing input, missing or invalid parameters, or unknown CLI options."""

EXIT_AUTH_FAILURE = 3
"""The provider rejected the credential (HTTP 401/403)."""

EXIT_NOT_FOUND = 4
"""A command or model could not be found."""

EXIT_SERVER_ERROR = 5
"""The provider returned an HTTP 5xx error."""

EXIT_CONNECTION_ERROR = 6
"""A network-level error occurred (timeout, DNS failure, connection refused)."""

EXIT_RATE_LIMITED = 7
"""The provider rate-limited the request (HTTP 429)."""

EXIT_PROVIDER_ERROR = 10
"""A provider could not be resolved or returned an unusable response."""

EXIT_INTERRUPTED = 130
"""The user pressed Ctrl-C."""
