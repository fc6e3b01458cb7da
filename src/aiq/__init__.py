"""aiq -- Run named prompt templates against a text-generation provider.

Users define *commands* (a prompt template plus a parameter schema) in a
JSON config file, then run them from the shell with input from arguments
or stdin. Every exchange is recorded so it can be searched and replayed.

Typical workflow::

    aiq config init                         # write the starter config
    git diff | aiq summarize -w 30          # render, send, record
    aiq history search "docker"             # find an earlier answer

Modules:
    app: Typer application and CLI entry point.
    models: Pydantic models for the config document and history log.
    config: XDG-aware config loading with ${VAR} expansion.
    template: Placeholder rendering and parameter coercion.
    runner: Command execution with dry-run and history recording.
    history: Persistent, capped history log.
    providers: Provider contract, registry, and bundled backends.
    exceptions: Exception hierarchy with exit-code mapping.
    exit_codes: Numeric exit codes following clig.dev conventions.
    output: stdout/stderr formatting system with Rich support.
"""

__version__ = "0.1.0"
