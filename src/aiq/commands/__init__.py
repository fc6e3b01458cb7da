"""Built-in CLI sub-commands for aiq.

* :mod:`~aiq.commands.run` -- ``run``, ``list`` and ``test``, the commands
  that render and send configured prompts.
* :mod:`~aiq.commands.history` -- the ``history`` group plus ``last`` and
  ``replay``.
* :mod:`~aiq.commands.config` -- create, inspect and validate the
  configuration file.
* :mod:`~aiq.commands.context` -- shared wiring (config, registry, runner).

Each module either exports a :class:`typer.Typer` sub-application (for
multi-command groups like ``history`` and ``config``) or plain callback
functions registered directly on the root app in :mod:`aiq.app`.
"""
