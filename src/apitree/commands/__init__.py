"""Built-in CLI sub-commands for apitree.

This package groups all Typer sub-command modules that form the CLI's
top-level command tree:

* :mod:`~apitree.commands.call` -- call a method of a compiled client.
* :mod:`~apitree.commands.inspect` -- print the compiled client tree.
* :mod:`~apitree.commands.auth` -- store, show, and clear credentials.
* :mod:`~apitree.commands.config` -- view and modify local settings.

Each module either exports a :class:`typer.Typer` sub-application (for
multi-command groups like ``auth`` and ``config``) or a plain callback
function registered directly on the root app (for single commands like
``call`` and ``inspect``).
"""
