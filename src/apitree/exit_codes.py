"""Numeric process exit codes following `clig.dev <https://clig.dev/>`_ conventions.

Each constant maps to a specific error category and is referenced by the
corresponding :class:`~apitree.exceptions.ApiTreeError` subclass.
External tooling (CI scripts, shell wrappers) can inspect the exit code to
determine the failure class without parsing stderr.

Example::

    $ apitree call api.json "items.json" get
    $ echo $?
    9   # EXIT_RESPONSE_PARSE_ERROR -- the body did not match its content type
"""

EXIT_SUCCESS = 0
"""The command completed successfully."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_INVALID_USAGE = 2
"""The command was invoked with invalid arguments or too many template values."""

EXIT_AUTH_FAILURE = 3
"""An authentication flow failed or was cancelled."""

EXIT_TRANSPORT_ERROR = 6
"""The transport layer failed (timeout, DNS failure, connection refused)."""

EXIT_CONFIGURATION_ERROR = 7
"""The API description or the local configuration is malformed."""

EXIT_SERIALIZATION_ERROR = 8
"""The request body could not be encoded for its content type."""

EXIT_RESPONSE_PARSE_ERROR = 9
"""The response body did not decode according to its content type."""

EXIT_PLUGIN_ERROR = 10
"""A plugin failed to load, initialise, or execute."""
