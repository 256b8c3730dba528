"""Exception hierarchy for apitree.

All exceptions inherit from :class:`ApiTreeError`, which carries an
``exit_code`` attribute mapped to a constant from :mod:`apitree.exit_codes`.
The top-level error handler in :func:`apitree.app.main` catches
``ApiTreeError`` and exits with the appropriate code, while unexpected
exceptions produce a crash log and exit with :data:`EXIT_GENERIC_FAILURE`.

Synchronous client calls raise these directly; calls made with a completion
callback deliver them through the callback's error slot instead.

Subclass hierarchy::

    ApiTreeError (exit 1)
    +-- ValidationError      (exit 2)
    +-- AuthError            (exit 3)
    +-- TransportError       (exit 6)
    +-- ConfigurationError   (exit 7)
    +-- SerializationError   (exit 8)
    +-- ResponseParseError   (exit 9)
    +-- PluginError          (exit 10)

Choosing *no* security scheme is not an error; see
:class:`apitree.auth.selection.AuthSelectionMiss`.
"""

from apitree.exit_codes import (
    EXIT_AUTH_FAILURE,
    EXIT_CONFIGURATION_ERROR,
    EXIT_GENERIC_FAILURE,
    EXIT_INVALID_USAGE,
    EXIT_PLUGIN_ERROR,
    EXIT_RESPONSE_PARSE_ERROR,
    EXIT_SERIALIZATION_ERROR,
    EXIT_TRANSPORT_ERROR,
)


class ApiTreeError(Exception):
    """Base exception for all apitree errors.

    Every subclass sets a class-level ``exit_code`` corresponding to one of
    the constants in :mod:`apitree.exit_codes`. The entry point catches
    this exception type and calls ``sys.exit(exc.exit_code)``.

    Args:
        message: Human-readable error description printed to stderr.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class ValidationError(ApiTreeError):
    """Raised when a call does not match its declared shape (e.g. too many path arguments)."""

    exit_code = EXIT_INVALID_USAGE


class AuthError(ApiTreeError):
    """Raised when an authentication flow fails, is cancelled, or times out."""

    exit_code = EXIT_AUTH_FAILURE


class TransportError(ApiTreeError):
    """Raised on transport-level failures (timeout, DNS resolution, connection refused).

    The original transport exception is kept as ``__cause__``.
    """

    exit_code = EXIT_TRANSPORT_ERROR


class ConfigurationError(ApiTreeError):
    """Raised for a malformed API description or invalid local settings."""

    exit_code = EXIT_CONFIGURATION_ERROR


class SerializationError(ApiTreeError):
    """Raised when a request body cannot be encoded for the resolved content type."""

    exit_code = EXIT_SERIALIZATION_ERROR


class ResponseParseError(ApiTreeError):
    """Raised when a response body does not decode per its declared content type."""

    exit_code = EXIT_RESPONSE_PARSE_ERROR


class PluginError(ApiTreeError):
    """Raised when a plugin fails to load, initialise, or execute a hook."""

    exit_code = EXIT_PLUGIN_ERROR
