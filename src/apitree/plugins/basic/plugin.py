"""HTTP Basic authentication plugin.

This module provides :class:`BasicAuthPlugin`, the ``basicAuth`` channel.
The stored credential is either a ``{"username": ..., "password": ...}``
mapping or a ``"username:password"`` string. The pair is Base64-encoded and
sent as an ``Authorization: Basic <encoded>`` header per :rfc:`7617`.

See Also:
    :class:`apitree.auth.base.AuthPlugin` for the base interface.
"""

from __future__ import annotations

import base64
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from apitree.auth.base import AuthPlugin
from apitree.client.codecs import set_header
from apitree.exceptions import AuthError

if TYPE_CHECKING:
    from apitree.client.dispatch import DispatchOptions


def _pair(credential: Any) -> str:
    if isinstance(credential, Mapping):
        return f"{credential.get('username', '')}:{credential.get('password', '')}"
    return str(credential)


class BasicAuthPlugin(AuthPlugin):
    """Sign requests with HTTP Basic authentication."""

    @property
    def channel(self) -> str:
        return "basicAuth"

    @property
    def scheme_types(self) -> tuple[str, ...]:
        return ("Basic Authentication",)

    def apply(self, options: DispatchOptions, credential: Any) -> DispatchOptions:
        """Set the ``Authorization: Basic`` header.

        Raises:
            AuthError: If a string credential lacks the ``:`` separator.
        """
        raw = _pair(credential)
        if ":" not in raw:
            raise AuthError(
                "Basic auth credential must be in 'username:password' format "
                "(colon separator is required)"
            )
        encoded = base64.b64encode(raw.encode("utf-8")).decode("ascii")
        set_header(options.headers, "Authorization", f"Basic {encoded}")
        return options

    def validate_credential(self, credential: Any) -> list[str]:
        errors: list[str] = []
        if isinstance(credential, Mapping) and not credential.get("username"):
            errors.append("Basic auth requires a 'username'")
        return errors
