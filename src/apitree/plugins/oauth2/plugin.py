"""OAuth 2.0 bearer token plugin.

This module provides :class:`OAuth2Plugin`, the ``oauth2`` channel. The
stored credential is either a bare access token string or a token response
mapping (``{"access_token": ..., "token_type": ...}``). It is sent as an
``Authorization: <token_type> <access_token>`` header, ``Bearer`` by
default.

This plugin does not perform any token exchange or refresh -- it is
intended for tokens that are already available. For interactive token
acquisition see :mod:`apitree.plugins.oauth2_auth_code`.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from apitree.auth.base import AuthPlugin
from apitree.client.codecs import set_header

if TYPE_CHECKING:
    from apitree.client.dispatch import DispatchOptions


class OAuth2Plugin(AuthPlugin):
    """Send an OAuth 2.0 access token in the Authorization header."""

    @property
    def channel(self) -> str:
        return "oauth2"

    @property
    def scheme_types(self) -> tuple[str, ...]:
        return ("OAuth 2.0",)

    def apply(self, options: DispatchOptions, credential: Any) -> DispatchOptions:
        if isinstance(credential, Mapping):
            token = credential["access_token"]
            token_type = credential.get("token_type") or "Bearer"
        else:
            token, token_type = str(credential), "Bearer"
        # Providers answer "bearer"; RFC 6750 spells the scheme "Bearer".
        if token_type.lower() == "bearer":
            token_type = "Bearer"
        set_header(options.headers, "Authorization", f"{token_type} {token}")
        return options

    def validate_credential(self, credential: Any) -> list[str]:
        errors: list[str] = []
        if isinstance(credential, Mapping) and not credential.get("access_token"):
            errors.append("OAuth 2.0 token response is missing 'access_token'")
        return errors
