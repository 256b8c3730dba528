"""OAuth 1.0 request signing plugin.

This module provides :class:`OAuth1Plugin`, the ``oauth1`` channel. It signs
each request per :rfc:`5849` and sends the protocol parameters in an
``Authorization: OAuth ...`` header.

The stored credential is a mapping::

    {
        "consumer_key": "...",
        "consumer_secret": "...",
        "token": "...",             # optional
        "token_secret": "...",      # optional
        "signature_method": "HMAC-SHA1",   # or "PLAINTEXT"
    }

The signature base string covers the method, the normalised URL, the query
parameters, and -- for ``application/x-www-form-urlencoded`` string bodies --
the form parameters.
"""

from __future__ import annotations

import base64
import hashlib
import hmac
import secrets
import time
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any, Callable, Optional
from urllib.parse import parse_qsl, quote, urlsplit, urlunsplit

from apitree.auth.base import AuthPlugin
from apitree.client.codecs import URLENCODED, find_header, get_mime, set_header
from apitree.exceptions import AuthError

if TYPE_CHECKING:
    from apitree.client.dispatch import DispatchOptions

SIGNATURE_METHODS = ("HMAC-SHA1", "PLAINTEXT")
_DEFAULT_PORTS = {"http": 80, "https": 443}


def percent_encode(value: str) -> str:
    """RFC 3986 percent-encoding, as required by RFC 5849 section 3.6."""
    return quote(value, safe="~")


def normalize_url(url: str) -> str:
    """Base string URI: lower-case scheme and host, no default port, no query."""
    parts = urlsplit(url)
    scheme = parts.scheme.lower()
    host = (parts.hostname or "").lower()
    if parts.port is not None and parts.port != _DEFAULT_PORTS.get(scheme):
        host = f"{host}:{parts.port}"
    return urlunsplit((scheme, host, parts.path or "/", "", ""))


def normalize_parameters(params: list[tuple[str, str]]) -> str:
    encoded = sorted((percent_encode(k), percent_encode(v)) for k, v in params)
    return "&".join(f"{k}={v}" for k, v in encoded)


def signature_base_string(method: str, url: str, params: list[tuple[str, str]]) -> str:
    return "&".join(
        percent_encode(part)
        for part in (method.upper(), normalize_url(url), normalize_parameters(params))
    )


def sign(
    base_string: str,
    consumer_secret: str,
    token_secret: str = "",
    method: str = "HMAC-SHA1",
) -> str:
    key = f"{percent_encode(consumer_secret)}&{percent_encode(token_secret)}"
    if method == "PLAINTEXT":
        return key
    digest = hmac.new(key.encode("utf-8"), base_string.encode("utf-8"), hashlib.sha1).digest()
    return base64.b64encode(digest).decode("ascii")


class OAuth1Plugin(AuthPlugin):
    """Sign requests with OAuth 1.0.

    Args:
        nonce_factory: Returns a fresh ``oauth_nonce``.
        clock: Returns the current UNIX time in seconds.
    """

    def __init__(
        self,
        nonce_factory: Optional[Callable[[], str]] = None,
        clock: Optional[Callable[[], float]] = None,
    ) -> None:
        self._nonce_factory = nonce_factory or (lambda: secrets.token_hex(16))
        self._clock = clock or time.time

    @property
    def channel(self) -> str:
        return "oauth1"

    @property
    def scheme_types(self) -> tuple[str, ...]:
        return ("OAuth 1.0",)

    def validate_credential(self, credential: Any) -> list[str]:
        if not isinstance(credential, Mapping):
            return ["OAuth 1.0 credential must be a mapping of keys and secrets"]
        errors = [
            f"OAuth 1.0 requires '{field}'"
            for field in ("consumer_key", "consumer_secret")
            if not credential.get(field)
        ]
        method = credential.get("signature_method", "HMAC-SHA1")
        if method not in SIGNATURE_METHODS:
            errors.append(
                f"Unsupported OAuth 1.0 signature method '{method}' "
                f"(supported: {', '.join(SIGNATURE_METHODS)})"
            )
        return errors

    def oauth_parameters(self, credential: Mapping[str, Any]) -> dict[str, str]:
        params = {
            "oauth_consumer_key": str(credential["consumer_key"]),
            "oauth_nonce": self._nonce_factory(),
            "oauth_signature_method": credential.get("signature_method", "HMAC-SHA1"),
            "oauth_timestamp": str(int(self._clock())),
            "oauth_version": "1.0",
        }
        if credential.get("token"):
            params["oauth_token"] = str(credential["token"])
        return params

    def apply(self, options: DispatchOptions, credential: Any) -> DispatchOptions:
        if not isinstance(credential, Mapping):
            raise AuthError("OAuth 1.0 credential must be a mapping")

        oauth = self.oauth_parameters(credential)
        params = list(oauth.items())
        params.extend(parse_qsl(urlsplit(options.url).query, keep_blank_values=True))
        content_type = get_mime(find_header(options.headers, "content-type"))
        if content_type == URLENCODED and isinstance(options.data, str):
            params.extend(parse_qsl(options.data, keep_blank_values=True))

        base_string = signature_base_string(options.method, options.url, params)
        oauth["oauth_signature"] = sign(
            base_string,
            str(credential["consumer_secret"]),
            str(credential.get("token_secret") or ""),
            oauth["oauth_signature_method"],
        )
        set_header(
            options.headers,
            "Authorization",
            "OAuth " + ", ".join(
                f'{percent_encode(k)}="{percent_encode(v)}"' for k, v in sorted(oauth.items())
            ),
        )
        return options
