"""Pick the security scheme a request is sent with.

The candidate schemes come from the most specific ``securedBy`` declaration
(method, then resource, then API). Each candidate name is looked up in the
client's declared schemes; the first one whose type has a known auth channel
*and* a stored credential wins.

Not finding one is not an error: the request is then sent unauthenticated,
and the server decides. :func:`select_security_scheme` reports that outcome
as an :class:`AuthSelectionMiss` value, which is falsy.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any, Optional, Union

from apitree.models import ClientMetadata

SCHEME_CHANNELS: dict[str, str] = {
    "OAuth 1.0": "oauth1",
    "OAuth 2.0": "oauth2",
    "Basic Authentication": "basicAuth",
}
"""Built-in security scheme type -> auth channel table."""


@dataclass(frozen=True)
class SchemeSelection:
    scheme_name: str
    scheme_type: str
    channel: str
    credential: Any


@dataclass(frozen=True)
class AuthSelectionMiss:
    """No candidate scheme had both a known channel and a stored credential."""

    considered: tuple[str, ...] = ()
    reason: str = ""

    def __bool__(self) -> bool:
        return False


def secured_by_for(
    method: Optional[Sequence[str]],
    resource: Optional[Sequence[str]],
    api: Sequence[str],
) -> list[str]:
    """The most specific declared ``securedBy`` list."""
    if method is not None:
        return list(method)
    if resource is not None:
        return list(resource)
    return list(api)


def select_security_scheme(
    secured_by: Sequence[str],
    client: ClientMetadata,
    channels: Optional[Mapping[str, str]] = None,
) -> Union[SchemeSelection, AuthSelectionMiss]:
    """Select the first usable scheme of *secured_by*.

    Args:
        secured_by: Candidate scheme names, most preferred first.
        client: Supplies the declared schemes and stored credentials.
        channels: Scheme type -> channel table; :data:`SCHEME_CHANNELS` when
            omitted.
    """
    if channels is None:
        channels = SCHEME_CHANNELS
    if not secured_by:
        return AuthSelectionMiss(reason="no security schemes declared")

    for name in secured_by:
        scheme = client.security_schemes.get(name)
        if scheme is None:
            continue
        channel = channels.get(scheme.type)
        if channel is None:
            continue
        credential = client.authentication.get(scheme.type)
        if credential:
            return SchemeSelection(
                scheme_name=name,
                scheme_type=scheme.type,
                channel=channel,
                credential=credential,
            )
    return AuthSelectionMiss(
        considered=tuple(secured_by),
        reason="no declared scheme has a supported type and a stored credential",
    )
