"""Plugin-based authentication for compiled clients.

Requests to secured resources are signed by an auth channel chosen at call
time from the declared ``securedBy`` schemes and the credentials stored on the
client (see :mod:`apitree.auth.selection`).

The main entry points are:

- :class:`AuthPlugin` -- abstract base class for auth channels.
- :class:`AuthManager` -- registry that installs auth channels on a
  :class:`~apitree.client.dispatch.Dispatcher`.
- :func:`create_default_manager` -- factory pre-loaded with Basic, OAuth 1.0
  and OAuth 2.0.
- :class:`CredentialStore` -- persistent, per-API credential storage on disk.

Typical usage::

    client = generate_client(ast)
    client._client.authenticate("OAuth 2.0", "access-token")
    client.me.get()      # sent via request:oauth2
"""

from apitree.auth.base import AuthPlugin
from apitree.auth.credential_store import CredentialEntry, CredentialStore, api_slug
from apitree.auth.manager import AuthChannel, AuthManager, create_default_manager
from apitree.auth.selection import (
    SCHEME_CHANNELS,
    AuthSelectionMiss,
    SchemeSelection,
    select_security_scheme,
)

__all__ = [
    "AuthPlugin",
    "AuthChannel",
    "AuthManager",
    "AuthSelectionMiss",
    "CredentialEntry",
    "CredentialStore",
    "SCHEME_CHANNELS",
    "SchemeSelection",
    "api_slug",
    "create_default_manager",
    "select_security_scheme",
]
