"""Interactive OAuth 2.0 Authorization Code flow with PKCE.

Obtains an access token for an ``"OAuth 2.0"`` security scheme by sending
the user through the provider's authorization page, then stores it in the
compiled client so the ``oauth2`` channel signs subsequent requests.

Exports:
    :class:`OAuth2AuthCodeFlow` -- the flow.
    :class:`AuthAttempt` / :class:`AuthState` -- one run and its states.
    :func:`generate_pkce_pair` -- PKCE ``code_verifier`` / ``code_challenge``.
"""

from apitree.plugins.oauth2_auth_code.plugin import (
    AuthAttempt,
    AuthState,
    OAuth2AuthCodeFlow,
    generate_pkce_pair,
)

__all__ = ["AuthAttempt", "AuthState", "OAuth2AuthCodeFlow", "generate_pkce_pair"]
