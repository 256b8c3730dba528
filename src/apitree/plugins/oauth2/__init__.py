"""OAuth 2.0 bearer token channel.

Serves the ``oauth2`` channel for ``"OAuth 2.0"`` security schemes. Tokens
are obtained elsewhere -- by :mod:`apitree.plugins.oauth2_auth_code`, the
credential store, or the caller -- and sent as an ``Authorization`` header.

See Also:
    :class:`~apitree.plugins.oauth2.plugin.OAuth2Plugin`
"""

from apitree.plugins.oauth2.plugin import OAuth2Plugin

__all__ = ["OAuth2Plugin"]
