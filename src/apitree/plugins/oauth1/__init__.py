"""OAuth 1.0 request signing channel (:rfc:`5849`).

See Also:
    :class:`~apitree.plugins.oauth1.plugin.OAuth1Plugin`
"""

from apitree.plugins.oauth1.plugin import OAuth1Plugin

__all__ = ["OAuth1Plugin"]
