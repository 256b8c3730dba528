"""HTTP Basic authentication channel.

Serves the ``basicAuth`` channel for ``"Basic Authentication"`` security
schemes, sending an ``Authorization: Basic`` header per :rfc:`7617`.

See Also:
    :class:`~apitree.plugins.basic.plugin.BasicAuthPlugin`
    :mod:`apitree.auth.base` for the plugin interface contract.
"""

from apitree.plugins.basic.plugin import BasicAuthPlugin

__all__ = ["BasicAuthPlugin"]
