"""Forward every request through a proxy endpoint.

See Also:
    :class:`~apitree.plugins.proxy.plugin.ProxyPlugin`
"""

from apitree.plugins.proxy.plugin import ProxyPlugin

__all__ = ["ProxyPlugin"]
