"""Proxy forwarding middleware.

:class:`ProxyPlugin` sends every request to a forwarding endpoint instead of
the API: the target URL is appended to the proxy URL and each request header
is renamed with an ``X-Proxy-`` prefix, so the proxy can replay the original
request. A call opts out with ``{"proxy": False}`` in its options.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

from apitree.models import Settings
from apitree.plugins.base import Plugin

if TYPE_CHECKING:
    from apitree.client.dispatch import DispatchOptions

HEADER_PREFIX = "X-Proxy-"


class ProxyPlugin(Plugin):
    """Rewrite requests to go through *proxy_url*.

    Args:
        proxy_url: Forwarding endpoint. When empty, ``on_init`` takes it from
            ``Settings.proxy_url``; while still empty the plugin is inert.
    """

    def __init__(self, proxy_url: Optional[str] = None) -> None:
        self.proxy_url = proxy_url

    @property
    def name(self) -> str:
        return "proxy"

    @property
    def description(self) -> str:
        return "Forward requests through a proxy endpoint"

    def on_init(self, settings: Settings) -> None:
        if not self.proxy_url:
            self.proxy_url = settings.proxy_url

    def on_pre_request(self, options: DispatchOptions) -> DispatchOptions:
        if not self.proxy_url or options.proxy is False:
            return options
        options.url = f"{self.proxy_url.rstrip('/')}/{options.url}"
        options.headers = {
            f"{HEADER_PREFIX}{name}": value for name, value in options.headers.items()
        }
        return options
