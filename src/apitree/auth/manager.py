"""Auth manager -- registry of auth plugins and their dispatch channels.

The :class:`AuthManager` maps auth channel names (``"basicAuth"``,
``"oauth1"``, ``"oauth2"``) to :class:`~apitree.auth.base.AuthPlugin`
instances. :meth:`AuthManager.install` wires each plugin into a
:class:`~apitree.client.dispatch.Dispatcher` as the core handler of
``request:<channel>`` and publishes the scheme-type-to-channel table the
request executors select from.

For most use cases, call :func:`create_default_manager` to get a manager
pre-loaded with every built-in plugin.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import httpx

from apitree.auth.base import AuthPlugin
from apitree.exceptions import AuthError, ConfigurationError

if TYPE_CHECKING:
    from apitree.client.dispatch import Dispatcher, DispatchOptions

logger = logging.getLogger(__name__)


class AuthChannel:
    """Core handler that signs a request with its plugin, then forwards it.

    The credential is taken from ``options.auth[plugin.channel]``, where the
    request executor placed it. The signed request continues through the
    dispatcher's ``request`` stack to the transport.
    """

    def __init__(self, plugin: AuthPlugin, dispatcher: Dispatcher) -> None:
        self.plugin = plugin
        self._dispatcher = dispatcher

    def _sign(self, options: DispatchOptions) -> DispatchOptions:
        channel = self.plugin.channel
        if channel not in options.auth:
            raise ConfigurationError(f"No credential attached for auth channel '{channel}'")
        credential = options.auth[channel]
        problems = self.plugin.validate_credential(credential)
        if problems:
            raise ConfigurationError(
                f"Invalid credential for auth channel '{channel}': " + "; ".join(problems)
            )
        logger.debug("Signing %s %s via '%s'", options.method.upper(), options.url, channel)
        return self.plugin.apply(options, credential)

    def send(self, options: DispatchOptions) -> httpx.Response:
        return self._dispatcher.forward(self._sign(options))

    async def asend(self, options: DispatchOptions) -> httpx.Response:
        return await self._dispatcher.aforward(self._sign(options))


class AuthManager:
    """Registry of authentication plugins keyed by channel.

    Example::

        from apitree.auth import AuthManager
        from apitree.plugins.basic import BasicAuthPlugin

        manager = AuthManager()
        manager.register(BasicAuthPlugin())
        manager.install(dispatcher)
    """

    def __init__(self) -> None:
        self._plugins: dict[str, AuthPlugin] = {}

    def register(self, plugin: AuthPlugin) -> None:
        """Register *plugin*, replacing any plugin on the same channel."""
        self._plugins[plugin.channel] = plugin

    def get_plugin(self, channel: str) -> AuthPlugin:
        """Retrieve the plugin serving *channel*.

        Raises:
            AuthError: If no plugin is registered for *channel*.
        """
        plugin = self._plugins.get(channel)
        if plugin is None:
            available = ", ".join(sorted(self._plugins)) or "(none)"
            raise AuthError(
                f"No auth plugin registered for channel '{channel}'. "
                f"Available channels: {available}"
            )
        return plugin

    def list_channels(self) -> list[str]:
        return sorted(self._plugins)

    def scheme_channels(self) -> dict[str, str]:
        """Map each handled security scheme type to its channel."""
        table: dict[str, str] = {}
        for plugin in self._plugins.values():
            for scheme_type in plugin.scheme_types:
                table[scheme_type] = plugin.channel
        return table

    def install(self, dispatcher: Dispatcher) -> None:
        """Register every plugin as a ``request:<channel>`` core handler."""
        for channel, plugin in self._plugins.items():
            dispatcher.core(f"request:{channel}", AuthChannel(plugin, dispatcher))
        dispatcher.scheme_channels.update(self.scheme_channels())


def create_default_manager() -> AuthManager:
    """Create an :class:`AuthManager` pre-loaded with all built-in plugins.

    - ``basicAuth`` -- ``"Basic Authentication"``.
    - ``oauth1`` -- ``"OAuth 1.0"`` request signing.
    - ``oauth2`` -- ``"OAuth 2.0"`` bearer tokens.
    """
    from apitree.plugins.basic import BasicAuthPlugin
    from apitree.plugins.oauth1 import OAuth1Plugin
    from apitree.plugins.oauth2 import OAuth2Plugin

    manager = AuthManager()
    manager.register(OAuth1Plugin())
    manager.register(OAuth2Plugin())
    manager.register(BasicAuthPlugin())
    return manager
