"""Abstract base class for apitree request middleware plugins.

Every plugin must subclass :class:`Plugin` and implement the :attr:`name`
property. The lifecycle hooks (``on_init``, ``on_pre_request``,
``on_post_response``, ``on_error``, ``cleanup``) are optional -- default
implementations are no-ops so plugins only override what they need.

Plugins run as middleware on a :class:`~apitree.client.dispatch.Dispatcher`
channel. They are registered either directly with
:meth:`~apitree.client.dispatch.Dispatcher.use` or as entry points in the
``apitree.plugins`` group, discovered by
:class:`~apitree.plugins.manager.PluginManager` and installed on the ``*``
channel so they see every request.

Example:
    Minimal plugin implementation::

        class TracePlugin(Plugin):
            @property
            def name(self) -> str:
                return "trace"

            def on_pre_request(self, options):
                options.headers["X-Trace"] = "1"
                return options
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Optional

import httpx

from apitree.models import Settings

if TYPE_CHECKING:
    from apitree.client.dispatch import DispatchOptions


class Plugin(ABC):
    """Base class for all apitree plugins.

    The plugin lifecycle is:

    1. Instantiation -- the :class:`PluginManager` calls the no-arg constructor.
    2. :meth:`on_init` -- called once with the resolved settings.
    3. Hook methods -- called for every request dispatched on the channel the
       plugin is installed on.
    4. :meth:`cleanup` -- called once during shutdown.

    See Also:
        :class:`~apitree.plugins.hooks.HookRunner` for details on how
        hooks are chained across multiple plugins.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Return the unique plugin name used for discovery and logging."""
        ...

    @property
    def version(self) -> str:
        return "0.1.0"

    @property
    def description(self) -> str:
        return ""

    def on_init(self, settings: Settings) -> None:
        """Called once when the plugin is loaded by the :class:`PluginManager`.

        Args:
            settings: The resolved apitree settings.
        """

    def on_pre_request(self, options: DispatchOptions) -> Optional[DispatchOptions]:
        """Called before the channel's core handler sends the request.

        Plugins may mutate *options* in place or return a replacement; the
        result is handed to the next plugin in the chain.

        Args:
            options: The dispatch options (url, method, data, headers, ...).

        Returns:
            The options to continue with, or ``None`` to keep *options*.
        """
        return options

    def on_post_response(
        self, options: DispatchOptions, response: httpx.Response
    ) -> httpx.Response:
        """Called after the core handler returned a response.

        Args:
            options: The options the request was sent with.
            response: The raw transport response.

        Returns:
            The (possibly replaced) response.
        """
        return response

    def on_error(self, error: Exception) -> None:
        """Called when a hook or the core handler raised.

        Exceptions raised inside this method are logged and dropped by the
        :class:`~apitree.plugins.hooks.HookRunner` so that plugin errors
        cannot mask the original failure.
        """

    def cleanup(self) -> None:
        """Called once during shutdown to release plugin resources."""
