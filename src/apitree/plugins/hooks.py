"""Runner for the middleware hook chain of one dispatch channel.

The hook chain follows a pipeline pattern: each plugin receives the output
of the previous plugin, enabling additive transformations (proxy rewriting,
tracing headers, response inspection).
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import httpx

from apitree.plugins.base import Plugin

if TYPE_CHECKING:
    from apitree.client.dispatch import DispatchOptions

logger = logging.getLogger(__name__)


class HookRunner:
    """Executes plugin hooks in registration order.

    The runner holds an immutable snapshot of the plugin list taken when
    the request started, so a ``use``/``disuse`` during a request does not
    affect it.
    """

    def __init__(self, plugins: list[Plugin]) -> None:
        self._plugins = list(plugins)

    @property
    def plugins(self) -> list[Plugin]:
        return list(self._plugins)

    def run_pre_request(self, options: DispatchOptions) -> DispatchOptions:
        """Execute ``on_pre_request`` hooks; each may replace the options."""
        for plugin in self._plugins:
            result = plugin.on_pre_request(options)
            if result is not None:
                options = result
        return options

    def run_post_response(
        self, options: DispatchOptions, response: httpx.Response
    ) -> httpx.Response:
        """Execute ``on_post_response`` hooks; each may replace the response."""
        for plugin in self._plugins:
            response = plugin.on_post_response(options, response)
        return response

    def run_error(self, error: Exception) -> None:
        """Execute ``on_error`` hooks across all plugins.

        A plugin whose error handler itself raises is logged and skipped so
        that the original failure still reaches the caller.
        """
        for plugin in self._plugins:
            try:
                plugin.on_error(error)
            except Exception as exc:
                logger.debug("Error hook of plugin '%s' failed: %s", plugin.name, exc)
