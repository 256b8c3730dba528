"""Plugin manager -- discovery, loading, and lifecycle management.

This module contains :class:`PluginManager`, the central coordinator for the
plugin system. It discovers plugins registered as Python entry points,
applies the ``plugins_disabled`` filter from the settings, and installs the
loaded plugins as ``*`` middleware on a
:class:`~apitree.client.dispatch.Dispatcher`.

The entry-point group used for discovery is ``apitree.plugins``.
Third-party packages register plugins by declaring an entry point under this
group in their ``pyproject.toml``::

    [project.entry-points."apitree.plugins"]
    my-plugin = "my_package.plugin:MyPlugin"
"""

from __future__ import annotations

import importlib.metadata
import logging
from typing import TYPE_CHECKING, Optional

from apitree.exceptions import PluginError
from apitree.models import Settings
from apitree.plugins.base import Plugin
from apitree.plugins.hooks import HookRunner

if TYPE_CHECKING:
    from apitree.client.dispatch import Dispatcher

logger = logging.getLogger(__name__)

ENTRY_POINT_GROUP = "apitree.plugins"
"""The entry-point group name used for plugin discovery."""


class PluginManager:
    """Discovers, loads, and manages the lifecycle of apitree plugins.

    Example:
        Typical usage::

            manager = PluginManager()
            loaded = manager.discover(settings)
            manager.install(dispatcher)
    """

    def __init__(self) -> None:
        self._plugins: dict[str, Plugin] = {}
        self._hook_runner: Optional[HookRunner] = None

    # ------------------------------------------------------------------
    # Discovery
    # ------------------------------------------------------------------

    def discover(self, settings: Settings) -> list[str]:
        """Discover and load available plugins via Python entry points.

        Plugins named in ``settings.plugins_disabled`` are skipped. A plugin
        that fails to import or initialise is logged as a warning and
        skipped.

        Returns:
            The names of the plugins that were loaded.
        """
        loaded_names: list[str] = []
        disabled = set(settings.plugins_disabled)

        for ep in importlib.metadata.entry_points().select(group=ENTRY_POINT_GROUP):
            name = ep.name
            if name in disabled:
                logger.debug("Plugin '%s' is disabled, skipping", name)
                continue
            try:
                plugin_cls = ep.load()
                plugin: Plugin = plugin_cls()
                self.load_plugin(name, plugin, settings)
                loaded_names.append(name)
            except Exception as exc:
                logger.warning("Failed to load plugin '%s': %s", name, exc)

        return loaded_names

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    def load_plugin(self, name: str, plugin: Plugin, settings: Settings) -> None:
        """Initialise *plugin* and register it under *name*.

        Raises:
            PluginError: If a plugin with the same *name* is already loaded.
        """
        if name in self._plugins:
            raise PluginError(f"Plugin '{name}' is already loaded")

        plugin.on_init(settings)
        self._plugins[name] = plugin
        self._hook_runner = None
        logger.info("Loaded plugin '%s' v%s", name, plugin.version)

    # ------------------------------------------------------------------
    # Querying
    # ------------------------------------------------------------------

    def get_plugin(self, name: str) -> Plugin:
        """Retrieve a loaded plugin by its registered name.

        Raises:
            PluginError: If no plugin with the given *name* is loaded.
        """
        try:
            return self._plugins[name]
        except KeyError:
            raise PluginError(f"Plugin '{name}' is not loaded") from None

    def list_plugins(self) -> list[dict[str, str]]:
        return [
            {
                "name": plugin.name,
                "version": plugin.version,
                "description": plugin.description,
            }
            for plugin in self._plugins.values()
        ]

    def get_hook_runner(self) -> HookRunner:
        """Return a cached :class:`HookRunner` over all loaded plugins."""
        if self._hook_runner is None:
            self._hook_runner = HookRunner(list(self._plugins.values()))
        return self._hook_runner

    # ------------------------------------------------------------------
    # Installation
    # ------------------------------------------------------------------

    def install(self, dispatcher: Dispatcher, channel: str = "*") -> None:
        """Register every loaded plugin as middleware on *channel*."""
        for plugin in self._plugins.values():
            dispatcher.use(channel, plugin)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def cleanup(self) -> None:
        """Clean up all loaded plugins and reset internal state.

        A plugin whose cleanup raises is logged so the others still run.
        """
        for name, plugin in self._plugins.items():
            try:
                plugin.cleanup()
            except Exception as exc:
                logger.warning("Error cleaning up plugin '%s': %s", name, exc)
        self._plugins.clear()
        self._hook_runner = None
