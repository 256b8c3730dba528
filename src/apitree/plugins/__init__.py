"""Plugin system for apitree -- request middleware and auth channels.

Middleware plugins extend :class:`Plugin` and run on dispatcher channels;
third-party packages can register them under the ``apitree.plugins`` entry
point group. The built-in auth channels (:mod:`~apitree.plugins.basic`,
:mod:`~apitree.plugins.oauth1`, :mod:`~apitree.plugins.oauth2`), the
interactive :mod:`~apitree.plugins.oauth2_auth_code` flow, and the
:mod:`~apitree.plugins.proxy` middleware live in sub-packages.

Key classes:

* :class:`Plugin` -- Abstract base class that all middleware plugins extend.
* :class:`PluginManager` -- Discovers, loads, and installs plugins.
* :class:`HookRunner` -- Executes hooks across plugins in order.

Example:
    Typical usage from the CLI entry point::

        from apitree.plugins import PluginManager

        manager = PluginManager()
        manager.discover(settings)
        dispatcher = create_default_dispatcher(settings, plugin_manager=manager)
"""

from apitree.plugins.base import Plugin
from apitree.plugins.hooks import HookRunner
from apitree.plugins.manager import PluginManager

__all__ = ["Plugin", "HookRunner", "PluginManager"]
