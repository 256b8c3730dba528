"""Named dispatch channels with middleware stacks.

Every request executor hands its prepared :class:`DispatchOptions` to a
:class:`Dispatcher` channel instead of calling HTTP directly:

* ``request`` -- unauthenticated requests, sent by the transport as-is.
* ``request:<channel>`` -- authenticated requests; the core handler is an
  auth channel (``request:basicAuth``, ``request:oauth2``, ...) that signs
  the request with the credential in ``options.auth`` before sending it.

Each channel has a middleware stack (:meth:`Dispatcher.use`) of
:class:`~apitree.plugins.base.Plugin` objects and one core handler
(:meth:`Dispatcher.core`). Middleware registered on ``*`` runs for every
channel, ahead of the channel's own stack.

Outcomes are delivered to a callback exactly once as ``(error, response)``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Callable, Optional, Protocol

import httpx

from apitree.client.transport import HttpxTransport
from apitree.exceptions import ApiTreeError, TransportError
from apitree.plugins.base import Plugin
from apitree.plugins.hooks import HookRunner

if TYPE_CHECKING:
    from apitree.auth.manager import AuthManager
    from apitree.models import Settings
    from apitree.plugins.manager import PluginManager

logger = logging.getLogger(__name__)

DEFAULT_CHANNEL = "request"
WILDCARD = "*"

Callback = Callable[[Optional[Exception], Optional[httpx.Response]], None]


@dataclass
class DispatchOptions:
    """A fully prepared request, as seen by middleware and core handlers.

    Attributes:
        url: Absolute URL including the query string.
        method: Lower-case HTTP verb.
        data: Serialized body (text, bytes, file object, or
            :class:`~apitree.client.codecs.FormData`), or ``None``.
        headers: Request headers.
        async_: ``True`` for callback and coroutine calls; the transport
            then sends without a timeout.
        proxy: ``False`` when the call opted out of the proxy.
        auth: Credential keyed by auth channel name, set for
            ``request:<channel>`` dispatches.
    """

    url: str
    method: str
    data: Any = None
    headers: dict[str, Any] = field(default_factory=dict)
    async_: bool = False
    proxy: Optional[bool] = None
    auth: dict[str, Any] = field(default_factory=dict)


class Handler(Protocol):
    """Core handler of a channel: performs the actual exchange."""

    def send(self, options: DispatchOptions) -> httpx.Response: ...

    async def asend(self, options: DispatchOptions) -> httpx.Response: ...


def _as_api_error(exc: Exception) -> ApiTreeError:
    if isinstance(exc, ApiTreeError):
        return exc
    error = TransportError(f"{type(exc).__name__}: {exc}")
    error.__cause__ = exc
    return error


class Dispatcher:
    """Routes prepared requests through channel middleware to a core handler.

    Args:
        transport: The HTTP transport. It becomes the core handler of the
            ``request`` channel and the sender used by auth channels.
    """

    def __init__(self, transport: Optional[HttpxTransport] = None) -> None:
        self.transport = transport or HttpxTransport()
        self._stack: dict[str, list[Plugin]] = {}
        self._core: dict[str, Handler] = {DEFAULT_CHANNEL: self.transport}
        # Declared security scheme type -> auth channel name.
        self.scheme_channels: dict[str, str] = {}

    # ------------------------------------------------------------------ #
    # Registration
    # ------------------------------------------------------------------ #

    def use(self, channel: str, plugin: Plugin) -> None:
        """Append *plugin* to the middleware stack of *channel*."""
        self._stack.setdefault(channel, []).append(plugin)
        logger.debug("Middleware '%s' added to channel '%s'", plugin.name, channel)

    def disuse(self, channel: str, plugin: Optional[Plugin] = None) -> None:
        """Remove *plugin* from *channel*, or the whole stack when omitted."""
        if plugin is None:
            self._stack.pop(channel, None)
            return
        stack = self._stack.get(channel, [])
        if plugin in stack:
            stack.remove(plugin)

    def core(self, channel: str, handler: Handler) -> None:
        """Set the core handler of *channel*."""
        self._core[channel] = handler

    def channels(self) -> list[str]:
        return sorted(self._core)

    def middleware(self, channel: str) -> list[Plugin]:
        """The middleware that runs for *channel*, wildcard stack first."""
        return [*self._stack.get(WILDCARD, []), *self._stack.get(channel, [])]

    def _resolve(self, channel: str) -> tuple[HookRunner, Handler]:
        handler = self._core.get(channel)
        if handler is None:
            raise TransportError(f"No handler registered for dispatch channel '{channel}'")
        return HookRunner(self.middleware(channel)), handler

    # ------------------------------------------------------------------ #
    # Dispatch
    # ------------------------------------------------------------------ #

    def dispatch(self, channel: str, options: DispatchOptions, callback: Callback) -> None:
        """Run *options* through *channel* and deliver the outcome to *callback*.

        Errors raised by middleware or the core handler are delivered as the
        first callback argument, wrapped in
        :class:`~apitree.exceptions.TransportError` unless they already are an
        :class:`~apitree.exceptions.ApiTreeError`. An exception raised by
        *callback* itself propagates to the caller.
        """
        runner: Optional[HookRunner] = None
        try:
            runner, handler = self._resolve(channel)
            options = runner.run_pre_request(options)
            response = handler.send(options)
            response = runner.run_post_response(options, response)
        except Exception as exc:
            if runner is not None:
                runner.run_error(exc)
            error = _as_api_error(exc)
        else:
            error = None

        if error is not None:
            callback(error, None)
        else:
            callback(None, response)

    def request(self, channel: str, options: DispatchOptions) -> httpx.Response:
        """Dispatch synchronously, raising the delivered error."""
        outcome: dict[str, Any] = {}

        def collect(error: Optional[Exception], response: Optional[httpx.Response]) -> None:
            outcome["error"] = error
            outcome["response"] = response

        self.dispatch(channel, options, collect)
        if not outcome:
            raise TransportError(f"Channel '{channel}' did not complete the request")
        if outcome["error"] is not None:
            raise outcome["error"]
        return outcome["response"]

    def forward(self, options: DispatchOptions) -> httpx.Response:
        """Send already-signed *options* through the ``request`` stack only.

        Auth channels call this after signing, so middleware on ``request``
        (such as the proxy) sees authenticated and anonymous requests alike,
        while ``*`` middleware is not run a second time.
        """
        runner = HookRunner(self._stack.get(DEFAULT_CHANNEL, []))
        try:
            options = runner.run_pre_request(options)
            response = self.transport.send(options)
            return runner.run_post_response(options, response)
        except Exception as exc:
            runner.run_error(exc)
            raise

    async def aforward(self, options: DispatchOptions) -> httpx.Response:
        runner = HookRunner(self._stack.get(DEFAULT_CHANNEL, []))
        try:
            options = runner.run_pre_request(options)
            response = await self.transport.asend(options)
            return runner.run_post_response(options, response)
        except Exception as exc:
            runner.run_error(exc)
            raise

    async def adispatch(self, channel: str, options: DispatchOptions) -> httpx.Response:
        """Dispatch on the event loop.

        Raises:
            ApiTreeError: Any middleware or transport failure.
        """
        runner, handler = self._resolve(channel)
        try:
            options = runner.run_pre_request(options)
            response = await handler.asend(options)
            return runner.run_post_response(options, response)
        except Exception as exc:
            runner.run_error(exc)
            raise _as_api_error(exc) from exc


def create_default_dispatcher(
    settings: Optional[Settings] = None,
    transport: Optional[HttpxTransport] = None,
    auth_manager: Optional[AuthManager] = None,
    plugin_manager: Optional[PluginManager] = None,
) -> Dispatcher:
    """Build a dispatcher with the built-in auth channels installed.

    When ``settings.proxy_url`` is set a
    :class:`~apitree.plugins.proxy.plugin.ProxyPlugin` is added on
    ``request``, where it also sees requests after auth channels signed them.
    Plugins loaded by *plugin_manager* are installed on ``*``.
    """
    from apitree.auth.manager import create_default_manager
    from apitree.models import Settings
    from apitree.plugins.proxy.plugin import ProxyPlugin

    settings = settings or Settings()
    dispatcher = Dispatcher(transport or HttpxTransport(settings.request))
    (auth_manager or create_default_manager()).install(dispatcher)
    if settings.proxy_url:
        dispatcher.use(DEFAULT_CHANNEL, ProxyPlugin(settings.proxy_url))
    if plugin_manager is not None:
        plugin_manager.install(dispatcher)
    return dispatcher
