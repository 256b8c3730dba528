"""HTTP transport backed by :mod:`httpx`.

:class:`HttpxTransport` is the core handler of the plain ``request`` dispatch
channel and the sender underneath every authenticated channel. It performs
exactly one HTTP exchange per call: no retries, no redirects beyond what
``follow_redirects`` allows, and no status-code mapping -- a 404 or 500 is a
normal response, not an error.

Synchronous requests honour the configured timeout. Requests flagged
``async_`` (callback and coroutine calls) are sent without one.
"""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Any, Optional

import httpx

from apitree.client.codecs import FormData
from apitree.exceptions import TransportError
from apitree.models import RequestConfig

if TYPE_CHECKING:
    from apitree.client.dispatch import DispatchOptions

logger = logging.getLogger(__name__)


class HttpxTransport:
    """Send :class:`~apitree.client.dispatch.DispatchOptions` over HTTP.

    Args:
        config: Timeout, SSL verification, and redirect settings.
        client: Optional pre-built :class:`httpx.Client` (tests pass one
            wired to :class:`httpx.MockTransport`).
        async_client: Optional pre-built :class:`httpx.AsyncClient`.

    Example::

        with HttpxTransport(RequestConfig(timeout=5)) as transport:
            response = transport.send(options)
    """

    def __init__(
        self,
        config: Optional[RequestConfig] = None,
        client: Optional[httpx.Client] = None,
        async_client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self._config = config or RequestConfig()
        self._client = client
        self._async_client = async_client

    # ------------------------------------------------------------------ #
    # Lifecycle
    # ------------------------------------------------------------------ #

    def __enter__(self) -> HttpxTransport:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None

    async def aclose(self) -> None:
        if self._async_client is not None:
            await self._async_client.aclose()
            self._async_client = None

    def _sync_client(self) -> httpx.Client:
        if self._client is None:
            self._client = httpx.Client(
                timeout=self._config.timeout,
                verify=self._config.verify_ssl,
                follow_redirects=self._config.follow_redirects,
            )
        return self._client

    def _get_async_client(self) -> httpx.AsyncClient:
        if self._async_client is None:
            self._async_client = httpx.AsyncClient(
                timeout=None,
                verify=self._config.verify_ssl,
                follow_redirects=self._config.follow_redirects,
            )
        return self._async_client

    # ------------------------------------------------------------------ #
    # Sending
    # ------------------------------------------------------------------ #

    def send(self, options: DispatchOptions) -> httpx.Response:
        """Send one request synchronously.

        Raises:
            TransportError: On connection failures, timeouts, or an invalid URL.
        """
        kwargs = self._request_kwargs(options)
        logger.debug("%s %s", kwargs["method"], options.url)
        try:
            return self._sync_client().request(**kwargs)
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            raise TransportError(f"{kwargs['method']} {options.url} failed: {exc}") from exc

    async def asend(self, options: DispatchOptions) -> httpx.Response:
        """Send one request on the event loop.

        Raises:
            TransportError: On connection failures or an invalid URL.
        """
        kwargs = self._request_kwargs(options)
        logger.debug("%s %s (async)", kwargs["method"], options.url)
        try:
            return await self._get_async_client().request(**kwargs)
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            raise TransportError(f"{kwargs['method']} {options.url} failed: {exc}") from exc

    def _request_kwargs(self, options: DispatchOptions) -> dict[str, Any]:
        headers = {name: str(value) for name, value in options.headers.items()}
        kwargs: dict[str, Any] = {
            "method": options.method.upper(),
            "url": options.url,
            "headers": headers,
            "timeout": None if options.async_ else self._config.timeout,
        }

        data = options.data
        if isinstance(data, FormData):
            # httpx writes its own multipart Content-Type with the boundary.
            kwargs["headers"] = {
                name: value for name, value in headers.items()
                if name.lower() != "content-type"
            }
            kwargs["files"] = data.to_httpx_files()
        elif hasattr(data, "read"):
            kwargs["content"] = data.read()
        elif isinstance(data, (str, bytes, bytearray, memoryview)):
            kwargs["content"] = bytes(data) if isinstance(data, (bytearray, memoryview)) else data
        elif data is not None:
            kwargs["content"] = json.dumps(data)
        return kwargs
