"""Tests for the proxy forwarding middleware."""

from __future__ import annotations

from typing import Any, Callable

from apitree.client import DispatchOptions, create_default_dispatcher
from apitree.generator import RootClient
from apitree.models import Settings
from apitree.plugins.proxy import ProxyPlugin


def options(**kwargs: Any) -> DispatchOptions:
    return DispatchOptions(url="https://api.test/a?b=1", method="get", **kwargs)


class TestProxyPlugin:
    def test_rewrites_url_and_headers(self) -> None:
        plugin = ProxyPlugin("http://proxy.test/")
        rewritten = plugin.on_pre_request(options(headers={"Accept": "*/*"}))
        assert rewritten.url == "http://proxy.test/https://api.test/a?b=1"
        assert rewritten.headers == {"X-Proxy-Accept": "*/*"}

    def test_opt_out(self) -> None:
        plugin = ProxyPlugin("http://proxy.test")
        untouched = plugin.on_pre_request(options(headers={"Accept": "*/*"}, proxy=False))
        assert untouched.url == "https://api.test/a?b=1"
        assert untouched.headers == {"Accept": "*/*"}

    def test_inert_without_url(self) -> None:
        assert ProxyPlugin().on_pre_request(options()).url == "https://api.test/a?b=1"

    def test_on_init_takes_settings(self) -> None:
        plugin = ProxyPlugin()
        plugin.on_init(Settings(proxy_url="http://from-settings.test"))
        assert plugin.proxy_url == "http://from-settings.test"

    def test_on_init_keeps_explicit_url(self) -> None:
        plugin = ProxyPlugin("http://explicit.test")
        plugin.on_init(Settings(proxy_url="http://from-settings.test"))
        assert plugin.proxy_url == "http://explicit.test"


class TestProxiedClient:
    def setup_client(self, make_client: Callable, example_raw: dict, recorder) -> RootClient:
        dispatcher = create_default_dispatcher(
            Settings(proxy_url="http://proxy.test"), transport=recorder.transport()
        )
        return make_client(example_raw, dispatcher=dispatcher)

    def test_anonymous_request(self, make_client: Callable, example_raw: dict, recorder) -> None:
        client = self.setup_client(make_client, example_raw, recorder)
        client.users.get()
        assert str(recorder.last.url) == "http://proxy.test/https://api.example.com/v1/users"
        assert recorder.last.headers["x-proxy-accept"] == "*/*"

    def test_signed_request_is_proxied(self, make_client: Callable, example_raw: dict, recorder) -> None:
        client = self.setup_client(make_client, example_raw, recorder)
        client._client.authenticate("OAuth 2.0", "tok")
        client.users.get()
        assert str(recorder.last.url).startswith("http://proxy.test/")
        assert recorder.last.headers["x-proxy-authorization"] == "Bearer tok"
        assert "authorization" not in recorder.last.headers

    def test_call_opts_out(self, make_client: Callable, example_raw: dict, recorder) -> None:
        client = self.setup_client(make_client, example_raw, recorder)
        client.users.get(None, {"proxy": False})
        assert str(recorder.last.url) == "https://api.example.com/v1/users"
