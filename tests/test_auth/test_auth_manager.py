"""Tests for the auth plugin registry and auth channels."""

from __future__ import annotations

from typing import Any

import pytest

from apitree.auth import AuthChannel, AuthManager, AuthPlugin, create_default_manager
from apitree.client import Dispatcher, DispatchOptions, create_default_dispatcher
from apitree.exceptions import AuthError, ConfigurationError
from apitree.generator import generate_client
from apitree.plugins.basic import BasicAuthPlugin


class HeaderKeyPlugin(AuthPlugin):
    """Sends the credential in an ``X-Api-Key`` header."""

    @property
    def channel(self) -> str:
        return "apiKey"

    @property
    def scheme_types(self) -> tuple[str, ...]:
        return ("Pass Through", "x-api-key")

    def apply(self, options: DispatchOptions, credential: Any) -> DispatchOptions:
        options.headers["X-Api-Key"] = str(credential)
        return options

    def validate_credential(self, credential: Any) -> list[str]:
        return [] if isinstance(credential, str) else ["API key must be a string"]


def options(**auth: Any) -> DispatchOptions:
    return DispatchOptions(url="https://x.test/a", method="get", auth=auth)


class TestAuthManager:
    def test_default_channels(self) -> None:
        assert create_default_manager().list_channels() == ["basicAuth", "oauth1", "oauth2"]

    def test_register_replaces_channel(self) -> None:
        manager = AuthManager()
        first, second = BasicAuthPlugin(), BasicAuthPlugin()
        manager.register(first)
        manager.register(second)
        assert manager.get_plugin("basicAuth") is second

    def test_unknown_channel(self) -> None:
        manager = AuthManager()
        manager.register(BasicAuthPlugin())
        with pytest.raises(AuthError, match="Available channels: basicAuth"):
            manager.get_plugin("oauth2")

    def test_scheme_channels(self) -> None:
        manager = AuthManager()
        manager.register(HeaderKeyPlugin())
        assert manager.scheme_channels() == {"Pass Through": "apiKey", "x-api-key": "apiKey"}

    def test_install(self) -> None:
        manager = AuthManager()
        manager.register(HeaderKeyPlugin())
        dispatcher = Dispatcher()
        manager.install(dispatcher)
        assert "request:apiKey" in dispatcher.channels()
        assert dispatcher.scheme_channels["x-api-key"] == "apiKey"


class TestAuthChannel:
    def setup_method(self) -> None:
        self.channel = AuthChannel(HeaderKeyPlugin(), Dispatcher())

    def test_signs_with_attached_credential(self) -> None:
        signed = self.channel._sign(options(apiKey="secret"))
        assert signed.headers["X-Api-Key"] == "secret"

    def test_missing_credential(self) -> None:
        with pytest.raises(ConfigurationError, match="No credential attached"):
            self.channel._sign(options())

    def test_invalid_credential(self) -> None:
        with pytest.raises(ConfigurationError, match="API key must be a string"):
            self.channel._sign(options(apiKey=123))


class TestCustomPluginEndToEnd:
    def test_custom_scheme_type(self, recorder) -> None:
        manager = AuthManager()
        manager.register(HeaderKeyPlugin())
        dispatcher = create_default_dispatcher(transport=recorder.transport(), auth_manager=manager)
        client = generate_client(
            {
                "baseUri": "https://x.test",
                "securitySchemes": [{"key": {"type": "x-api-key"}}],
                "securedBy": ["key"],
                "resources": [{"relativeUri": "/things", "methods": [{"method": "get"}]}],
            },
            dispatcher=dispatcher,
        )
        client._client.authenticate("x-api-key", "secret")
        client.things.get()
        assert recorder.last.headers["x-api-key"] == "secret"
