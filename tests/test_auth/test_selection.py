"""Tests for picking the security scheme a request is sent with."""

from __future__ import annotations

from typing import Callable

from apitree.auth.selection import (
    AuthSelectionMiss,
    SchemeSelection,
    secured_by_for,
    select_security_scheme,
)
from apitree.generator import RootClient
from apitree.models import ClientMetadata, SecurityScheme


def metadata(**credentials: str) -> ClientMetadata:
    return ClientMetadata(
        security_schemes={
            "oauth": SecurityScheme(name="oauth", type="OAuth 2.0"),
            "basic": SecurityScheme(name="basic", type="Basic Authentication"),
            "custom": SecurityScheme(name="custom", type="x-custom"),
        },
        authentication={
            {"oauth": "OAuth 2.0", "basic": "Basic Authentication", "custom": "x-custom"}[k]: v
            for k, v in credentials.items()
        },
    )


class TestSecuredByFor:
    def test_method_wins(self) -> None:
        assert secured_by_for(["a"], ["b"], ["c"]) == ["a"]

    def test_resource_then_api(self) -> None:
        assert secured_by_for(None, ["b"], ["c"]) == ["b"]
        assert secured_by_for(None, None, ["c"]) == ["c"]

    def test_empty_method_list_is_explicit(self) -> None:
        assert secured_by_for([], ["b"], ["c"]) == []


class TestSelectSecurityScheme:
    def test_second_scheme_with_credential(self) -> None:
        selection = select_security_scheme(["oauth", "basic"], metadata(basic="u:p"))
        assert selection == SchemeSelection(
            scheme_name="basic",
            scheme_type="Basic Authentication",
            channel="basicAuth",
            credential="u:p",
        )

    def test_declaration_order_preferred(self) -> None:
        selection = select_security_scheme(["oauth", "basic"], metadata(basic="u:p", oauth="tok"))
        assert selection.scheme_name == "oauth"

    def test_no_credentials_is_a_miss(self) -> None:
        selection = select_security_scheme(["oauth", "basic"], metadata())
        assert isinstance(selection, AuthSelectionMiss)
        assert not selection
        assert selection.considered == ("oauth", "basic")

    def test_nothing_declared(self) -> None:
        selection = select_security_scheme([], metadata(oauth="tok"))
        assert isinstance(selection, AuthSelectionMiss)
        assert "no security schemes" in selection.reason

    def test_undeclared_scheme_skipped(self) -> None:
        selection = select_security_scheme(["missing", "basic"], metadata(basic="u:p"))
        assert selection.scheme_name == "basic"

    def test_unsupported_type_skipped(self) -> None:
        selection = select_security_scheme(["custom", "basic"], metadata(custom="x", basic="u:p"))
        assert selection.scheme_name == "basic"

    def test_custom_channel_table(self) -> None:
        selection = select_security_scheme(["custom"], metadata(custom="x"), {"x-custom": "apiKey"})
        assert selection.channel == "apiKey"

    def test_empty_credential_ignored(self) -> None:
        assert not select_security_scheme(["oauth"], metadata(oauth=""))


class TestRequestsPickSchemes:
    def test_unauthenticated_by_default(self, example_client: RootClient, recorder) -> None:
        channel, options = example_client.users.get.prepare()
        assert channel == "request"
        assert options.auth == {}
        example_client.users.get()
        assert "authorization" not in recorder.last.headers

    def test_second_scheme_dispatches_on_its_channel(self, example_client: RootClient, recorder) -> None:
        example_client._client.authenticate("Basic Authentication", "user:pass")
        channel, options = example_client.users.get.prepare()
        assert channel == "request:basicAuth"
        assert options.auth == {"basicAuth": "user:pass"}

        example_client.users.get()
        assert recorder.last.headers["authorization"] == "Basic dXNlcjpwYXNz"

    def test_credential_visible_to_every_node(self, example_client: RootClient, recorder) -> None:
        example_client._client.authenticate("OAuth 2.0", "tok")
        example_client.users.userId(1).posts.get()
        assert recorder.last.headers["authorization"] == "Bearer tok"
        example_client.reports.json().get()
        assert recorder.last.headers["authorization"] == "Bearer tok"

    def test_deauthenticate(self, example_client: RootClient, recorder) -> None:
        example_client._client.authenticate("OAuth 2.0", "tok")
        example_client._client.deauthenticate("OAuth 2.0")
        example_client.users.get()
        assert "authorization" not in recorder.last.headers

    def test_method_opts_out(self, example_client: RootClient, recorder) -> None:
        example_client._client.authenticate("OAuth 2.0", "tok")
        example_client.search.get()
        assert "authorization" not in recorder.last.headers

    def test_resource_secured_by_overrides_api(self, make_client: Callable, recorder) -> None:
        client = make_client({
            "baseUri": "https://x.test",
            "securitySchemes": [
                {"oauth": {"type": "OAuth 2.0"}},
                {"basic": {"type": "Basic Authentication"}},
            ],
            "securedBy": ["oauth"],
            "resources": [
                {"relativeUri": "/admin", "securedBy": ["basic"], "methods": [{"method": "get"}]},
            ],
        })
        client._client.authenticate("OAuth 2.0", "tok")
        client._client.authenticate("Basic Authentication", {"username": "a", "password": "b"})
        client.admin.get()
        assert recorder.last.headers["authorization"] == "Basic YTpi"
