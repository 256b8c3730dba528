"""Tests for method binding and rendered method descriptions."""

from __future__ import annotations

from apitree.client import RequestMethod
from apitree.generator import RootClient
from apitree.generator.binder import ALL_METHODS, PROXY_DOC, describe_method
from apitree.models import HTTP_METHODS, ClientMetadata, MethodSpec, ParamSpec


class TestAttachMethods:
    def test_declared_verbs_only(self, example_client: RootClient) -> None:
        users = example_client.users
        assert isinstance(users.get, RequestMethod)
        assert isinstance(users.post, RequestMethod)
        assert "delete" not in users

    def test_query_flag(self, example_client: RootClient) -> None:
        assert example_client.users.get.is_query
        assert not example_client.users.post.is_query

    def test_all_methods_cover_every_verb(self) -> None:
        assert tuple(ALL_METHODS) == HTTP_METHODS

    def test_repr(self, example_client: RootClient) -> None:
        assert repr(example_client.users.post) == "<RequestMethod POST /users>"


class TestDescribeMethod:
    def test_query_method(self, example_client: RootClient) -> None:
        description = example_client.users.get._description
        assert description.signature == "fn(query?, options?, callback?)"
        assert description.doc == "List users."
        assert "**page** *integer* - Page number." in description.args[0].doc

    def test_body_method(self, example_client: RootClient) -> None:
        description = example_client.users.post._description
        assert description.signature == "fn(body?, options?, callback?)"
        assert "**application/json**" in description.args[0].doc

    def test_form_parameters(self, example_client: RootClient) -> None:
        doc = example_client.forms.post._description.args[0].doc
        assert "* **application/x-www-form-urlencoded**" in doc
        assert "  * **name** *string*" in doc

    def test_option_docs(self) -> None:
        method = MethodSpec(
            method="post",
            queryParameters={"dry": ParamSpec(name="dry", type="boolean")},
            headers={"X-Key": ParamSpec(name="X-Key", required=True)},
        )
        client = ClientMetadata(
            base_uri_parameters={"region": ParamSpec(name="region", enum=["eu", "us"])}
        )
        options_doc = describe_method(client, method).args[1].doc
        assert "**query**" in options_doc
        assert "**X-Key** (required)" in options_doc
        assert "**region** one of `eu`, `us`" in options_doc
        assert options_doc.endswith(PROXY_DOC)

    def test_body_on_query_method_is_an_option(self) -> None:
        method = MethodSpec(method="get", body={"text/plain": None})
        description = describe_method(ClientMetadata(), method)
        assert description.args[0].doc == ""
        assert "**body**" in description.args[1].doc
