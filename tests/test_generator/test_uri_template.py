"""Tests for RFC 6570 URI template expansion."""

from __future__ import annotations

import pytest

from apitree.client.uri_template import expand, expand_expression, expand_variable, variable_names


VARIABLES = {
    "var": "value",
    "hello": "Hello World!",
    "path": "/foo/bar",
    "empty": "",
    "x": "1024",
    "y": "768",
    "list": ["red", "green", "blue"],
    "keys": {"semi": ";", "dot": ".", "comma": ","},
}


class TestExpand:
    @pytest.mark.parametrize(
        "template, expected",
        [
            ("{var}", "value"),
            ("{hello}", "Hello%20World%21"),
            ("{+path}/here", "/foo/bar/here"),
            ("{#x,hello,y}", "#1024,Hello%20World!,768"),
            ("X{.list}", "X.red,green,blue"),
            ("{/list*}", "/red/green/blue"),
            ("{;x,y}", ";x=1024;y=768"),
            ("{;x,y,empty}", ";x=1024;y=768;empty"),
            ("{?x,y,empty}", "?x=1024&y=768&empty="),
            ("?fixed=yes{&x}", "?fixed=yes&x=1024"),
            ("{?keys*}", "?semi=%3B&dot=.&comma=%2C"),
            ("{keys}", "semi,%3B,dot,.,comma,%2C"),
            ("{var:3}", "val"),
        ],
    )
    def test_rfc_examples(self, template: str, expected: str) -> None:
        assert expand(template, VARIABLES) == expected

    def test_base_uri(self) -> None:
        assert expand("https://api.example.com/{version}", {"version": "v1"}) == (
            "https://api.example.com/v1"
        )

    def test_undefined_variable_vanishes(self) -> None:
        assert expand("/users/{id}", {}) == "/users/"
        assert expand("/search{?q,lang}", {"q": "cat food"}) == "/search?q=cat%20food"

    def test_empty_collections_are_undefined(self) -> None:
        assert expand("{?tags}", {"tags": []}) == ""
        assert expand("{?filter*}", {"filter": {}}) == ""

    def test_booleans_and_numbers(self) -> None:
        assert expand("{flag}/{n}", {"flag": True, "n": 42}) == "true/42"

    def test_literal_text_untouched(self) -> None:
        assert expand("/static/path", VARIABLES) == "/static/path"


class TestExpression:
    def test_single_expression(self) -> None:
        assert expand_expression("id", {"id": 42}) == "42"

    def test_invalid_varspec_skipped(self) -> None:
        assert expand_expression("bad name", {"bad name": "x"}) == ""

    def test_hyphenated_name(self) -> None:
        assert expand("https://x.test/{api-version}", {"api-version": "v2"}) == "https://x.test/v2"
        assert expand("{?page-size}", {"page-size": 10}) == "?page-size=10"


class TestExpandVariable:
    def test_value_is_encoded(self) -> None:
        assert expand_variable("user-id", {"user-id": "a b/c"}) == "a%20b%2Fc"

    def test_operator_like_name(self) -> None:
        assert expand_variable("+id", {"+id": 7}) == "7"

    def test_undefined_vanishes(self) -> None:
        assert expand_variable("id", {"id": None}) == ""
        assert expand_variable("id", {}) == ""


class TestVariableNames:
    def test_order_and_dedup(self) -> None:
        assert variable_names("{a}{+b}/x{?c,a}") == ["a", "b", "c"]

    def test_modifiers_stripped(self) -> None:
        assert variable_names("{/list*}{var:3}") == ["list", "var"]

    def test_no_expressions(self) -> None:
        assert variable_names("/plain") == []
