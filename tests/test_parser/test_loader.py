"""Tests for loading API description trees from files, stdin, and URLs."""

from __future__ import annotations

import io
import json
from pathlib import Path
from unittest.mock import patch

import httpx
import pytest

from apitree.exceptions import ConfigurationError
from apitree.parser.loader import load_ast


class TestLoadFromFile:
    def test_json_file(self, example_path: Path) -> None:
        data = load_ast(str(example_path))
        assert data["title"] == "Example API"

    def test_yaml_file(self, tmp_path: Path) -> None:
        path = tmp_path / "api.yaml"
        path.write_text("title: YAML API\nbaseUri: https://x.test\nresources: []\n")
        data = load_ast(str(path))
        assert data["title"] == "YAML API"

    def test_unknown_suffix_falls_back_to_yaml(self, tmp_path: Path) -> None:
        path = tmp_path / "api.raml.dump"
        path.write_text("title: Fallback\n")
        assert load_ast(str(path)) == {"title": "Fallback"}

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigurationError, match="not found"):
            load_ast(str(tmp_path / "nope.json"))

    def test_empty_file(self, tmp_path: Path) -> None:
        path = tmp_path / "empty.json"
        path.write_text("   \n")
        with pytest.raises(ConfigurationError, match="empty"):
            load_ast(str(path))

    def test_invalid_json(self, tmp_path: Path) -> None:
        path = tmp_path / "bad.json"
        path.write_text("{not json")
        with pytest.raises(ConfigurationError, match="Invalid JSON"):
            load_ast(str(path))

    def test_scalar_document_rejected(self, tmp_path: Path) -> None:
        path = tmp_path / "scalar.yaml"
        path.write_text("just a string\n")
        with pytest.raises(ConfigurationError, match="object"):
            load_ast(str(path))


class TestLoadFromStdin:
    def test_reads_stdin(self) -> None:
        with patch("sys.stdin", io.StringIO(json.dumps({"title": "stdin"}))):
            assert load_ast("-") == {"title": "stdin"}

    def test_empty_stdin(self) -> None:
        with patch("sys.stdin", io.StringIO("")):
            with pytest.raises(ConfigurationError, match="stdin"):
                load_ast("-")


class TestLoadFromUrl:
    def test_fetches_json(self) -> None:
        response = httpx.Response(
            200,
            json={"title": "remote"},
            request=httpx.Request("GET", "https://example.com/api.json"),
        )
        with patch("apitree.parser.loader.httpx.get", return_value=response) as get:
            assert load_ast("https://example.com/api.json") == {"title": "remote"}
        get.assert_called_once()

    def test_http_error(self) -> None:
        response = httpx.Response(
            404, request=httpx.Request("GET", "https://example.com/api.json")
        )
        with patch("apitree.parser.loader.httpx.get", return_value=response):
            with pytest.raises(ConfigurationError, match="HTTP 404"):
                load_ast("https://example.com/api.json")

    def test_connection_error(self) -> None:
        with patch(
            "apitree.parser.loader.httpx.get",
            side_effect=httpx.ConnectError("refused"),
        ):
            with pytest.raises(ConfigurationError, match="Failed to fetch"):
                load_ast("https://example.com/api.json")
