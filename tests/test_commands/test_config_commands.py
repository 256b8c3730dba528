"""Tests for the ``apitree config`` command group."""

from __future__ import annotations

import json
from pathlib import Path

from apitree.app import app
from apitree.config import load_settings, save_settings
from apitree.models import Settings


def run(cli_runner, *args: str, **kwargs):
    return cli_runner.invoke(app, ["--no-color", *args], **kwargs)


class TestConfigShow:
    def test_json(self, cli_runner, isolated_config: Path) -> None:
        save_settings(Settings(proxy_url="http://proxy.test"))
        result = run(cli_runner, "--json", "--quiet", "config", "show")
        assert result.exit_code == 0, result.output
        data = json.loads(result.output)
        assert data["proxy_url"] == "http://proxy.test"
        assert data["request"]["timeout"] == 30.0

    def test_shows_directory(self, cli_runner, isolated_config: Path) -> None:
        result = run(cli_runner, "--plain", "config", "show")
        assert result.exit_code == 0, result.output
        assert "Config directory:" in result.output


class TestConfigSet:
    def test_number(self, cli_runner, isolated_config: Path) -> None:
        result = run(cli_runner, "config", "set", "request.timeout", "10")
        assert result.exit_code == 0, result.output
        assert "Set request.timeout = 10.0" in result.output
        assert load_settings().request.timeout == 10.0

    def test_bool(self, cli_runner, isolated_config: Path) -> None:
        result = run(cli_runner, "config", "set", "request.verify_ssl", "false")
        assert result.exit_code == 0, result.output
        assert load_settings().request.verify_ssl is False

    def test_optional_string_and_none(self, cli_runner, isolated_config: Path) -> None:
        run(cli_runner, "config", "set", "proxy_url", "http://proxy.test")
        assert load_settings().proxy_url == "http://proxy.test"
        run(cli_runner, "config", "set", "proxy_url", "none")
        assert load_settings().proxy_url is None

    def test_list(self, cli_runner, isolated_config: Path) -> None:
        result = run(cli_runner, "config", "set", "plugins_disabled", "proxy, trace")
        assert result.exit_code == 0, result.output
        assert load_settings().plugins_disabled == ["proxy", "trace"]

    def test_unknown_key(self, cli_runner, isolated_config: Path) -> None:
        result = run(cli_runner, "config", "set", "nope", "1")
        assert result.exit_code == 2
        assert "Unknown settings key: nope" in result.output

    def test_invalid_path(self, cli_runner, isolated_config: Path) -> None:
        result = run(cli_runner, "config", "set", "proxy_url.host", "x")
        assert result.exit_code == 2
        assert "Invalid settings key" in result.output

    def test_bad_number(self, cli_runner, isolated_config: Path) -> None:
        result = run(cli_runner, "config", "set", "request.timeout", "soon")
        assert result.exit_code == 2
        assert "Expected a number" in result.output


class TestConfigReset:
    def test_force(self, cli_runner, isolated_config: Path) -> None:
        save_settings(Settings(proxy_url="http://proxy.test"))
        result = run(cli_runner, "--force", "config", "reset")
        assert result.exit_code == 0, result.output
        assert load_settings() == Settings()

    def test_declined(self, cli_runner, isolated_config: Path) -> None:
        save_settings(Settings(proxy_url="http://proxy.test"))
        result = run(cli_runner, "config", "reset", input="n\n")
        assert result.exit_code == 0
        assert "Cancelled." in result.output
        assert load_settings().proxy_url == "http://proxy.test"
