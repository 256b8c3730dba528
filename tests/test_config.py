"""Tests for settings persistence, precedence, and credential sources."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import patch

import pytest

from apitree.config import (
    get_config_dir,
    get_data_dir,
    load_settings,
    resolve_credential,
    resolve_settings,
    save_settings,
)
from apitree.exceptions import ConfigurationError
from apitree.models import Settings


class TestDirectories:
    def test_xdg_dirs(self, isolated_config: Path) -> None:
        assert get_config_dir() == isolated_config / "config" / "apitree"
        assert get_data_dir() == isolated_config / "data" / "apitree"
        assert get_config_dir().is_dir()

    def test_fallback_dirs(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr("apitree.config._is_xdg_platform", lambda: False)
        monkeypatch.setattr(Path, "home", classmethod(lambda cls: tmp_path))
        assert get_config_dir() == tmp_path / ".apitree"
        assert get_data_dir() == tmp_path / ".apitree" / "data"


class TestSettingsFile:
    def test_defaults_when_missing(self, isolated_config: Path) -> None:
        settings = load_settings()
        assert settings == Settings()
        assert settings.request.timeout == 30.0

    def test_round_trip(self, isolated_config: Path) -> None:
        settings = Settings(proxy_url="http://proxy.test")
        settings.request.timeout = 5.0
        save_settings(settings)
        loaded = load_settings()
        assert loaded.proxy_url == "http://proxy.test"
        assert loaded.request.timeout == 5.0

    def test_invalid_json(self, isolated_config: Path) -> None:
        (get_config_dir() / "config.json").write_text("{broken")
        with pytest.raises(ConfigurationError, match="Invalid settings"):
            load_settings()

    def test_invalid_values(self, isolated_config: Path) -> None:
        (get_config_dir() / "config.json").write_text('{"request": {"timeout": "soon"}}')
        with pytest.raises(ConfigurationError):
            load_settings()


class TestResolveSettings:
    def test_env_overrides_file(self, isolated_config: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        save_settings(Settings(proxy_url="http://file.test"))
        monkeypatch.setenv("APITREE_PROXY_URL", "http://env.test")
        monkeypatch.setenv("APITREE_TIMEOUT", "12")
        monkeypatch.setenv("APITREE_VERIFY_SSL", "off")
        settings = resolve_settings()
        assert settings.proxy_url == "http://env.test"
        assert settings.request.timeout == 12.0
        assert settings.request.verify_ssl is False

    def test_cli_overrides_env(self, isolated_config: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("APITREE_TIMEOUT", "12")
        settings = resolve_settings(cli_timeout=3.0, cli_proxy_url="http://cli.test", cli_verify_ssl=True)
        assert settings.request.timeout == 3.0
        assert settings.proxy_url == "http://cli.test"
        assert settings.request.verify_ssl is True

    def test_bad_timeout(self, isolated_config: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("APITREE_TIMEOUT", "soon")
        with pytest.raises(ConfigurationError, match="APITREE_TIMEOUT"):
            resolve_settings()

    def test_bad_bool(self, isolated_config: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("APITREE_VERIFY_SSL", "maybe")
        with pytest.raises(ConfigurationError, match="APITREE_VERIFY_SSL"):
            resolve_settings()


class TestResolveCredential:
    def test_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("MY_TOKEN", "secret")
        assert resolve_credential("env:MY_TOKEN") == "secret"

    def test_env_missing(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("MY_TOKEN", raising=False)
        with pytest.raises(ConfigurationError, match="MY_TOKEN"):
            resolve_credential("env:MY_TOKEN")

    def test_file(self, tmp_path: Path) -> None:
        path = tmp_path / "token.txt"
        path.write_text("  file-secret\n")
        assert resolve_credential(f"file:{path}") == "file-secret"

    def test_file_missing(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigurationError, match="not found"):
            resolve_credential(f"file:{tmp_path / 'nope'}")

    def test_prompt_requires_tty(self) -> None:
        with patch("sys.stdin") as stdin:
            stdin.isatty.return_value = False
            with pytest.raises(ConfigurationError, match="not a TTY"):
                resolve_credential("prompt")

    def test_prompt(self) -> None:
        with patch("sys.stdin") as stdin, patch(
            "apitree.config.getpass.getpass", return_value="typed"
        ):
            stdin.isatty.return_value = True
            assert resolve_credential("prompt") == "typed"

    def test_literal(self) -> None:
        assert resolve_credential("plain-value") == "plain-value"
