"""Tests for the ``apitree auth`` command group."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import patch

from apitree.app import app
from apitree.auth.credential_store import CredentialEntry, CredentialStore
from apitree.exit_codes import EXIT_CONFIGURATION_ERROR, EXIT_INVALID_USAGE


def run(cli_runner, *args: str, **kwargs):
    return cli_runner.invoke(app, ["--no-color", *args], **kwargs)


# ---------------------------------------------------------------------------
# auth set / show
# ---------------------------------------------------------------------------


class TestAuthSet:
    def test_literal_source(self, cli_runner, isolated_config: Path, example_path: Path) -> None:
        result = run(cli_runner, "auth", "set", str(example_path), "basic", "--source", "user:pass")
        assert result.exit_code == 0, result.output
        assert 'Credential stored for "example-api" (Basic Authentication).' in result.output
        entry = CredentialStore("example-api").load()["Basic Authentication"]
        assert entry.credential == "user:pass"
        assert entry.expires_at is None

    def test_json_source_and_expiry(self, cli_runner, isolated_config: Path, example_path: Path) -> None:
        result = run(
            cli_runner,
            "auth", "set", str(example_path), "OAuth 1.0",
            "--source", '{"consumer_key": "k", "consumer_secret": "s"}',
            "--expires-in", "3600",
        )
        assert result.exit_code == 0, result.output
        entry = CredentialStore("example-api").load()["OAuth 1.0"]
        assert entry.credential == {"consumer_key": "k", "consumer_secret": "s"}
        assert entry.expires_at is not None

    def test_env_source_missing(self, cli_runner, isolated_config: Path, example_path: Path) -> None:
        result = run(
            cli_runner, "auth", "set", str(example_path), "basic", "--source", "env:NOT_SET_ANYWHERE"
        )
        assert result.exit_code == EXIT_CONFIGURATION_ERROR
        assert "NOT_SET_ANYWHERE" in result.output


class TestAuthShow:
    def test_empty(self, cli_runner, isolated_config: Path, example_path: Path) -> None:
        result = run(cli_runner, "auth", "show", str(example_path))
        assert result.exit_code == 0
        assert 'No stored credentials for "example-api".' in result.output

    def test_table_by_stored_name(self, cli_runner, isolated_config: Path) -> None:
        CredentialStore("example-api").save(
            CredentialEntry(scheme_type="Basic Authentication", credential="user:pass")
        )
        CredentialStore("example-api").save(
            CredentialEntry(scheme_type="OAuth 1.0", credential={"consumer_key": "k"})
        )
        result = run(cli_runner, "--plain", "auth", "show", "example-api")
        assert result.exit_code == 0, result.output
        lines = result.output.splitlines()
        assert lines[0] == "Scheme Type\tCredential\tExpires At"
        assert "Basic Authentication\tuser:pas...\tnever" in lines
        assert "OAuth 1.0\tconsumer_key=...\tnever" in lines


# ---------------------------------------------------------------------------
# auth clear
# ---------------------------------------------------------------------------


class TestAuthClear:
    def setup_store(self) -> CredentialStore:
        store = CredentialStore("example-api")
        store.save(CredentialEntry(scheme_type="OAuth 2.0", credential="tok"))
        store.save(CredentialEntry(scheme_type="Basic Authentication", credential="u:p"))
        return store

    def test_force_clears_all(self, cli_runner, isolated_config: Path) -> None:
        store = self.setup_store()
        result = run(cli_runner, "--force", "auth", "clear", "example-api")
        assert result.exit_code == 0, result.output
        assert 'Cleared all credentials of "example-api".' in result.output
        assert store.load() == {}

    def test_declined(self, cli_runner, isolated_config: Path) -> None:
        store = self.setup_store()
        result = run(cli_runner, "auth", "clear", "example-api", input="n\n")
        assert result.exit_code == 0
        assert "Cancelled." in result.output
        assert len(store.load()) == 2

    def test_one_scheme_type(self, cli_runner, isolated_config: Path) -> None:
        store = self.setup_store()
        result = run(cli_runner, "auth", "clear", "example-api", "-t", "OAuth 2.0", input="y\n")
        assert result.exit_code == 0, result.output
        assert set(store.load()) == {"Basic Authentication"}

    def test_unknown_scheme_type(self, cli_runner, isolated_config: Path) -> None:
        self.setup_store()
        result = run(cli_runner, "--force", "auth", "clear", "example-api", "-t", "OAuth 1.0")
        assert result.exit_code == EXIT_INVALID_USAGE
        assert 'No "OAuth 1.0" credential stored' in result.output

    def test_nothing_stored(self, cli_runner, isolated_config: Path) -> None:
        result = run(cli_runner, "--force", "auth", "clear", "example-api")
        assert result.exit_code == 0
        assert "No stored credentials" in result.output


# ---------------------------------------------------------------------------
# auth login
# ---------------------------------------------------------------------------


class TestAuthLogin:
    def test_token_stored(self, cli_runner, isolated_config: Path, example_path: Path) -> None:
        token = {"access_token": "tok", "token_type": "bearer", "expires_in": 3600, "scope": "read"}
        with patch(
            "apitree.plugins.oauth2_auth_code.OAuth2AuthCodeFlow.start", return_value=token
        ) as start:
            result = run(
                cli_runner, "auth", "login", str(example_path), "oauth_2_0", "--client-id", "abc"
            )
        assert result.exit_code == 0, result.output
        start.assert_called_once_with()
        entry = CredentialStore("example-api").load()["OAuth 2.0"]
        assert entry.credential == token
        assert entry.metadata == {"token_type": "bearer", "scope": "read"}
        assert entry.expires_at is not None

    def test_not_an_oauth2_scheme(self, cli_runner, isolated_config: Path, example_path: Path) -> None:
        result = run(cli_runner, "auth", "login", str(example_path), "basic", "--client-id", "abc")
        assert result.exit_code == EXIT_CONFIGURATION_ERROR
        assert "not 'OAuth 2.0'" in result.output
