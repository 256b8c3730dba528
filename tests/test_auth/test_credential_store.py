"""Tests for the per-API credential store."""

from __future__ import annotations

import json
import stat
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from apitree.auth.credential_store import CredentialEntry, CredentialStore, api_slug
from apitree.models import ClientMetadata


class TestApiSlug:
    @pytest.mark.parametrize(
        "title, slug",
        [
            ("My API v2", "my-api-v2"),
            ("  Example -- API!  ", "example-api"),
            ("", "default"),
            (None, "default"),
        ],
    )
    def test_slug(self, title, slug) -> None:
        assert api_slug(title) == slug


class TestCredentialEntry:
    def test_no_expiry(self) -> None:
        assert not CredentialEntry(scheme_type="OAuth 2.0", credential="t").is_expired()

    def test_expired(self) -> None:
        past = datetime.now(timezone.utc) - timedelta(minutes=1)
        assert CredentialEntry(scheme_type="OAuth 2.0", credential="t", expires_at=past).is_expired()

    def test_naive_expiry_treated_as_utc(self) -> None:
        future = (datetime.now(timezone.utc) + timedelta(hours=1)).replace(tzinfo=None)
        entry = CredentialEntry(scheme_type="OAuth 2.0", credential="t", expires_at=future)
        assert not entry.is_expired()


class TestCredentialStore:
    def test_save_and_load(self, isolated_config: Path) -> None:
        store = CredentialStore("example-api")
        store.save(CredentialEntry(scheme_type="OAuth 2.0", credential="tok"))
        store.save(CredentialEntry(
            scheme_type="Basic Authentication",
            credential={"username": "u", "password": "p"},
            metadata={"source": "test"},
        ))

        loaded = CredentialStore("example-api").load()
        assert set(loaded) == {"OAuth 2.0", "Basic Authentication"}
        assert loaded["Basic Authentication"].credential == {"username": "u", "password": "p"}
        assert loaded["Basic Authentication"].metadata == {"source": "test"}

    def test_file_location_and_permissions(self, isolated_config: Path) -> None:
        store = CredentialStore("example-api")
        store.save(CredentialEntry(scheme_type="OAuth 2.0", credential="tok"))
        assert store.path == isolated_config / "data" / "apitree" / "credentials" / "example-api.json"
        assert stat.S_IMODE(store.path.stat().st_mode) == 0o600
        assert json.loads(store.path.read_text())["api"] == "example-api"

    def test_save_replaces_same_type(self, isolated_config: Path) -> None:
        store = CredentialStore("api")
        store.save(CredentialEntry(scheme_type="OAuth 2.0", credential="old"))
        store.save(CredentialEntry(scheme_type="OAuth 2.0", credential="new"))
        assert store.load()["OAuth 2.0"].credential == "new"

    def test_expired_entries_skipped(self, isolated_config: Path) -> None:
        store = CredentialStore("api")
        store.save(CredentialEntry(
            scheme_type="OAuth 2.0",
            credential="old",
            expires_at=datetime.now(timezone.utc) - timedelta(seconds=5),
        ))
        assert store.load() == {}

    def test_remove(self, isolated_config: Path) -> None:
        store = CredentialStore("api")
        store.save(CredentialEntry(scheme_type="OAuth 2.0", credential="tok"))
        store.save(CredentialEntry(scheme_type="OAuth 1.0", credential={"consumer_key": "k"}))

        assert store.remove("OAuth 2.0") is True
        assert set(store.load()) == {"OAuth 1.0"}
        assert store.remove("OAuth 2.0") is False

        assert store.remove("OAuth 1.0") is True
        assert not store.path.exists()

    def test_clear(self, isolated_config: Path) -> None:
        store = CredentialStore("api")
        store.save(CredentialEntry(scheme_type="OAuth 2.0", credential="tok"))
        store.clear()
        store.clear()
        assert store.load() == {}

    def test_corrupt_file_reads_empty(self, isolated_config: Path) -> None:
        store = CredentialStore("api")
        store.path.write_text("{not json")
        assert store.load() == {}

    def test_load_into(self, isolated_config: Path) -> None:
        store = CredentialStore("api")
        store.save(CredentialEntry(scheme_type="OAuth 2.0", credential="tok"))
        client = ClientMetadata()
        assert store.load_into(client) == ["OAuth 2.0"]
        assert client.authentication == {"OAuth 2.0": "tok"}
