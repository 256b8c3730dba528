"""Persistent credential store scoped per API.

Stores credentials in ``~/.local/share/apitree/credentials/<api>.json``
(XDG) or the platform-equivalent directory. Files are written atomically
with ``0o600`` permissions so that secrets are never world-readable, even
momentarily.

Each API maps to exactly one JSON file holding one :class:`CredentialEntry`
per security scheme *type*, the same key
:attr:`~apitree.models.ClientMetadata.authentication` uses.
"""

from __future__ import annotations

import json
import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

from pydantic import BaseModel, Field

from apitree.config import _atomic_write, get_data_dir
from apitree.models import ClientMetadata


class CredentialEntry(BaseModel):
    """A single stored credential.

    Attributes:
        scheme_type: Declared security scheme type, e.g. ``"OAuth 2.0"``.
        credential: The secret -- a token string, or a mapping such as
            ``{"username": ..., "password": ...}``.
        expires_at: Optional UTC expiry time; ``None`` never expires.
        metadata: Free-form context such as ``token_type`` or ``scope``.
    """

    scheme_type: str = Field(description="Security scheme type this credential is for")
    credential: Any = Field(description="Token string or credential mapping")
    expires_at: Optional[datetime] = Field(default=None)
    metadata: dict[str, Any] = Field(default_factory=dict)

    def is_expired(self) -> bool:
        if self.expires_at is None:
            return False
        expires = self.expires_at
        if expires.tzinfo is None:
            expires = expires.replace(tzinfo=timezone.utc)
        return datetime.now(timezone.utc) >= expires


def _credentials_dir() -> Path:
    path = get_data_dir() / "credentials"
    path.mkdir(parents=True, exist_ok=True)
    return path


def api_slug(title: Optional[str]) -> str:
    """File-safe name for an API title (``"My API v2"`` -> ``"my-api-v2"``)."""
    slug = re.sub(r"[^a-z0-9]+", "-", (title or "").lower()).strip("-")
    return slug or "default"


class CredentialStore:
    """Read/write the credentials of a single API.

    Args:
        api_name: API identifier, usually :func:`api_slug` of its title.

    Example::

        store = CredentialStore("my-api")
        store.save(CredentialEntry(scheme_type="OAuth 2.0", credential="tok123"))
        store.load_into(client._client)
    """

    def __init__(self, api_name: str) -> None:
        self._api_name = api_name
        self._path = _credentials_dir() / f"{api_name}.json"

    @property
    def path(self) -> Path:
        return self._path

    def _read(self) -> dict[str, CredentialEntry]:
        if not self._path.is_file():
            return {}
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
            return {
                scheme_type: CredentialEntry.model_validate(entry)
                for scheme_type, entry in data.get("entries", {}).items()
            }
        except (json.JSONDecodeError, ValueError, OSError, AttributeError):
            return {}

    def _write(self, entries: dict[str, CredentialEntry]) -> None:
        data = {
            "api": self._api_name,
            "entries": {k: v.model_dump(mode="json") for k, v in entries.items()},
        }
        _atomic_write(self._path, json.dumps(data, indent=2) + "\n", mode=0o600)

    def save(self, entry: CredentialEntry) -> None:
        """Persist *entry*, replacing any entry for the same scheme type."""
        entries = self._read()
        entries[entry.scheme_type] = entry
        self._write(entries)

    def load(self) -> dict[str, CredentialEntry]:
        """Return the non-expired entries keyed by scheme type.

        A missing or unreadable file yields an empty dict.
        """
        return {k: v for k, v in self._read().items() if not v.is_expired()}

    def remove(self, scheme_type: str) -> bool:
        """Delete the entry for *scheme_type*. Returns whether one existed."""
        entries = self._read()
        if scheme_type not in entries:
            return False
        del entries[scheme_type]
        if entries:
            self._write(entries)
        else:
            self.clear()
        return True

    def clear(self) -> None:
        if self._path.is_file():
            self._path.unlink()

    def load_into(self, client: ClientMetadata) -> list[str]:
        """Store every valid credential on *client*.

        Returns:
            The scheme types that were loaded.
        """
        loaded = []
        for scheme_type, entry in self.load().items():
            client.authenticate(scheme_type, entry.credential)
            loaded.append(scheme_type)
        return loaded
