"""Settings management with XDG paths, atomic writes, and precedence resolution.

This module handles all persistent local configuration for apitree:

* **Directory layout** -- XDG Base Directory compliant on Linux/BSD,
  ``~/.apitree/`` on macOS and Windows. See :func:`get_config_dir` and
  :func:`get_data_dir`.
* **Settings** -- A single :class:`~apitree.models.Settings` JSON file storing
  transport defaults, the optional proxy endpoint, and output preferences.
* **Precedence resolution** -- :func:`resolve_settings` merges CLI flags,
  environment variables, and the settings file into the effective settings.
* **Credential resolution** -- :func:`resolve_credential` reads secrets from
  env vars, files, interactive prompts, or literal values.

This is distinct from the per-client Configuration Cell
(:class:`~apitree.models.ConfigurationCell`), which lives in memory for the
lifetime of one compiled client.
"""

from __future__ import annotations

import getpass
import json
import os
import platform
import sys
import tempfile
from pathlib import Path
from typing import Optional

from apitree.exceptions import ConfigurationError
from apitree.models import Settings

_APP_NAME = "apitree"
_CONFIG_FILENAME = "config.json"

ENV_TIMEOUT = "APITREE_TIMEOUT"
ENV_PROXY_URL = "APITREE_PROXY_URL"
ENV_VERIFY_SSL = "APITREE_VERIFY_SSL"


# --- XDG path resolution ---


def _is_xdg_platform() -> bool:
    """Return True if the platform supports XDG Base Directory spec (Linux/FreeBSD)."""
    return platform.system() == "Linux" or platform.system().endswith("BSD")


def _fallback_base_dir() -> Path:
    """Fallback base directory for non-XDG platforms (macOS, Windows)."""
    return Path.home() / f".{_APP_NAME}"


def _xdg_base(env_var: str, default_segments: tuple[str, ...]) -> Path:
    """Resolve an XDG base directory from an env var with fallback segments under $HOME."""
    env_value = os.environ.get(env_var, "")
    if env_value:
        return Path(env_value)
    base = Path.home()
    for seg in default_segments:
        base = base / seg
    return base


def get_config_dir() -> Path:
    """Return the configuration directory, creating it if necessary.

    On Linux/BSD: ``$XDG_CONFIG_HOME/apitree/`` (default ``~/.config/apitree/``).
    On macOS/Windows: ``~/.apitree/``.

    Returns:
        Absolute path to the configuration directory (guaranteed to exist).
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_CONFIG_HOME", (".config",)) / _APP_NAME
    else:
        path = _fallback_base_dir()
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_data_dir() -> Path:
    """Return the data directory (crash logs, credentials), creating it if necessary.

    On Linux/BSD: ``$XDG_DATA_HOME/apitree/`` (default ``~/.local/share/apitree/``).
    On macOS/Windows: ``~/.apitree/data/``.

    Returns:
        Absolute path to the data directory (guaranteed to exist).
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_DATA_HOME", (".local", "share")) / _APP_NAME
    else:
        path = _fallback_base_dir() / "data"
    path.mkdir(parents=True, exist_ok=True)
    return path


# --- Atomic file writes ---


def _atomic_write(path: Path, data: str, mode: Optional[int] = None) -> None:
    """Write data to file atomically using temp file + rename.

    The temporary file is created in the same directory as *path* so that
    ``os.replace`` is an atomic rename on POSIX systems. When *mode* is given
    the permissions are applied before any content is written.
    """
    path.parent.mkdir(parents=True, exist_ok=True)

    fd = None
    tmp_path: Optional[str] = None
    try:
        fd = tempfile.NamedTemporaryFile(
            mode="w",
            dir=path.parent,
            prefix=f".{path.name}.",
            suffix=".tmp",
            delete=False,
            encoding="utf-8",
        )
        tmp_path = fd.name
        if mode is not None:
            os.chmod(tmp_path, mode)
        fd.write(data)
        fd.flush()
        os.fsync(fd.fileno())
        fd.close()
        fd = None  # prevent double-close in finally
        os.replace(tmp_path, path)
    except BaseException:
        if fd is not None:
            fd.close()
        if tmp_path is not None:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
        raise


# --- Settings ---


def _settings_path() -> Path:
    """Path to the settings file."""
    return get_config_dir() / _CONFIG_FILENAME


def load_settings() -> Settings:
    """Load the settings file from the XDG config directory.

    Returns:
        The deserialised :class:`~apitree.models.Settings`. If the file does
        not exist, a default instance is returned.

    Raises:
        ConfigurationError: If the file exists but contains invalid JSON or
            fails Pydantic validation.
    """
    path = _settings_path()
    if not path.is_file():
        return Settings()
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
        return Settings.model_validate(data)
    except (json.JSONDecodeError, ValueError) as exc:
        raise ConfigurationError(f"Invalid settings at {path}: {exc}") from exc


def save_settings(settings: Settings) -> None:
    """Persist the settings atomically to disk.

    Args:
        settings: The settings to save.
    """
    data = settings.model_dump(mode="json")
    _atomic_write(_settings_path(), json.dumps(data, indent=2) + "\n")


def _env_bool(name: str, value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in ("1", "true", "yes", "on"):
        return True
    if lowered in ("0", "false", "no", "off"):
        return False
    raise ConfigurationError(f"{name} must be a boolean, got '{value}'")


def resolve_settings(
    cli_timeout: Optional[float] = None,
    cli_proxy_url: Optional[str] = None,
    cli_verify_ssl: Optional[bool] = None,
) -> Settings:
    """Resolve settings with the full precedence chain.

    Precedence (high to low):
        1. CLI flags (``cli_timeout``, ``cli_proxy_url``, ``cli_verify_ssl``)
        2. Environment variables (``APITREE_TIMEOUT``, ``APITREE_PROXY_URL``,
           ``APITREE_VERIFY_SSL``)
        3. User settings (``~/.config/apitree/config.json``)
        4. Defaults

    Raises:
        ConfigurationError: If an environment variable holds an invalid value.
    """
    settings = load_settings()

    env_timeout = os.environ.get(ENV_TIMEOUT)
    if env_timeout:
        try:
            settings.request.timeout = float(env_timeout)
        except ValueError:
            raise ConfigurationError(
                f"{ENV_TIMEOUT} must be a number, got '{env_timeout}'"
            ) from None
    env_proxy = os.environ.get(ENV_PROXY_URL)
    if env_proxy:
        settings.proxy_url = env_proxy
    env_verify = os.environ.get(ENV_VERIFY_SSL)
    if env_verify:
        settings.request.verify_ssl = _env_bool(ENV_VERIFY_SSL, env_verify)

    if cli_timeout is not None:
        settings.request.timeout = cli_timeout
    if cli_proxy_url is not None:
        settings.proxy_url = cli_proxy_url
    if cli_verify_ssl is not None:
        settings.request.verify_ssl = cli_verify_ssl

    return settings


# --- Credential source resolution ---


def resolve_credential(source: str) -> str:
    """Resolve a credential from its source descriptor.

    Supported formats:
        - ``"env:VAR_NAME"`` -- reads ``os.environ["VAR_NAME"]``
        - ``"file:/path/to/file"`` -- reads file content, stripped of whitespace
        - ``"prompt"`` -- prompts user interactively (requires a TTY)
        - anything else -- used literally

    Args:
        source: The source descriptor string.

    Returns:
        The resolved credential string.

    Raises:
        ConfigurationError: If the source can't be resolved.
    """
    if source.startswith("env:"):
        var_name = source[4:]
        value = os.environ.get(var_name)
        if value is None:
            raise ConfigurationError(
                f"Environment variable '{var_name}' is not set (source: {source})"
            )
        return value

    if source.startswith("file:"):
        path = Path(source[5:]).expanduser()
        if not path.is_file():
            raise ConfigurationError(
                f"Credential file not found: {path} (source: {source})"
            )
        try:
            return path.read_text(encoding="utf-8").strip()
        except OSError as exc:
            raise ConfigurationError(f"Cannot read credential file {path}: {exc}") from exc

    if source == "prompt":
        if not sys.stdin.isatty():
            raise ConfigurationError(
                "Cannot prompt for credentials: stdin is not a TTY (source: prompt)"
            )
        return getpass.getpass("Enter credential: ")

    return source
