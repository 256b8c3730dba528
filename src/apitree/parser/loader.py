"""Load an already-parsed API description tree from a URL, local file, or stdin.

apitree does not parse RAML itself: it consumes the AST a RAML parser emits,
dumped as JSON or YAML. This module handles the I/O for fetching such a dump
and turning it into a plain dictionary, with automatic format detection.

After loading, the raw dict should be passed to
:func:`~apitree.parser.sanitizer.sanitize_ast` (or straight to
:func:`~apitree.generator.generate_client`, which sanitizes by default).
"""

from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Any

import httpx
import yaml

from apitree.exceptions import ConfigurationError


def load_ast(source: str) -> dict[str, Any]:
    """Load an API description tree from URL, file path, or stdin (``'-'``).

    Args:
        source: A URL (http/https), file path, or ``'-'`` for stdin.

    Returns:
        The parsed tree as a dictionary.

    Raises:
        ConfigurationError: If the source cannot be loaded or parsed.
    """
    if source == "-":
        content = sys.stdin.read()
        if not content.strip():
            raise ConfigurationError("No input received from stdin")
        return _parse_content(content, hint="")
    if source.startswith(("http://", "https://")):
        return _load_from_url(source)
    return _load_from_file(source)


def _load_from_url(url: str) -> dict[str, Any]:
    try:
        response = httpx.get(url, timeout=30.0, follow_redirects=True)
        response.raise_for_status()
    except httpx.HTTPStatusError as exc:
        raise ConfigurationError(
            f"HTTP {exc.response.status_code} fetching API description from {url}"
        ) from exc
    except httpx.RequestError as exc:
        raise ConfigurationError(
            f"Failed to fetch API description from {url}: {exc}"
        ) from exc

    content_type = response.headers.get("content-type", "")
    hint = ""
    if "json" in content_type:
        hint = "json"
    elif "yaml" in content_type or "yml" in content_type:
        hint = "yaml"
    return _parse_content(response.text, hint=hint)


def _load_from_file(path: str) -> dict[str, Any]:
    file_path = Path(path)
    if not file_path.is_file():
        raise ConfigurationError(f"API description not found: {path}")
    try:
        content = file_path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigurationError(f"Failed to read {path}: {exc}") from exc
    if not content.strip():
        raise ConfigurationError(f"API description is empty: {path}")

    suffix = file_path.suffix.lower()
    hint = ""
    if suffix == ".json":
        hint = "json"
    elif suffix in (".yaml", ".yml"):
        hint = "yaml"
    return _parse_content(content, hint=hint)


def _parse_content(content: str, hint: str = "") -> dict[str, Any]:
    """Parse *content* as JSON, then YAML, unless *hint* pins the format.

    Raises:
        ConfigurationError: If the content is not a JSON/YAML object.
    """
    if hint != "yaml":
        try:
            result = json.loads(content)
        except json.JSONDecodeError as exc:
            if hint == "json":
                raise ConfigurationError(f"Invalid JSON: {exc}") from exc
        else:
            return _require_mapping(result)

    try:
        result = yaml.safe_load(content)
    except yaml.YAMLError as exc:
        raise ConfigurationError(
            f"Failed to parse API description as JSON or YAML: {exc}"
        ) from exc
    return _require_mapping(result)


def _require_mapping(result: Any) -> dict[str, Any]:
    if not isinstance(result, dict):
        kind = type(result).__name__ if result is not None else "empty document"
        raise ConfigurationError(
            f"API description must be a JSON/YAML object (got {kind})"
        )
    return result
