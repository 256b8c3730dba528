"""Body serializers, response parsers, and query-string helpers.

Serializers and parsers are ordered ``(matcher, function)`` tables looked up
by the bare MIME type of a ``Content-Type`` header; the first match wins.
Matchers are either a compiled pattern or an exact MIME string.
"""

from __future__ import annotations

import json
import re
from collections.abc import Mapping
from typing import Any, Callable, Iterator, Optional, Union
from urllib.parse import parse_qsl, urlencode

JSON_PATTERN = re.compile(r"^application/([\w!#$%&*`\-.^~]*\+)?json$", re.IGNORECASE)
URLENCODED = "application/x-www-form-urlencoded"
MULTIPART = "multipart/form-data"

Matcher = Union[re.Pattern, str]


def get_mime(content_type: Optional[str]) -> str:
    """Return the bare MIME type of a ``Content-Type`` value, or ``""``."""
    if not content_type:
        return ""
    return content_type.split(";", 1)[0].strip()


def find_header(headers: Mapping[str, Any], name: str) -> Optional[Any]:
    """Case-insensitive header lookup."""
    lowered = name.lower()
    for key, value in headers.items():
        if key.lower() == lowered:
            return value
    return None


def set_header(headers: dict[str, Any], name: str, value: Any) -> None:
    """Set *name* in place, dropping any differently-cased copy first."""
    lowered = name.lower()
    for key in [k for k in headers if k.lower() == lowered]:
        del headers[key]
    headers[name] = value


def get_match(table: list[tuple[Matcher, Callable]], mime: str) -> Optional[Callable]:
    """Return the function of the first table entry matching *mime*."""
    for matcher, fn in table:
        if isinstance(matcher, re.Pattern):
            if matcher.match(mime):
                return fn
        elif matcher == mime:
            return fn
    return None


# --- Query strings ---


def _flatten(prefix: str, value: Any) -> Iterator[tuple[str, str]]:
    if isinstance(value, Mapping):
        for key, item in value.items():
            yield from _flatten(f"{prefix}[{key}]" if prefix else str(key), item)
    elif isinstance(value, (list, tuple)):
        for item in value:
            yield from _flatten(prefix, item)
    elif value is None:
        yield prefix, ""
    elif isinstance(value, bool):
        yield prefix, "true" if value else "false"
    else:
        yield prefix, str(value)


def encode_query(query: Mapping[str, Any]) -> str:
    """Encode *query* with bracket notation for nested maps.

    Sequences repeat the key: ``{"tag": ["a", "b"]}`` -> ``tag=a&tag=b``.
    """
    return urlencode(list(_flatten("", query)))


_BRACKETS = re.compile(r"\[([^\[\]]*)\]")


def parse_query(query: Union[str, Mapping[str, Any], None]) -> dict[str, Any]:
    """Parse a query string into a dict, the inverse of :func:`encode_query`.

    Repeated keys collect into a list; ``a[b]=1`` nests into ``{"a": {"b": "1"}}``.
    A mapping is returned as a shallow copy.
    """
    if query is None:
        return {}
    if isinstance(query, Mapping):
        return dict(query)
    result: dict[str, Any] = {}
    for key, value in parse_qsl(query.lstrip("?"), keep_blank_values=True):
        if key.endswith("[]"):
            key = key[:-2]
        head = key.split("[", 1)[0]
        path = [head, *_BRACKETS.findall(key[len(head):])]
        target = result
        for part in path[:-1]:
            nested = target.get(part)
            if not isinstance(nested, dict):
                nested = target[part] = {}
            target = nested
        last = path[-1]
        if last in target:
            existing = target[last]
            target[last] = existing + [value] if isinstance(existing, list) else [existing, value]
        else:
            target[last] = value
    return result


# --- Multipart ---


class FormData:
    """Ordered multipart form fields, sent by the transport as ``files=``.

    Values may be text, numbers, ``bytes``, or open binary file objects.
    """

    def __init__(self) -> None:
        self._fields: list[tuple[str, Any]] = []

    def append(self, name: str, value: Any) -> None:
        self._fields.append((name, value))

    def __iter__(self) -> Iterator[tuple[str, Any]]:
        return iter(self._fields)

    def __len__(self) -> int:
        return len(self._fields)

    def to_httpx_files(self) -> list[tuple[str, tuple[Any, Any]]]:
        files = []
        for name, value in self._fields:
            if isinstance(value, (bytes, bytearray)) or hasattr(value, "read"):
                filename = getattr(value, "name", None) or name
                files.append((name, (str(filename).rsplit("/", 1)[-1], value)))
            else:
                if isinstance(value, bool):
                    value = "true" if value else "false"
                files.append((name, (None, str(value))))
        return files


def to_form_data(body: Any) -> FormData:
    if not isinstance(body, Mapping):
        raise TypeError(f"multipart body must be a mapping, got {type(body).__name__}")
    form = FormData()
    for name, value in body.items():
        if isinstance(value, (list, tuple)):
            for item in value:
                form.append(name, item)
        else:
            form.append(name, value)
    return form


def is_transport_native(value: Any) -> bool:
    """Return ``True`` for bodies the transport sends as-is.

    Strings, bytes, numbers, booleans, file-like objects, and prepared
    :class:`FormData` are never re-serialized.
    """
    return isinstance(
        value, (str, bytes, bytearray, memoryview, int, float, FormData)
    ) or hasattr(value, "read")


def _encode_urlencoded(body: Any) -> str:
    if not isinstance(body, Mapping):
        raise TypeError(f"form body must be a mapping, got {type(body).__name__}")
    return encode_query(body)


SERIALIZERS: list[tuple[Matcher, Callable[[Any], Any]]] = [
    (JSON_PATTERN, lambda body: json.dumps(body)),
    (URLENCODED, _encode_urlencoded),
    (MULTIPART, to_form_data),
]

PARSERS: list[tuple[Matcher, Callable[[str], Any]]] = [
    (JSON_PATTERN, json.loads),
    (URLENCODED, parse_query),
]
