"""Walk a compiled tree from a dotted route expression.

Used by ``apitree call`` so a shell user can address nodes the way Python
code does::

    users(42).posts         ->  client.users(42).posts
    report.json             ->  client.report.json
    report.json()           ->  client.report.json()
    ["user-groups"].members ->  client["user-groups"].members
    search()                ->  client.search()

Call arguments are comma-separated and parsed as JSON where possible
(``42`` is an int, ``"a,b"`` a string); anything else is taken as a bare
string.
"""

from __future__ import annotations

import json
import re
from typing import Any

from apitree.exceptions import ValidationError
from apitree.generator.extension import ExtensionBranch, MediaTypeExtension
from apitree.generator.nodes import Endpoint, Namespace

_STEP = re.compile(
    r"""
    \s*
    (?:
        \[\s*"(?P<quoted>[^"]*)"\s*\]     # ["key with.dots"]
      | (?P<name>[^.\[\]()\s]+)           # plain key
    )
    (?:\((?P<args>[^()]*)\))?             # optional call
    \s*
    """,
    re.VERBOSE,
)


def _split_args(text: str) -> list[str]:
    """Split on commas that are outside double quotes."""
    parts: list[str] = []
    current = []
    quoted = False
    for char in text:
        if char == '"':
            quoted = not quoted
        if char == "," and not quoted:
            parts.append("".join(current))
            current = []
        else:
            current.append(char)
    parts.append("".join(current))
    return [part.strip() for part in parts]


def parse_args(text: str) -> list[Any]:
    if not text.strip():
        return []
    values: list[Any] = []
    for part in _split_args(text):
        try:
            values.append(json.loads(part))
        except ValueError:
            values.append(part)
    return values


def parse_route(expression: str) -> list[tuple[str, Any]]:
    """Parse *expression* into ``(key, args)`` steps; ``args`` is ``None`` when not called.

    Raises:
        ValidationError: If the expression is malformed.
    """
    steps: list[tuple[str, Any]] = []
    position = 0
    expression = expression.strip()
    while position < len(expression):
        match = _STEP.match(expression, position)
        if match is None or match.end() == position:
            raise ValidationError(
                f"Invalid route expression '{expression}' at position {position}"
            )
        key = match.group("quoted") if match.group("quoted") is not None else match.group("name")
        args = parse_args(match.group("args")) if match.group("args") is not None else None
        steps.append((key, args))
        position = match.end()
        if position < len(expression):
            if expression[position] == ".":
                position += 1
            elif expression[position] != "[":
                raise ValidationError(
                    f"Invalid route expression '{expression}' at position {position}"
                )
    return steps


def navigate(root: Namespace, expression: str) -> Any:
    """Return the node *expression* addresses below *root*.

    An endpoint that is stepped *through* without being called is resolved
    with no arguments, so ``users.posts`` works when every path parameter has
    a default.

    Raises:
        ValidationError: Unknown key, or a call on a node that is not callable.
    """
    node: Any = root
    walked: list[str] = []
    for key, args in parse_route(expression):
        if isinstance(node, Endpoint):
            node = node._default
        if not isinstance(node, Namespace) or key not in node:
            location = ".".join(walked) or "<root>"
            available = ", ".join(node) if isinstance(node, Namespace) else ""
            raise ValidationError(
                f"'{key}' not found under {location}"
                + (f" (available: {available})" if available else "")
            )
        node = node[key]
        walked.append(key)
        if args is not None:
            if isinstance(node, ExtensionBranch) and not args:
                continue
            if not isinstance(node, (Endpoint, MediaTypeExtension)):
                raise ValidationError(
                    f"'{'.'.join(walked)}' takes no path arguments"
                )
            node = node(*args)
    return node
