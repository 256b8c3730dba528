"""RFC 6570 URI template expansion (levels 1-4).

Used for the API base URI (``https://{host}/{version}``) and for templated
route segments (``{id}``, ``widgets{id}``). Undefined variables -- ``None``,
empty lists and empty mappings -- vanish from the output instead of appearing
literally, which is how an unresolved optional path parameter disappears.
Variable names are matched leniently, so declared names such as
``api-version`` expand even though RFC 6570 varnames exclude the hyphen.

Example::

    >>> expand("https://api.example.com/{version}", {"version": "v1"})
    'https://api.example.com/v1'
    >>> expand("/search{?q,lang}", {"q": "cat food"})
    '/search?q=cat%20food'
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from typing import Any, NamedTuple
from urllib.parse import quote

_EXPRESSION = re.compile(r"\{([^{}]*)\}")
_VARSPEC = re.compile(r"^(?P<name>[^\s,:*{}]+)(?:(?P<explode>\*)|:(?P<prefix>\d{1,4}))?$")
_PCT_TRIPLET = re.compile(r"(%[0-9A-Fa-f]{2})")
_RESERVED = ":/?#[]@!$&'()*+,;="


class _Operator(NamedTuple):
    first: str
    sep: str
    named: bool
    if_empty: str
    allow_reserved: bool


_OPERATORS: dict[str, _Operator] = {
    "": _Operator("", ",", False, "", False),
    "+": _Operator("", ",", False, "", True),
    "#": _Operator("#", ",", False, "", True),
    ".": _Operator(".", ".", False, "", False),
    "/": _Operator("/", "/", False, "", False),
    ";": _Operator(";", ";", True, "", False),
    "?": _Operator("?", "&", True, "=", False),
    "&": _Operator("&", "&", True, "=", False),
}


def expand(template: str, variables: Mapping[str, Any]) -> str:
    """Expand every ``{...}`` expression of *template* against *variables*."""
    return _EXPRESSION.sub(lambda m: expand_expression(m.group(1), variables), template)


def expand_expression(expression: str, variables: Mapping[str, Any]) -> str:
    """Expand the body of a single expression (the text between the braces)."""
    op_char = expression[:1] if expression[:1] in _OPERATORS and expression[:1] else ""
    operator = _OPERATORS[op_char]
    parts: list[str] = []
    for varspec in expression[len(op_char):].split(","):
        match = _VARSPEC.match(varspec.strip())
        if match is None:
            continue
        name = match.group("name")
        value = variables.get(name)
        if _is_undefined(value):
            continue
        prefix = int(match.group("prefix")) if match.group("prefix") else None
        parts.append(
            _expand_value(name, value, operator, bool(match.group("explode")), prefix)
        )
    if not parts:
        return ""
    return operator.first + operator.sep.join(parts)


def expand_variable(name: str, variables: Mapping[str, Any]) -> str:
    """Expand the single simple variable *name*, whatever characters it holds."""
    value = variables.get(name)
    if _is_undefined(value):
        return ""
    return _expand_value(name, value, _OPERATORS[""], False, None)


def variable_names(template: str) -> list[str]:
    """Return the variable names referenced by *template*, in order of appearance."""
    names: list[str] = []
    for body in _EXPRESSION.findall(template):
        op_char = body[:1] if body[:1] in _OPERATORS and body[:1] else ""
        for varspec in body[len(op_char):].split(","):
            match = _VARSPEC.match(varspec.strip())
            if match and match.group("name") not in names:
                names.append(match.group("name"))
    return names


def _is_undefined(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, (list, tuple, Mapping)) and not value:
        return True
    return False


def _stringify(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _encode(value: str, allow_reserved: bool) -> str:
    if not allow_reserved:
        return quote(value, safe="")
    # Reserved expansion keeps reserved characters and existing %XX triplets.
    return "".join(
        part if _PCT_TRIPLET.fullmatch(part) else quote(part, safe=_RESERVED)
        for part in _PCT_TRIPLET.split(value)
    )


def _named(name: str, encoded: str, operator: _Operator) -> str:
    if not operator.named:
        return encoded
    if encoded == "":
        return name + operator.if_empty
    return f"{name}={encoded}"


def _expand_value(
    name: str,
    value: Any,
    operator: _Operator,
    explode: bool,
    prefix: int | None,
) -> str:
    if isinstance(value, Mapping):
        pairs = [
            (_encode(str(k), operator.allow_reserved), _encode(_stringify(v), operator.allow_reserved))
            for k, v in value.items()
            if v is not None
        ]
        if explode:
            return operator.sep.join(
                _named(k, v, operator) if operator.named else f"{k}={v}" for k, v in pairs
            )
        joined = ",".join(f"{k},{v}" for k, v in pairs)
        return _named(name, joined, operator)

    if isinstance(value, (list, tuple)):
        items = [_encode(_stringify(v), operator.allow_reserved) for v in value if v is not None]
        if explode:
            return operator.sep.join(_named(name, item, operator) for item in items)
        return _named(name, ",".join(items), operator)

    text = _stringify(value)
    if prefix is not None:
        text = text[:prefix]
    return _named(name, _encode(text, operator.allow_reserved), operator)
