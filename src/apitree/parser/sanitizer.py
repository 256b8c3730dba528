"""Normalise a raw API description tree into a canonical :class:`~apitree.models.ApiSpec`.

RAML parsers emit a tree that is awkward to walk: traits, resource types and
security schemes arrive as arrays of single-key fragments, methods as arrays
of objects, and resources as nested arrays carrying their own ``relativeUri``.
:func:`sanitize_ast` rewrites all of that into key-based maps:

* ``traits`` / ``resourceTypes`` / ``securitySchemes`` -- fragment arrays are
  merged into one map; on key collision the later fragment wins.
* ``methods`` -- keyed by lower-cased verb.
* ``resources`` -- keyed by relative path with the leading ``/`` stripped,
  recursively. Two entries with the same key collapse into one resource.
* ``securedBy`` -- an ordered list of scheme names (``null`` entries, which
  only mean "anonymous access is allowed", are dropped).

The input is never modified. Structural problems the compiler cannot recover
from raise :class:`~apitree.exceptions.ConfigurationError`.
"""

from __future__ import annotations

import copy
from collections.abc import Mapping
from typing import Any, Optional

from pydantic import ValidationError as ModelValidationError

from apitree.exceptions import ConfigurationError
from apitree.models import ApiSpec


def sanitize_ast(raw: Mapping[str, Any]) -> ApiSpec:
    """Sanitize a raw API description tree.

    Args:
        raw: The tree as produced by a RAML parser (or loaded by
            :func:`~apitree.parser.loader.load_ast`).

    Returns:
        A frozen :class:`~apitree.models.ApiSpec`.

    Raises:
        ConfigurationError: If a resource lacks ``relativeUri``, a method
            lacks its verb, a security scheme lacks its ``type``, or any
            section has the wrong shape.

    Example::

        spec = sanitize_ast({
            "baseUri": "https://api.example.com",
            "resources": [{"relativeUri": "/items", "methods": [{"method": "get"}]}],
        })
        assert "get" in spec.resources["items"].methods
    """
    if not isinstance(raw, Mapping):
        raise ConfigurationError(
            f"API description must be a mapping, got {type(raw).__name__}"
        )
    data: dict[str, Any] = copy.deepcopy(dict(raw))

    data["traits"] = merge_fragments(data.get("traits"), "traits")
    data["resourceTypes"] = merge_fragments(data.get("resourceTypes"), "resourceTypes")
    data["securitySchemes"] = _security_schemes(data.get("securitySchemes"))
    data["securedBy"] = normalize_secured_by(data.get("securedBy")) or []
    data["baseUriParameters"] = _named_params(data.get("baseUriParameters"))
    data["baseUri"] = data.get("baseUri") or ""
    data["resources"] = _flatten_resources(data.get("resources"), "")

    try:
        return ApiSpec.model_validate(data)
    except ModelValidationError as exc:
        raise ConfigurationError(f"Invalid API description: {exc}") from exc


def merge_fragments(value: Any, section: str) -> dict[str, Any]:
    """Merge an array of single-key fragments into one map (last wins).

    A mapping is returned as a shallow copy and ``None`` becomes ``{}``.

    Raises:
        ConfigurationError: If *value* is neither a mapping nor a list of
            mappings.
    """
    if value is None:
        return {}
    if isinstance(value, Mapping):
        return dict(value)
    if not isinstance(value, list):
        raise ConfigurationError(
            f"'{section}' must be a mapping or a list of mappings"
        )
    merged: dict[str, Any] = {}
    for index, fragment in enumerate(value):
        if fragment is None:
            continue
        if not isinstance(fragment, Mapping):
            raise ConfigurationError(
                f"'{section}' entry #{index} must be a mapping, "
                f"got {type(fragment).__name__}"
            )
        merged.update(fragment)
    return merged


def normalize_secured_by(value: Any) -> Optional[list[str]]:
    """Return the ordered scheme names of a ``securedBy`` value.

    ``None`` stays ``None`` so callers can tell "not declared" from
    "declared empty".
    """
    if value is None:
        return None
    if isinstance(value, (str, Mapping)):
        value = [value]
    names: list[str] = []
    for entry in value:
        if entry is None:
            continue
        if isinstance(entry, str):
            names.append(entry)
        elif isinstance(entry, Mapping):
            # Parameterised reference: {"oauth_2_0": {"scopes": [...]}}
            names.extend(str(name) for name in entry)
        else:
            raise ConfigurationError(
                f"Invalid securedBy entry {entry!r}: expected a scheme name"
            )
    return names


def _security_schemes(value: Any) -> dict[str, Any]:
    schemes = merge_fragments(value, "securitySchemes")
    result: dict[str, Any] = {}
    for name, scheme in schemes.items():
        if not isinstance(scheme, Mapping) or not scheme.get("type"):
            raise ConfigurationError(
                f"Security scheme '{name}' is missing its required 'type'"
            )
        result[name] = {**scheme, "name": name}
    return result


def _named_params(params: Any) -> dict[str, Any]:
    """Normalise a parameter map, filling in each parameter's ``name``."""
    if params is None:
        return {}
    if not isinstance(params, Mapping):
        raise ConfigurationError("Parameter declarations must be a mapping")
    result: dict[str, Any] = {}
    for name, spec in params.items():
        if isinstance(spec, list):
            # Alternative declarations of one parameter -- keep the first.
            spec = next((s for s in spec if isinstance(s, Mapping)), None)
        if spec is None:
            spec = {}
        if not isinstance(spec, Mapping):
            raise ConfigurationError(f"Parameter '{name}' must be a mapping")
        result[name] = {"name": name, **spec}
    return result


def _body(body: Any) -> Optional[dict[str, Any]]:
    if body is None:
        return None
    if not isinstance(body, Mapping):
        raise ConfigurationError("Method 'body' must be a mapping of content types")
    result: dict[str, Any] = {}
    for content_type, spec in body.items():
        if spec is None:
            result[content_type] = None
        elif isinstance(spec, Mapping):
            result[content_type] = {
                **spec,
                "formParameters": _named_params(spec.get("formParameters")),
            }
        else:
            # A bare schema string.
            result[content_type] = {"schema": spec}
    return result


def _method(verb: str, spec: Mapping[str, Any]) -> dict[str, Any]:
    return {
        **spec,
        "method": verb.lower(),
        "queryParameters": _named_params(spec.get("queryParameters")),
        "headers": _named_params(spec.get("headers")),
        "body": _body(spec.get("body")),
        "securedBy": normalize_secured_by(spec.get("securedBy")),
    }


def _methods_map(methods: Any, where: str) -> dict[str, Any]:
    """Key a resource's methods by lower-cased verb."""
    if methods is None:
        return {}
    result: dict[str, Any] = {}
    if isinstance(methods, Mapping):
        for verb, spec in methods.items():
            result[verb.lower()] = _method(verb, spec or {})
        return result
    for index, spec in enumerate(methods):
        if not isinstance(spec, Mapping) or not isinstance(spec.get("method"), str):
            raise ConfigurationError(
                f"Method #{index} of resource '{where}' is missing its 'method' verb"
            )
        result[spec["method"].lower()] = _method(spec["method"], spec)
    return result


def _flatten_resources(resources: Any, parent: str) -> dict[str, Any]:
    """Recursively key resources by relative path without the leading ``/``."""
    if resources is None:
        return {}

    if isinstance(resources, Mapping):
        entries = []
        for key, resource in resources.items():
            if isinstance(resource, Mapping) and "relativeUri" not in resource:
                resource = {**resource, "relativeUri": "/" + str(key).lstrip("/")}
            entries.append(resource)
    else:
        entries = list(resources)

    flattened: dict[str, Any] = {}
    for index, resource in enumerate(entries):
        if not isinstance(resource, Mapping):
            raise ConfigurationError(
                f"Resource #{index} under '{parent or '/'}' must be a mapping, "
                f"got {type(resource).__name__}"
            )
        relative_uri = resource.get("relativeUri")
        if not isinstance(relative_uri, str):
            raise ConfigurationError(
                f"Resource #{index} under '{parent or '/'}' is missing 'relativeUri'"
            )
        key = relative_uri[1:] if relative_uri.startswith("/") else relative_uri
        where = f"{parent}/{key}"
        normalized = {
            **resource,
            "uriParameters": _named_params(resource.get("uriParameters")),
            "methods": _methods_map(resource.get("methods"), where),
            "resources": _flatten_resources(resource.get("resources"), where),
            "securedBy": normalize_secured_by(resource.get("securedBy")),
        }
        if key in flattened:
            _merge_resource(flattened[key], normalized)
        else:
            flattened[key] = normalized
    return flattened


def _merge_resource(target: dict[str, Any], source: dict[str, Any]) -> None:
    """Fold a duplicate declaration of the same path into *target*."""
    target["uriParameters"].update(source["uriParameters"])
    target["methods"].update(source["methods"])
    for key, child in source["resources"].items():
        if key in target["resources"]:
            _merge_resource(target["resources"][key], child)
        else:
            target["resources"][key] = child
    if source.get("securedBy") is not None:
        target["securedBy"] = source["securedBy"]
