"""Bind request executors for a resource's methods onto a tree node.

Besides attaching one :class:`~apitree.client.executor.RequestMethod` per
declared verb, this module renders the markdown descriptions shown by
``apitree inspect``: the call signature plus the documented query
parameters, headers, body content types, and base URI parameters.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Optional

from apitree.client.executor import RequestMethod
from apitree.generator.nodes import ArgDoc, Description, Namespace, RoutePath
from apitree.models import HTTP_METHODS, BodySpec, ClientMetadata, MethodSpec, ParamSpec

CALLBACK_DOC = "Pass a function to make the request execute asynchronously."
PROXY_DOC = "*boolean* Disable the proxy for the current request."

ALL_METHODS: dict[str, MethodSpec] = {verb: MethodSpec(method=verb) for verb in HTTP_METHODS}
"""Undeclared methods for every verb, bound on custom paths of the root client."""


def attach_methods(
    path: RoutePath,
    context: Namespace,
    methods: Mapping[str, MethodSpec],
    resource_secured_by: Optional[list[str]] = None,
) -> Namespace:
    """Attach a :class:`RequestMethod` for each of *methods* to *context*.

    Returns:
        *context*, for chaining.
    """
    for verb, method in methods.items():
        context._attach(
            verb,
            RequestMethod(
                path,
                method,
                resource_secured_by=resource_secured_by,
                description=describe_method(path.client, method),
            ),
        )
    return context


def _param_markdown(param: ParamSpec) -> str:
    parts = [f"**{param.label}**"]
    if param.type:
        parts.append(f"*{param.type}*")
    if param.required:
        parts.append("(required)")
    if param.enum:
        parts.append("one of " + ", ".join(f"`{value}`" for value in param.enum))
    if param.description:
        parts.append("- " + param.description.strip())
    return " ".join(parts)


def _params_markdown(params: Mapping[str, ParamSpec]) -> str:
    return "\n".join(f"* {_param_markdown(param)}" for param in params.values())


def _body_markdown(content_type: str, body: Optional[BodySpec]) -> str:
    lines = [f"* **{content_type}**"]
    if body is not None:
        for param in body.form_parameters.values():
            lines.append(f"  * {_param_markdown(param)}")
    return "\n".join(lines)


def describe_method(client: ClientMetadata, method: MethodSpec) -> Description:
    """Render the call signature and argument docs of *method*."""
    body_doc = ""
    option_docs: list[str] = []

    if method.query_parameters:
        docs = _params_markdown(method.query_parameters)
        if method.is_query:
            body_doc = docs
        else:
            option_docs += ["**query**", docs]

    if method.headers:
        option_docs += ["**headers**", _params_markdown(method.headers)]

    if method.body:
        docs = "\n".join(
            _body_markdown(content_type, body) for content_type, body in method.body.items()
        )
        if method.is_query:
            option_docs += ["**body**", docs]
        else:
            body_doc = docs

    if client.base_uri_parameters:
        option_docs += ["**baseUriParameters**", _params_markdown(client.base_uri_parameters)]

    option_docs += ["**proxy**", PROXY_DOC]

    first = "query?" if method.is_query else "body?"
    return Description(
        signature=f"fn({first}, options?, callback?)",
        doc=(method.description or "").strip(),
        args=(
            ArgDoc("object", body_doc),
            ArgDoc("object", "\n\n".join(option_docs)),
            ArgDoc("fn(error, response)", CALLBACK_DOC),
        ),
    )
