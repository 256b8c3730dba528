"""Compile a sanitized API description into a navigable client tree.

:func:`generate_client` is the main entry point::

    client = generate_client(load_ast("api.json"))
    client.users(42).posts.get({"page": 2})
    client("/health").get()

Route keys become children of their parent node:

* ``items`` -- a plain :class:`~apitree.generator.nodes.Namespace`.
* ``{id}`` -- an :class:`~apitree.generator.nodes.Endpoint` keyed ``id``.
* ``users{id}`` -- an endpoint keyed ``users``.
* ``report{mediaTypeExtension}`` -- a namespace with an ``extension``
  callable (see :mod:`apitree.generator.extension`).

Only *declared* URI parameters count as template tokens, and they must form a
contiguous tail of the route. A route breaking that rule cannot be named; it
is logged and omitted, or raised as
:class:`~apitree.exceptions.ConfigurationError` when ``strict=True``.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Mapping
from typing import Any, Optional, Union

from pydantic import ValidationError as ModelValidationError

from apitree.client.dispatch import Dispatcher, create_default_dispatcher
from apitree.client.uri_template import expand, expand_variable
from apitree.exceptions import ConfigurationError
from apitree.generator.binder import ALL_METHODS, attach_methods
from apitree.generator.extension import attach_media_type_extension
from apitree.generator.nodes import ArgDoc, Description, Endpoint, Namespace, RoutePath
from apitree.models import (
    MEDIA_TYPE_EXTENSION,
    ApiSpec,
    ConfigurationCell,
    RequestOptions,
    ResourceSpec,
)
from apitree.parser.sanitizer import sanitize_ast

logger = logging.getLogger(__name__)

EXTENSION_TOKEN = "{" + MEDIA_TYPE_EXTENSION + "}"

CLIENT_DESCRIPTION = Description(
    signature="fn(url, params?)",
    doc="Make an API request to a custom URL.",
    args=(
        ArgDoc("string", "The URI template of the request, e.g. `/users/{id}`."),
        ArgDoc("object", "Values for the template parameters."),
    ),
)


def describe_resource(resource: ResourceSpec) -> Description:
    return Description(
        signature="object",
        doc=(resource.description or resource.display_name or "").strip(),
    )


def describe_template(names: list[str], resource: ResourceSpec) -> Description:
    args = []
    labels = []
    for name in names:
        param = resource.uri_parameters[name]
        labels.append(name if param.required or param.single_enum_value is not None else f"{name}?")
        args.append(ArgDoc(param.type or "string", (param.description or "").strip()))
    return Description(
        signature=f"fn({', '.join(labels)})",
        doc=(resource.description or "").strip(),
        args=tuple(args),
    )


class RootClient(Namespace):
    """The root of a compiled tree.

    Besides the declared top-level resources it is callable for paths the
    description does not declare: ``client("/users/{id}", {"id": 7}).get()``.
    """

    _custom_default: Optional[Namespace] = None

    def __call__(self, path: str, params: Optional[Mapping[str, Any]] = None) -> Namespace:
        expanded = expand(path, params or {})
        route = self._path.child(*expanded.lstrip("/").split("/"))
        return attach_methods(route, Namespace(route), ALL_METHODS)

    @property
    def _default(self) -> Namespace:
        """The base URI itself, with every verb bound."""
        if self._custom_default is None:
            self._custom_default = attach_methods(self._path, Namespace(self._path), ALL_METHODS)
        return self._custom_default

    @property
    def _dispatcher(self) -> Dispatcher:
        return self._path.dispatcher


class TreeCompiler:
    """Builds nodes for resources, recursively.

    Args:
        strict: Raise on unnameable routes instead of logging and skipping them.
    """

    def __init__(self, strict: bool = False) -> None:
        self.strict = strict

    def attach_resources(
        self,
        path: RoutePath,
        context: Namespace,
        resources: Mapping[str, ResourceSpec],
    ) -> Namespace:
        for route, resource in resources.items():
            self._attach_resource(path, context, route, resource)
        return context

    def build_context(
        self,
        path: RoutePath,
        resource: ResourceSpec,
        context: Optional[Namespace] = None,
    ) -> Namespace:
        """Bind methods and compile children of *resource* at *path*."""
        if context is None:
            context = Namespace(path, describe_resource(resource))
        attach_methods(path, context, resource.methods, resource.secured_by)
        return self.attach_resources(path, context, resource.resources)

    def new_context(
        self,
        path: RoutePath,
        resource: ResourceSpec,
        has_extension: bool,
        existing: Optional[Namespace] = None,
    ) -> Namespace:
        if not has_extension:
            return self.build_context(path, resource, existing)
        context = existing if existing is not None else Namespace(path, describe_resource(resource))
        return attach_media_type_extension(path, context, resource, self.build_context)

    def _report(self, error: ConfigurationError) -> None:
        if self.strict:
            raise error
        logger.warning("%s; resource omitted", error)

    def _attach_resource(
        self,
        path: RoutePath,
        context: Namespace,
        route: str,
        resource: ResourceSpec,
    ) -> None:
        has_extension = route.endswith(EXTENSION_TOKEN)
        if has_extension:
            route = route[: -len(EXTENSION_TOKEN)]

        declared = [name for name in resource.uri_parameters if name != MEDIA_TYPE_EXTENSION]
        tokens = []
        if declared:
            matcher = re.compile(r"\{(" + "|".join(re.escape(n) for n in declared) + r")\}")
            tokens = list(matcher.finditer(route))

        existing = context._children.get(route)
        if not tokens:
            context._attach(
                route,
                self.new_context(
                    path.child(route),
                    resource,
                    has_extension,
                    existing if isinstance(existing, Namespace) else None,
                ),
            )
            return

        suffix = "".join(match.group(0) for match in tokens)
        if not route.endswith(suffix):
            self._report(ConfigurationError(
                f"Route '/{route}' has text between its template parameters; "
                "parameters must form a contiguous tail of the route"
            ))
            return
        if route == suffix and len(tokens) == 1:
            key = tokens[0].group(1)
        else:
            key = route[: -len(suffix)]
        if not key:
            self._report(ConfigurationError(
                f"Route '/{route}' has no literal prefix to name it by"
            ))
            return

        names = [match.group(1) for match in tokens]
        route_path = path.child(route)

        def resolve(args: tuple[Any, ...]) -> Namespace:
            values: dict[str, Any] = {}
            for index, name in enumerate(names):
                provided = index < len(args)
                value = args[index] if provided else None
                single = resource.uri_parameters[name].single_enum_value
                if value is None and single is not None:
                    values[name] = single
                elif provided:
                    values[name] = value
                else:
                    values[name] = route_path.options.uri_parameters.get(name)
            segment = matcher.sub(lambda m: expand_variable(m.group(1), values), route)
            return self.new_context(route_path.replace_last(segment), resource, has_extension)

        endpoint = Endpoint(route_path, resolve, len(names), describe_template(names, resource))
        previous = context._children.get(key)
        if isinstance(previous, Namespace):
            endpoint._adopt(previous)
        context._attach(key, endpoint)


def _as_spec(ast: Union[ApiSpec, Mapping[str, Any]], sanitize: bool) -> ApiSpec:
    if isinstance(ast, ApiSpec):
        return ast
    if sanitize:
        return sanitize_ast(ast)
    try:
        return ApiSpec.model_validate(ast)
    except ModelValidationError as exc:
        raise ConfigurationError(f"Invalid API description: {exc}") from exc


def _configuration_cell(
    config: Union[ConfigurationCell, RequestOptions, Mapping[str, Any], None],
) -> ConfigurationCell:
    if config is None:
        return ConfigurationCell()
    if isinstance(config, ConfigurationCell):
        return config
    if isinstance(config, RequestOptions):
        return ConfigurationCell(options=config)
    try:
        return ConfigurationCell(options=RequestOptions.model_validate(dict(config)))
    except (ModelValidationError, TypeError, ValueError) as exc:
        raise ConfigurationError(f"Invalid client configuration: {exc}") from exc


def generate_client(
    ast: Union[ApiSpec, Mapping[str, Any]],
    config: Union[ConfigurationCell, RequestOptions, Mapping[str, Any], None] = None,
    *,
    dispatcher: Optional[Dispatcher] = None,
    strict: bool = False,
    sanitize: bool = True,
) -> RootClient:
    """Compile an API description into a client tree.

    Args:
        ast: A raw description tree, or an already sanitized
            :class:`~apitree.models.ApiSpec`.
        config: Request defaults for every node -- a mapping or
            :class:`~apitree.models.RequestOptions` -- or a whole
            :class:`~apitree.models.ConfigurationCell` (e.g. one that already
            carries credentials).
        dispatcher: Dispatch channels to send requests through. Defaults to
            :func:`~apitree.client.dispatch.create_default_dispatcher`.
        strict: Raise :class:`~apitree.exceptions.ConfigurationError` for
            routes whose template parameters cannot be named, instead of
            logging a warning and omitting them.
        sanitize: Run :func:`~apitree.parser.sanitizer.sanitize_ast` on a raw
            tree first. Pass ``False`` for trees that are already key-based.

    Returns:
        The :class:`RootClient`.

    Raises:
        ConfigurationError: Malformed description or configuration.
    """
    spec = _as_spec(ast, sanitize)
    cell = _configuration_cell(config)

    client = cell.client
    client.base_uri = spec.base_uri
    client.base_uri_parameters = dict(spec.base_uri_parameters)
    client.secured_by = list(spec.secured_by)
    client.security_schemes = dict(spec.security_schemes)

    defaults = cell.options.base_uri_parameters
    for name, param in spec.base_uri_parameters.items():
        value = param.default if param.default is not None else param.single_enum_value
        if value is not None:
            defaults.setdefault(name, value)
    if spec.version is not None:
        defaults.setdefault("version", spec.version)

    path = RoutePath(
        segments=(),
        options=cell.options,
        client=client,
        dispatcher=dispatcher or create_default_dispatcher(),
    )
    root = RootClient(path, CLIENT_DESCRIPTION)
    TreeCompiler(strict=strict).attach_resources(path, root, spec.resources)
    logger.debug(
        "Compiled client for '%s' with %d top-level resource(s)",
        spec.title or spec.base_uri, len(spec.resources),
    )
    return root
