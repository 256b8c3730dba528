"""Extension-style content negotiation (``/report{mediaTypeExtension}``).

A resource whose route ends in ``{mediaTypeExtension}`` compiles to a node
carrying an ``extension`` callable instead of plain methods::

    client.report.extension("json").get()   # GET /report.json, accept: application/json
    client.report.json().get()              # same, when "json" is a declared enum value
    client.report.json.get()                # the shortcut also works without the call

The ``accept`` header is forced on a copy of the request defaults, so other
branches of the tree are unaffected.
"""

from __future__ import annotations

import mimetypes
from typing import Any, Callable, Optional

from apitree.generator.nodes import ArgDoc, Description, Namespace, RoutePath
from apitree.models import MEDIA_TYPE_EXTENSION, ResourceSpec

EXTENSION_DESCRIPTION = Description(
    signature="fn(extension)",
    doc="Request the resource with a media type extension, e.g. `extension('json')`.",
    args=(ArgDoc("string", "The file extension, with or without the leading `.`."),),
)

BuildContext = Callable[[RoutePath, ResourceSpec, Optional[Namespace]], Namespace]

_UNBUILT = object()


class ExtensionBranch(Namespace):
    """The resource compiled for one extension; calling it returns the branch itself."""

    def __call__(self) -> ExtensionBranch:
        return self


def content_type_for(extension: str) -> Optional[str]:
    """Look up the MIME type of ``.ext`` (``None`` when unknown)."""
    if extension in ("", "."):
        return None
    return mimetypes.guess_type(f"resource{extension}", strict=False)[0]


class MediaTypeExtension:
    """The ``extension(name)`` callable of an extension-style resource.

    Args:
        path: Route path of the resource, without the extension token.
        resource: The declared resource.
        build: Compiles methods and children of *resource* at a given path.
    """

    def __init__(self, path: RoutePath, resource: ResourceSpec, build: BuildContext) -> None:
        self._path = path
        self._resource = resource
        self._build = build
        self._description = EXTENSION_DESCRIPTION
        self._built_default: Any = _UNBUILT

    def __call__(self, extension: str) -> Namespace:
        if extension and not extension.startswith("."):
            extension = "." + extension
        route = self._path.append_to_last(extension) if extension else self._path
        content_type = content_type_for(extension)
        if content_type is not None:
            route = route.with_options(route.options.with_headers({"accept": content_type}))
        description = Description(
            signature="object",
            doc=(self._resource.description or self._resource.display_name or "").strip(),
        )
        return self._build(route, self._resource, ExtensionBranch(route, description))

    @property
    def _default(self) -> Namespace:
        """The resource without an extension, built on first access."""
        if self._built_default is _UNBUILT:
            self._built_default = self("")
        return self._built_default

    def __repr__(self) -> str:
        return f"<MediaTypeExtension /{self._path.join()}>"


def attach_media_type_extension(
    path: RoutePath,
    context: Namespace,
    resource: ResourceSpec,
    build: BuildContext,
) -> Namespace:
    """Install ``extension`` and one child per declared extension value on *context*."""
    extension = MediaTypeExtension(path, resource, build)
    context._attach("extension", extension)

    param = resource.uri_parameters.get(MEDIA_TYPE_EXTENSION)
    for value in (param.enum if param is not None and param.enum else []):
        name = str(value)
        name = name[1:] if name.startswith(".") else name
        if name:
            context._attach(name, extension(name))
    return context
