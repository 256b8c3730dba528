"""Node types of a compiled client tree.

A compiled client is a tree of :class:`Namespace` objects. Children -- nested
namespaces, request methods, the media-type ``extension`` -- are reachable by
attribute (``client.users``) or by item (``client["user-groups"]``). A
templated route compiles to an :class:`Endpoint`, a namespace that must be
*resolved* with its path arguments before its methods become available::

    client.users(42).get()
    resolve(client.users, 42)       # same thing, spelled as a named call

Node metadata lives on underscore attributes so that iterating a node, or
calling ``dir()`` on it, only shows the API surface:

* ``_config`` -- the request defaults of the :class:`RoutePath`.
* ``_client`` -- the shared :class:`~apitree.models.ClientMetadata`.
* ``_description`` -- a :class:`Description` of the node.
* ``_default`` -- on endpoints, the namespace resolved with no arguments.
"""

from __future__ import annotations

import dataclasses
from collections.abc import Iterator
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Callable, Optional

from apitree.exceptions import ValidationError
from apitree.models import ClientMetadata, RequestOptions

if TYPE_CHECKING:
    from apitree.client.dispatch import Dispatcher


@dataclass(frozen=True)
class ArgDoc:
    """Type and documentation of one positional argument."""

    type: str
    doc: str = ""


@dataclass(frozen=True)
class Description:
    """Human-readable signature of a node, shown by ``apitree inspect``."""

    signature: str
    doc: str = ""
    args: tuple[ArgDoc, ...] = ()


@dataclass(frozen=True, eq=False)
class RoutePath:
    """Ordered path segments plus the shared state every node of a branch needs.

    ``options`` and ``client`` are held by reference: every node compiled from
    one :class:`~apitree.models.ConfigurationCell` sees the same objects,
    except where a branch deliberately takes its own copy (media-type
    extensions clone ``options`` to set an ``accept`` header).
    """

    segments: tuple[str, ...]
    options: RequestOptions
    client: ClientMetadata
    dispatcher: Dispatcher

    def child(self, *segments: str) -> RoutePath:
        return dataclasses.replace(self, segments=self.segments + tuple(segments))

    def replace_last(self, segment: str) -> RoutePath:
        return dataclasses.replace(self, segments=self.segments[:-1] + (segment,))

    def append_to_last(self, suffix: str) -> RoutePath:
        if not self.segments:
            return self.child(suffix)
        return self.replace_last(self.segments[-1] + suffix)

    def with_options(self, options: RequestOptions) -> RoutePath:
        return dataclasses.replace(self, options=options)

    def join(self) -> str:
        """Slash-joined path, empty segments skipped."""
        return "/".join(segment for segment in self.segments if segment)


class Namespace:
    """A node of the compiled tree holding named children."""

    def __init__(self, path: RoutePath, description: Optional[Description] = None) -> None:
        self._path = path
        self._description = description
        self._children: dict[str, Any] = {}

    @property
    def _config(self) -> RequestOptions:
        return self._path.options

    @property
    def _client(self) -> ClientMetadata:
        return self._path.client

    def _attach(self, name: str, value: Any) -> None:
        self._children[name] = value

    def _adopt(self, other: Namespace) -> None:
        """Take over the children of *other*, keeping our own on conflict."""
        for name, value in other._children.items():
            self._children.setdefault(name, value)

    def __getattr__(self, name: str) -> Any:
        if name.startswith("_"):
            raise AttributeError(name)
        try:
            return self._children[name]
        except KeyError:
            raise AttributeError(
                f"'/{self._path.join()}' has no resource or method named '{name}'"
            ) from None

    def __getitem__(self, name: str) -> Any:
        return self._children[name]

    def __contains__(self, name: object) -> bool:
        return name in self._children

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._children))

    def __dir__(self) -> list[str]:
        return sorted(set(super().__dir__()) | set(self._children))

    def __repr__(self) -> str:
        children = ", ".join(self._children)
        return f"<{type(self).__name__} /{self._path.join()} [{children}]>"


_UNRESOLVED = object()


class Endpoint(Namespace):
    """A namespace for a templated route, resolved by calling it with path arguments.

    Args:
        path: Route path ending in the unexpanded template segment.
        resolver: Builds the resolved namespace from the positional
            arguments, given as a tuple.
        arity: Number of template parameters the route declares.
        description: Signature listing the template parameters.
    """

    def __init__(
        self,
        path: RoutePath,
        resolver: Callable[[tuple[Any, ...]], Namespace],
        arity: int,
        description: Optional[Description] = None,
    ) -> None:
        super().__init__(path, description)
        self._resolver = resolver
        self._arity = arity
        self._resolved_default: Any = _UNRESOLVED

    def _resolve(self, *args: Any) -> Namespace:
        if len(args) > self._arity:
            raise ValidationError(
                f"'/{self._path.join()}' takes at most {self._arity} path "
                f"argument(s), got {len(args)}"
            )
        return self._resolver(args)

    def __call__(self, *args: Any) -> Namespace:
        return self._resolve(*args)

    @property
    def _default(self) -> Namespace:
        """The namespace resolved with no arguments, built on first access."""
        if self._resolved_default is _UNRESOLVED:
            self._resolved_default = self._resolver(())
        return self._resolved_default


def resolve(endpoint: Endpoint, *args: Any) -> Namespace:
    """Resolve *endpoint* with *args*; the explicit form of ``endpoint(*args)``."""
    return endpoint._resolve(*args)


@dataclass
class NodeInfo:
    """A child listed by :func:`children`."""

    name: str
    node: Any
    kind: str = field(default="namespace")


def children(node: Namespace) -> list[NodeInfo]:
    """List the children of *node* with a coarse kind for display."""
    from apitree.client.executor import RequestMethod
    from apitree.generator.extension import MediaTypeExtension

    infos = []
    for name in node:
        child = node[name]
        if isinstance(child, Endpoint):
            kind = "endpoint"
        elif isinstance(child, RequestMethod):
            kind = "method"
        elif isinstance(child, MediaTypeExtension):
            kind = "extension"
        else:
            kind = "namespace"
        infos.append(NodeInfo(name=name, node=child, kind=kind))
    return infos
