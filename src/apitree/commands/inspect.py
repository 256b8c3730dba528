"""Inspect command -- show the compiled client tree.

``apitree inspect`` compiles an API description and prints the resulting
node tree with each node's call signature, which is how a client is used
from Python::

    api.example.com  fn(url, params?)
    +-- users  object
    |   +-- get  fn(query?, options?, callback?)
    |   +-- id  fn(id)
    ...

Templated routes are expanded with no arguments to show what lies below
them. In ``--json`` mode the same tree is emitted as nested objects.
"""

from __future__ import annotations

import json
from typing import Any, Optional

import typer
from rich.markup import escape
from rich.tree import Tree

from apitree.exceptions import ApiTreeError
from apitree.output import OutputFormat, error, get_output

_STYLES = {
    "namespace": "bold cyan",
    "endpoint": "bold magenta",
    "extension": "yellow",
    "method": "green",
}


def _signature(node: Any) -> str:  # noqa: ANN401
    description = getattr(node, "_description", None)
    return description.signature if description is not None else ""


def _summary(node: Any) -> str:  # noqa: ANN401
    description = getattr(node, "_description", None)
    if description is None or not description.doc:
        return ""
    return description.doc.splitlines()[0]


def _expand(node: Any) -> Any:  # noqa: ANN401
    """The namespace below an endpoint or extension, or *node* itself."""
    from apitree.generator import Endpoint
    from apitree.generator.extension import MediaTypeExtension

    if isinstance(node, (Endpoint, MediaTypeExtension)):
        return node._default
    return node


def node_to_dict(node: Any, depth: Optional[int]) -> dict[str, Any]:  # noqa: ANN401
    """Describe *node* and its children as plain data, down to *depth* levels."""
    from apitree.generator.nodes import Namespace, children

    data: dict[str, Any] = {"signature": _signature(node)}
    summary = _summary(node)
    if summary:
        data["description"] = summary
    below = _expand(node)
    if isinstance(below, Namespace) and (depth is None or depth > 0):
        data["children"] = {
            info.name: {"kind": info.kind, **node_to_dict(info.node, None if depth is None else depth - 1)}
            for info in children(below)
        }
    return data


def build_tree(label: str, node: Any, depth: Optional[int]) -> Tree:  # noqa: ANN401
    """Render *node* as a :class:`rich.tree.Tree`."""
    tree = Tree(f"[bold]{escape(label)}[/bold]  [dim]{escape(_signature(node))}[/dim]")
    _add_children(tree, node, depth)
    return tree


def _add_children(tree: Tree, node: Any, depth: Optional[int]) -> None:  # noqa: ANN401
    from apitree.generator.nodes import Namespace, children

    if depth is not None and depth <= 0:
        return
    below = _expand(node)
    if not isinstance(below, Namespace):
        return
    for info in children(below):
        style = _STYLES.get(info.kind, "")
        label = f"[{style}]{escape(info.name)}[/{style}]  [dim]{escape(_signature(info.node))}[/dim]"
        summary = _summary(info.node)
        if summary:
            label += f"  {escape(summary)}"
        branch = tree.add(label)
        if info.kind != "method":
            _add_children(branch, info.node, None if depth is None else depth - 1)


def inspect_command(
    spec: str = typer.Argument(help="API description: file path, URL, or '-' for stdin."),
    route: str = typer.Option(
        "", "--route", "-r", help="Start at this route expression instead of the root."
    ),
    depth: Optional[int] = typer.Option(
        None, "--depth", help="Maximum depth to show (unlimited by default)."
    ),
    strict: bool = typer.Option(
        False, "--strict", help="Fail on routes whose parameters cannot be named."
    ),
) -> None:
    """Show the compiled client tree with method signatures.

    Example::

        apitree inspect api.json
        apitree inspect api.json --route 'users(1)' --depth 1
        apitree --json inspect api.json
    """
    from apitree.client import Dispatcher
    from apitree.commands.call import load_api
    from apitree.generator import generate_client, navigate

    try:
        api = load_api(spec)
        # Nothing is sent; a bare dispatcher avoids installing plugins.
        client = generate_client(api, dispatcher=Dispatcher(), strict=strict)
        node = navigate(client, route) if route.strip() else client
    except ApiTreeError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None

    label = route.strip() or api.title or api.base_uri or "client"
    output = get_output()
    if output.format == OutputFormat.JSON:
        output.print_data(json.dumps({label: node_to_dict(node, depth)}, indent=2))
    else:
        output.print_tree(build_tree(label, node, depth))
