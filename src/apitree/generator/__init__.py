"""Client generator -- compile an API description into a navigable client tree.

This sub-package is responsible for the second half of the apitree pipeline:
taking an :class:`~apitree.models.ApiSpec` (produced by the parser) and
building a tree of nodes whose children mirror the API's resources, with a
request executor bound for every declared method.

Typical usage::

    from apitree.generator import generate_client
    from apitree.parser import load_ast

    client = generate_client(load_ast("api.json"))
    response = client.users(42).get()

Sub-modules:

* :mod:`~apitree.generator.tree` -- the compiler: route naming, templated
  endpoints, sibling merging, and the callable root client.
* :mod:`~apitree.generator.nodes` -- node types and route paths.
* :mod:`~apitree.generator.binder` -- attaches request executors and renders
  their descriptions.
* :mod:`~apitree.generator.extension` -- ``{mediaTypeExtension}`` handling.
* :mod:`~apitree.generator.navigate` -- dotted route expressions for the CLI.
"""

from apitree.generator.navigate import navigate
from apitree.generator.nodes import Endpoint, Namespace, resolve
from apitree.generator.tree import RootClient, generate_client

__all__ = ["Endpoint", "Namespace", "RootClient", "generate_client", "navigate", "resolve"]
