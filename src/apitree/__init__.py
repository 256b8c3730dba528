"""apitree -- compile API descriptions into navigable, callable clients.

This package turns a parsed API description tree (the AST a RAML parser
emits, dumped as JSON or YAML) into a tree of Python objects that mirrors the
API's resources. Every declared method becomes a callable that builds the
URL, serializes the body, signs the request with a stored credential, and
returns the sanitized response.

Typical usage::

    from apitree import generate_client
    from apitree.parser import load_ast

    client = generate_client(load_ast("api.json"))
    client._client.authenticate("OAuth 2.0", "token")
    response = client.users(42).posts.get({"page": 2})
    print(response.status, response.body)

The ``apitree`` command line exposes the same tree for shell use.

Modules:
    app: Typer application and CLI entry point.
    models: Pydantic models shared across the entire package.
    config: XDG-aware settings and credential resolution.
    exceptions: Exception hierarchy with exit-code mapping.
    exit_codes: Numeric exit codes following clig.dev conventions.
    output: stdout/stderr formatting system with Rich support.
"""

__version__ = "0.1.0"

from apitree.generator import generate_client  # noqa: E402

__all__ = ["__version__", "generate_client"]
