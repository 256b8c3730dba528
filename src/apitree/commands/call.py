"""Call command -- send one request through a compiled client.

``apitree call`` compiles the API description, walks to the node named by a
route expression, and invokes one of its methods::

    apitree call api.json 'users(42).posts' get --query page=2
    apitree call api.json items post --body '{"name": "x"}'
    apitree call api.json 'report.json' get

Stored credentials for the API (see ``apitree auth``) are loaded before the
call; ``--auth`` adds or overrides one for this call only.
"""

from __future__ import annotations

import json
from typing import Any, Optional

import typer

from apitree.exceptions import ApiTreeError, ValidationError
from apitree.output import debug, error


def parse_pairs(values: Optional[list[str]], separator: str, label: str) -> dict[str, str]:
    """Split ``key<sep>value`` CLI items into a dict.

    Raises:
        ValidationError: If an item has no separator or an empty key.
    """
    pairs: dict[str, str] = {}
    for item in values or []:
        key, sep, value = item.partition(separator)
        key = key.strip()
        if not sep or not key:
            raise ValidationError(f"Invalid {label} '{item}': expected KEY{separator}VALUE")
        pairs[key] = value.strip() if separator == ":" else value
    return pairs


def parse_value(text: Optional[str]) -> Any:  # noqa: ANN401
    """Parse *text* as JSON if possible, returning the raw string on failure."""
    if text is None:
        return None
    try:
        return json.loads(text)
    except (json.JSONDecodeError, TypeError):
        return text


def load_api(source: str):  # noqa: ANN201
    """Load and sanitize the API description at *source*."""
    from apitree.parser import load_ast, sanitize_ast

    return sanitize_ast(load_ast(source))


def scheme_type_for(api, key: str) -> str:  # noqa: ANN001
    """Map a declared scheme name to its type; anything else is taken as a type."""
    scheme = api.security_schemes.get(key)
    return scheme.type if scheme is not None else key


def call_command(
    spec: str = typer.Argument(help="API description: file path, URL, or '-' for stdin."),
    route: str = typer.Argument(
        "", help="Route expression, e.g. 'users(42).posts'. Empty for the base URI."
    ),
    verb: str = typer.Argument("get", help="HTTP method to call."),
    query: Optional[list[str]] = typer.Option(
        None, "--query", help="Query parameter KEY=VALUE (repeatable)."
    ),
    header: Optional[list[str]] = typer.Option(
        None, "--header", "-H", help="Request header KEY:VALUE (repeatable)."
    ),
    body: Optional[str] = typer.Option(
        None, "--body", "-d", help="Request body; JSON is decoded before serialization."
    ),
    content_type: Optional[str] = typer.Option(
        None, "--content-type", help="Content-Type of the request body."
    ),
    base_uri_param: Optional[list[str]] = typer.Option(
        None, "--base-uri-param", help="Base URI parameter KEY=VALUE (repeatable)."
    ),
    uri_param: Optional[list[str]] = typer.Option(
        None, "--uri-param", help="Default URI parameter KEY=VALUE (repeatable)."
    ),
    auth: Optional[list[str]] = typer.Option(
        None,
        "--auth",
        help="Credential SCHEME=SOURCE for this call; SOURCE is env:VAR, file:/path, "
        "prompt, or a literal (JSON objects are decoded).",
    ),
    no_proxy: bool = typer.Option(False, "--no-proxy", help="Bypass the configured proxy."),
    proxy_url: Optional[str] = typer.Option(
        None, "--proxy-url", help="Forward the request through this proxy endpoint."
    ),
    timeout: Optional[float] = typer.Option(
        None, "--timeout", help="Request timeout in seconds."
    ),
    strict: bool = typer.Option(
        False, "--strict", help="Fail on routes whose parameters cannot be named."
    ),
) -> None:
    """Call an API method and print the response.

    The status line goes to stderr and the decoded body to stdout.

    Example::

        apitree call api.json 'users(42)' get
        apitree call api.json items post -d '{"name": "x"}' -H 'X-Trace: 1'
    """
    from apitree.auth.credential_store import CredentialStore, api_slug
    from apitree.client import create_default_dispatcher
    from apitree.client.response import format_api_response
    from apitree.config import resolve_credential, resolve_settings
    from apitree.generator import Endpoint, generate_client, navigate
    from apitree.generator.extension import MediaTypeExtension
    from apitree.plugins import PluginManager

    plugin_manager = PluginManager()
    dispatcher = None
    try:
        settings = resolve_settings(cli_timeout=timeout, cli_proxy_url=proxy_url)
        api = load_api(spec)
        plugin_manager.discover(settings)
        dispatcher = create_default_dispatcher(settings, plugin_manager=plugin_manager)

        headers = parse_pairs(header, ":", "header")
        if content_type:
            headers["content-type"] = content_type
        defaults = {
            "headers": headers,
            "uri_parameters": parse_pairs(uri_param, "=", "URI parameter"),
            "base_uri_parameters": parse_pairs(base_uri_param, "=", "base URI parameter"),
        }
        client = generate_client(api, defaults, dispatcher=dispatcher, strict=strict)

        loaded = CredentialStore(api_slug(api.title)).load_into(client._client)
        if loaded:
            debug(f"Loaded stored credentials: {', '.join(loaded)}")
        for scheme, source in parse_pairs(auth, "=", "auth").items():
            credential = parse_value(resolve_credential(source))
            client._client.authenticate(scheme_type_for(api, scheme), credential)

        node: Any = navigate(client, route) if route.strip() else client._default
        if isinstance(node, (Endpoint, MediaTypeExtension)):
            node = node._default
        name = verb.lower()
        if name not in node:
            methods = [key for key in node if key in ("get", "head", "put", "post", "patch", "delete")]
            raise ValidationError(
                f"'{route or '<root>'}' has no method '{name}'"
                + (f" (available: {', '.join(methods)})" if methods else "")
            )
        method = node[name]

        options: dict[str, Any] = {}
        params = parse_pairs(query, "=", "query parameter")
        payload = parse_value(body)
        if method.is_query:
            first = params or None
            if payload is not None:
                options["body"] = payload
        else:
            first = payload
            if params:
                options["query"] = params
        if no_proxy:
            options["proxy"] = False

        response = method(first, options)
        if response is not None:
            format_api_response(response)
    except ApiTreeError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None
    finally:
        plugin_manager.cleanup()
        if dispatcher is not None:
            dispatcher.transport.close()
