"""Auth commands -- manage stored credentials per API.

Provides the ``apitree auth`` sub-command group. Credentials are kept in the
:class:`~apitree.auth.credential_store.CredentialStore` of each API, keyed by
security scheme type, and are loaded by ``apitree call`` before every request.

Typical workflow::

    apitree auth set api.json basic --source env:API_BASIC   # "user:pass"
    apitree auth login api.json oauth_2_0 --client-id env:CLIENT_ID
    apitree auth show api.json
    apitree auth clear api.json
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Optional

import typer

from apitree.exceptions import ApiTreeError
from apitree.output import error, get_output, info, success, suggest


auth_app = typer.Typer(no_args_is_help=True)


def _api_name(target: str) -> str:
    """Store name for *target*: an API description source, or a stored API name."""
    from apitree.auth.credential_store import api_slug
    from apitree.commands.call import load_api

    if target == "-" or target.startswith(("http://", "https://")) or Path(target).is_file():
        return api_slug(load_api(target).title)
    return target


def _preview(credential: object) -> str:
    """Show enough of *credential* to recognise it without revealing it."""
    if isinstance(credential, dict):
        return ", ".join(f"{key}=..." for key in credential)
    text = str(credential)
    return text[:8] + "..." if len(text) > 8 else text


@auth_app.command("set")
def auth_set(
    spec: str = typer.Argument(help="API description: file path or URL."),
    scheme: str = typer.Argument(help="Security scheme name (or type) to store a credential for."),
    source: str = typer.Option(
        "prompt",
        "--source",
        "-s",
        help="Credential source: env:VAR, file:/path, prompt, or a literal value.",
    ),
    expires_in: Optional[int] = typer.Option(
        None, "--expires-in", help="Seconds until the credential expires."
    ),
) -> None:
    """Store a credential for one of the API's security schemes.

    JSON object values are decoded, so OAuth 1.0 keys can be given as
    ``'{"consumer_key": ..., "consumer_secret": ...}'``.

    Example::

        apitree auth set api.json basic --source 'alice:s3cret'
        apitree auth set api.json oauth_2_0 --source env:API_TOKEN
    """
    from apitree.auth.credential_store import CredentialEntry, CredentialStore, api_slug
    from apitree.commands.call import load_api, parse_value, scheme_type_for
    from apitree.config import resolve_credential

    try:
        api = load_api(spec)
        scheme_type = scheme_type_for(api, scheme)
        credential = parse_value(resolve_credential(source))
    except ApiTreeError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None

    expires_at = None
    if expires_in is not None:
        expires_at = datetime.now(timezone.utc) + timedelta(seconds=expires_in)

    name = api_slug(api.title)
    CredentialStore(name).save(
        CredentialEntry(scheme_type=scheme_type, credential=credential, expires_at=expires_at)
    )
    success(f'Credential stored for "{name}" ({scheme_type}).')
    suggest(f"Check it: apitree auth show {name}")


@auth_app.command("show")
def auth_show(
    api: str = typer.Argument(help="API description, or the stored API name."),
) -> None:
    """Show the stored credentials of an API.

    Example::

        apitree auth show api.json
        apitree auth show my-api
    """
    from apitree.auth.credential_store import CredentialStore

    try:
        name = _api_name(api)
    except ApiTreeError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None

    entries = CredentialStore(name).load()
    if not entries:
        info(f'No stored credentials for "{name}".')
        return

    headers = ["Scheme Type", "Credential", "Expires At"]
    rows = [
        [
            scheme_type,
            _preview(entry.credential),
            entry.expires_at.isoformat() if entry.expires_at else "never",
        ]
        for scheme_type, entry in sorted(entries.items())
    ]
    get_output().print_table(headers, rows, title=f"Stored Credentials ({name})")


@auth_app.command("clear")
def auth_clear(
    ctx: typer.Context,
    api: str = typer.Argument(help="API description, or the stored API name."),
    scheme_type: Optional[str] = typer.Option(
        None, "--scheme-type", "-t", help="Only clear the credential of this scheme type."
    ),
) -> None:
    """Clear stored credentials of an API.

    Asks for confirmation unless ``--force`` is active.

    Example::

        apitree auth clear my-api
        apitree --force auth clear my-api -t "OAuth 2.0"
    """
    from apitree.auth.credential_store import CredentialStore

    try:
        name = _api_name(api)
    except ApiTreeError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None

    store = CredentialStore(name)
    if not store.load():
        info(f'No stored credentials for "{name}".')
        return

    force = ctx.obj.get("force", False) if ctx.obj else False
    what = f'the "{scheme_type}" credential' if scheme_type else "all credentials"
    if not force:
        confirmed = typer.confirm(f'Clear {what} of "{name}"?')
        if not confirmed:
            info("Cancelled.")
            raise typer.Exit()

    if scheme_type:
        if not store.remove(scheme_type):
            error(f'No "{scheme_type}" credential stored for "{name}".')
            raise typer.Exit(code=2)
    else:
        store.clear()
    success(f'Cleared {what} of "{name}".')


@auth_app.command("login")
def auth_login(
    spec: str = typer.Argument(help="API description: file path or URL."),
    scheme: str = typer.Argument(help="Name of an 'OAuth 2.0' security scheme."),
    client_id: str = typer.Option(
        ..., "--client-id", help="Client id source: env:VAR, file:/path, prompt, or literal."
    ),
    client_secret: Optional[str] = typer.Option(
        None, "--client-secret", help="Client secret source, when the provider needs one."
    ),
    scope: Optional[list[str]] = typer.Option(
        None, "--scope", help="Scope to request (repeatable); defaults to the scheme's scopes."
    ),
    timeout: float = typer.Option(
        120.0, "--timeout", help="Seconds to wait for the browser to return."
    ),
) -> None:
    """Obtain an OAuth 2.0 token in the browser and store it.

    Runs the Authorization Code flow with PKCE: the provider's authorization
    page opens in the browser and a local server receives the redirect.

    Example::

        apitree auth login api.json oauth_2_0 --client-id env:CLIENT_ID
    """
    from apitree.auth.credential_store import CredentialEntry, CredentialStore, api_slug
    from apitree.commands.call import load_api
    from apitree.config import resolve_credential
    from apitree.models import ClientMetadata
    from apitree.plugins.oauth2_auth_code import OAuth2AuthCodeFlow

    try:
        api = load_api(spec)
        client = ClientMetadata(security_schemes=dict(api.security_schemes))
        flow = OAuth2AuthCodeFlow(
            client,
            scheme,
            client_id=resolve_credential(client_id),
            client_secret=resolve_credential(client_secret) if client_secret else None,
            scopes=scope or None,
            timeout=timeout,
        )
        scheme_type = flow.scheme().type
        info("Opening the authorization page in your browser...")
        token = flow.start()
    except ApiTreeError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None

    expires_at = None
    try:
        expires_in = float(token.get("expires_in") or 0)
    except (TypeError, ValueError):
        expires_in = 0
    if expires_in > 0:
        expires_at = datetime.now(timezone.utc) + timedelta(seconds=expires_in)

    name = api_slug(api.title)
    CredentialStore(name).save(
        CredentialEntry(
            scheme_type=scheme_type,
            credential=token,
            expires_at=expires_at,
            metadata={k: v for k, v in token.items() if k in ("token_type", "scope")},
        )
    )
    success(f'Logged in; token stored for "{name}".')
