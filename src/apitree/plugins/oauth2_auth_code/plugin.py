"""OAuth2 Authorization Code flow with PKCE.

This module provides :class:`OAuth2AuthCodeFlow`, which obtains an access
token for an ``"OAuth 2.0"`` security scheme declared by the API. It
performs the Authorization Code grant with PKCE (:rfc:`7636`):

1. Opens the scheme's ``authorizationUri`` in the user's browser.
2. Listens on a temporary local HTTP server for the redirect callback.
3. Exchanges the authorization code at ``accessTokenUri``.
4. Stores the token response in the client under the scheme's type, where
   the ``oauth2`` channel picks it up.

Each run is an :class:`AuthAttempt` moving through :class:`AuthState`.
A flow has at most one attempt in flight; starting another cancels it.
"""

from __future__ import annotations

import base64
import enum
import hashlib
import logging
import secrets
import socket
import threading
import time
import webbrowser
from collections.abc import Callable, Sequence
from http.server import BaseHTTPRequestHandler, HTTPServer
from typing import Any, Optional
from urllib.parse import parse_qs, urlencode, urlparse

import httpx

from apitree.exceptions import AuthError, ConfigurationError
from apitree.models import ClientMetadata, SecurityScheme

logger = logging.getLogger(__name__)

CALLBACK_PATH = "/callback"
POLL_INTERVAL = 0.25

# RFC 6749 section 4.1.2.1 and 5.2 error codes.
ERROR_RESPONSES: dict[str, str] = {
    "invalid_request": "The request is missing a required parameter or is otherwise malformed.",
    "invalid_client": "Client authentication failed.",
    "invalid_grant": "The authorization grant is invalid, expired, or was revoked.",
    "unauthorized_client": "The client is not authorized to use this grant type.",
    "unsupported_grant_type": "The authorization grant type is not supported.",
    "access_denied": "The resource owner or authorization server denied the request.",
    "unsupported_response_type": "The authorization server does not support this response type.",
    "invalid_scope": "The requested scope is invalid, unknown, or malformed.",
    "server_error": "The authorization server encountered an unexpected condition.",
    "temporarily_unavailable": "The authorization server is temporarily unavailable.",
}


def describe_error(payload: dict[str, Any]) -> Optional[str]:
    """Human-readable error of an OAuth2 error payload, or ``None``."""
    code = payload.get("error")
    if not code:
        return None
    message = ERROR_RESPONSES.get(code, code)
    if payload.get("error_description"):
        message = f"{message} ({payload['error_description']})"
    return message


def generate_pkce_pair() -> tuple[str, str]:
    """Generate a PKCE code_verifier and code_challenge (S256).

    Returns:
        A tuple of ``(code_verifier, code_challenge)``.
    """
    # RFC 7636: 43-128 characters from unreserved character set
    code_verifier = secrets.token_urlsafe(64)[:128]
    digest = hashlib.sha256(code_verifier.encode("ascii")).digest()
    code_challenge = base64.urlsafe_b64encode(digest).rstrip(b"=").decode("ascii")
    return code_verifier, code_challenge


def _find_free_port() -> int:
    """Find a free TCP port on localhost."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("127.0.0.1", 0))
        return s.getsockname()[1]


class AuthState(str, enum.Enum):
    IDLE = "idle"
    AWAITING_USER_ACTION = "awaiting_user_action"
    AWAITING_CALLBACK = "awaiting_callback"
    COMPLETE = "complete"
    CANCELLED = "cancelled"
    ERRORED = "errored"


TERMINAL_STATES = frozenset({AuthState.COMPLETE, AuthState.CANCELLED, AuthState.ERRORED})

_TRANSITIONS: dict[AuthState, frozenset[AuthState]] = {
    AuthState.IDLE: frozenset(
        {AuthState.AWAITING_USER_ACTION, AuthState.CANCELLED, AuthState.ERRORED}
    ),
    AuthState.AWAITING_USER_ACTION: frozenset(
        {AuthState.AWAITING_CALLBACK, AuthState.CANCELLED, AuthState.ERRORED}
    ),
    AuthState.AWAITING_CALLBACK: frozenset(
        {AuthState.COMPLETE, AuthState.CANCELLED, AuthState.ERRORED}
    ),
}


class AuthAttempt:
    """One run of the authorization flow.

    Transitions are thread-safe: :meth:`cancel` may be called from any
    thread while the flow waits for the browser callback.
    """

    def __init__(self) -> None:
        self._state = AuthState.IDLE
        self._lock = threading.Lock()
        self._cancelled = threading.Event()
        self.error: Optional[Exception] = None

    @property
    def state(self) -> AuthState:
        return self._state

    @property
    def done(self) -> bool:
        return self._state in TERMINAL_STATES

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def advance(self, state: AuthState) -> None:
        """Move to *state*.

        Raises:
            AuthError: If the attempt was cancelled or the transition is not
                allowed from the current state.
        """
        with self._lock:
            if self._cancelled.is_set():
                raise AuthError("OAuth2 authorization was cancelled")
            if state not in _TRANSITIONS.get(self._state, frozenset()):
                raise AuthError(
                    f"Invalid OAuth2 flow transition: {self._state.value} -> {state.value}"
                )
            logger.debug("OAuth2 attempt %s -> %s", self._state.value, state.value)
            self._state = state

    def cancel(self) -> bool:
        """Cancel the attempt. Returns ``False`` if it had already finished."""
        with self._lock:
            if self._state in TERMINAL_STATES:
                return False
            self._state = AuthState.CANCELLED
            self._cancelled.set()
        logger.debug("OAuth2 attempt cancelled")
        return True

    def fail(self, error: Exception) -> None:
        with self._lock:
            if self._state in TERMINAL_STATES:
                return
            self._state = AuthState.ERRORED
            self.error = error


class OAuth2AuthCodeFlow:
    """Authenticate a compiled client against one ``"OAuth 2.0"`` scheme.

    Example::

        flow = OAuth2AuthCodeFlow(client._client, "oauth_2_0", client_id="abc")
        token = flow.start()
        client.users.get()  # now signed on the oauth2 channel

    Args:
        client: The client metadata holding the declared schemes and the
            authentication map the token is stored into.
        scheme_name: Name of the security scheme to authenticate.
        client_id: OAuth2 client identifier.
        client_secret: Optional client secret sent with the token exchange.
        scopes: Requested scopes; defaults to the scheme's ``scopes``.
        open_browser: Opens the authorization URL; :func:`webbrowser.open`
            by default.
        http_client: Client used for the token exchange.
        timeout: Seconds to wait for the browser callback.
    """

    def __init__(
        self,
        client: ClientMetadata,
        scheme_name: str,
        *,
        client_id: Optional[str],
        client_secret: Optional[str] = None,
        scopes: Optional[Sequence[str]] = None,
        open_browser: Callable[[str], Any] = webbrowser.open,
        http_client: Optional[httpx.Client] = None,
        timeout: float = 120.0,
    ) -> None:
        self.client = client
        self.scheme_name = scheme_name
        self.client_id = client_id
        self.client_secret = client_secret
        self.scopes = scopes
        self.open_browser = open_browser
        self.http_client = http_client
        self.timeout = timeout
        self._attempt: Optional[AuthAttempt] = None
        self._lock = threading.Lock()

    @property
    def attempt(self) -> Optional[AuthAttempt]:
        """The current (or most recent) attempt."""
        return self._attempt

    @property
    def state(self) -> AuthState:
        return self._attempt.state if self._attempt is not None else AuthState.IDLE

    def scheme(self) -> SecurityScheme:
        """Return the configured scheme, checking the settings the flow needs.

        Raises:
            ConfigurationError: If the scheme is undeclared, is not an
                ``"OAuth 2.0"`` scheme, or lacks ``clientId``,
                ``authorizationUri`` or ``accessTokenUri``.
        """
        scheme = self.client.security_schemes.get(self.scheme_name)
        if scheme is None:
            raise ConfigurationError(f"Unknown security scheme '{self.scheme_name}'")
        if scheme.type != "OAuth 2.0":
            raise ConfigurationError(
                f"Security scheme '{self.scheme_name}' is '{scheme.type}', not 'OAuth 2.0'"
            )
        if not self.client_id:
            raise ConfigurationError('OAuth2 Code Grant: "clientId" is missing')
        if not _token_uri(scheme):
            raise ConfigurationError('OAuth2 Code Grant: "accessTokenUri" is missing')
        if not scheme.settings.get("authorizationUri"):
            raise ConfigurationError('OAuth2 Code Grant: "authorizationUri" is missing')
        return scheme

    def begin(self) -> AuthAttempt:
        """Create a fresh attempt, cancelling the one in flight."""
        with self._lock:
            previous = self._attempt
            if previous is not None and not previous.done:
                previous.cancel()
            self._attempt = AuthAttempt()
            return self._attempt

    def cancel(self) -> bool:
        attempt = self._attempt
        return attempt.cancel() if attempt is not None else False

    def start(self) -> dict[str, Any]:
        """Run the whole flow and return the token response.

        Raises:
            ConfigurationError: Missing scheme settings (before any attempt
                starts).
            AuthError: Cancellation, timeout, provider error, state
                mismatch, or a failed token exchange.
        """
        scheme = self.scheme()
        attempt = self.begin()
        try:
            token = self._run(attempt, scheme)
        except Exception as exc:
            if attempt.cancelled:
                raise AuthError("OAuth2 authorization was cancelled") from exc
            attempt.fail(exc)
            raise
        attempt.advance(AuthState.COMPLETE)
        self.client.authenticate(scheme.type, token)
        logger.debug("OAuth2 token stored for scheme '%s'", self.scheme_name)
        return token

    def authorization_url(
        self, scheme: SecurityScheme, redirect_uri: str, state: str, code_challenge: str
    ) -> str:
        params: dict[str, str] = {
            "response_type": "code",
            "client_id": self.client_id or "",
            "redirect_uri": redirect_uri,
            "state": state,
            "code_challenge": code_challenge,
            "code_challenge_method": "S256",
        }
        scopes = self.scopes if self.scopes is not None else scheme.settings.get("scopes")
        if scopes:
            params["scope"] = " ".join(scopes)
        base = scheme.settings["authorizationUri"]
        separator = "&" if "?" in base else "?"
        return f"{base}{separator}{urlencode(params)}"

    def _run(self, attempt: AuthAttempt, scheme: SecurityScheme) -> dict[str, Any]:
        code_verifier, code_challenge = generate_pkce_pair()
        state = secrets.token_urlsafe(16)
        port = _find_free_port()
        redirect_uri = f"http://127.0.0.1:{port}{CALLBACK_PATH}"
        auth_url = self.authorization_url(scheme, redirect_uri, state, code_challenge)

        result: dict[str, Optional[str]] = {}
        server = HTTPServer(("127.0.0.1", port), _callback_handler(result))
        server.timeout = POLL_INTERVAL
        try:
            attempt.advance(AuthState.AWAITING_USER_ACTION)
            # Open browser in a separate thread to avoid blocking
            threading.Thread(target=self.open_browser, args=(auth_url,), daemon=True).start()
            attempt.advance(AuthState.AWAITING_CALLBACK)
            deadline = time.monotonic() + self.timeout
            while not result:
                if attempt.cancelled:
                    raise AuthError("OAuth2 authorization was cancelled")
                if time.monotonic() > deadline:
                    raise AuthError(
                        f"OAuth2 authorization timed out after {self.timeout:g} seconds"
                    )
                server.handle_request()
        finally:
            server.server_close()

        error = describe_error(result)
        if error:
            raise AuthError(f"OAuth2 Code Grant: {error}")
        if result.get("state") != state:
            raise AuthError("OAuth2 Code Grant: State mismatch")
        if not result.get("code"):
            raise AuthError("OAuth2 Code Grant: Response code missing")

        return self._exchange_code(scheme, result["code"], code_verifier, redirect_uri)

    def _exchange_code(
        self,
        scheme: SecurityScheme,
        code: str,
        code_verifier: str,
        redirect_uri: str,
    ) -> dict[str, Any]:
        """Exchange the authorization code for an access token.

        Raises:
            AuthError: On HTTP errors, an error payload, or a response
                without ``access_token``.
        """
        data: dict[str, str] = {
            "grant_type": "authorization_code",
            "code": code,
            "redirect_uri": redirect_uri,
            "code_verifier": code_verifier,
            "client_id": self.client_id or "",
        }
        if self.client_secret:
            data["client_secret"] = self.client_secret

        http_client = self.http_client or httpx.Client(timeout=30.0)
        try:
            response = http_client.post(
                _token_uri(scheme), data=data, headers={"Accept": "application/json"}
            )
            token_data: dict[str, Any] = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            raise AuthError(f"Token exchange failed: {exc}") from exc
        finally:
            if self.http_client is None:
                http_client.close()

        error = describe_error(token_data)
        if error:
            raise AuthError(f"OAuth2 Code Grant: {error}")
        if response.is_error:
            raise AuthError(
                f"Token exchange failed with status {response.status_code}: {response.text}"
            )
        if "access_token" not in token_data:
            raise AuthError("Token response missing 'access_token' field")
        return token_data


def _token_uri(scheme: SecurityScheme) -> Optional[str]:
    return scheme.settings.get("accessTokenUri") or scheme.settings.get("accessTokenUrl")


def _callback_handler(result: dict[str, Optional[str]]) -> type[BaseHTTPRequestHandler]:
    """Build a request handler that records the first callback into *result*."""

    class CallbackHandler(BaseHTTPRequestHandler):
        def do_GET(self) -> None:
            parsed = urlparse(self.path)
            if parsed.path != CALLBACK_PATH:
                self.send_error(404)
                return
            params = {k: v[0] for k, v in parse_qs(parsed.query).items()}
            result.update(params)
            result.setdefault("code", None)

            if "error" in params:
                body = f"Authorization failed: {describe_error(params)}"
            else:
                body = "Authorization complete. You can close this window."
            self.send_response(200)
            self.send_header("Content-Type", "text/html; charset=utf-8")
            self.end_headers()
            self.wfile.write(f"<html><body><h2>{body}</h2></body></html>".encode("utf-8"))

        def log_message(self, format: str, *args: Any) -> None:
            # Suppress default logging
            pass

    return CallbackHandler
