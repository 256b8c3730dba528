"""Shared test fixtures for apitree.

Provides the example API description, clients wired to an
:class:`httpx.MockTransport` that records every request, isolated config
directories, and output state management. These fixtures are automatically
discovered by pytest and available to all test modules.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Callable, Optional

import httpx
import pytest

from apitree.client import Dispatcher, HttpxTransport, create_default_dispatcher
from apitree.generator import RootClient, generate_client
from apitree.models import ApiSpec
from apitree.output import OutputFormat, OutputManager, reset_output, set_output
from apitree.parser import sanitize_ast


FIXTURES_DIR = Path(__file__).parent / "fixtures"

Handler = Callable[[httpx.Request], httpx.Response]


# ---------------------------------------------------------------------------
# Auto-reset global output state between tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_output_between_tests() -> None:
    """Reset the global OutputManager after every test.

    The OutputManager caches references to sys.stdout/sys.stderr at
    creation time. When Typer's CliRunner redirects those streams during
    a test, the cached references become stale. Resetting forces a fresh
    manager to be created on next use.
    """
    yield
    reset_output()


# ---------------------------------------------------------------------------
# API description fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def example_path() -> Path:
    return FIXTURES_DIR / "example_api.json"


@pytest.fixture
def example_raw(example_path: Path) -> dict[str, Any]:
    """Load the raw example API description (RAML parser output shape)."""
    with open(example_path) as f:
        return json.load(f)


@pytest.fixture
def example_api(example_raw: dict[str, Any]) -> ApiSpec:
    return sanitize_ast(example_raw)


# ---------------------------------------------------------------------------
# Transport fixtures
# ---------------------------------------------------------------------------


def json_handler(data: Any = None, status_code: int = 200) -> Handler:
    """A MockTransport handler answering every request with *data* as JSON."""

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status_code, json=data if data is not None else {"ok": True})

    return handler


class Recorder:
    """Records requests sent through a MockTransport and answers via *handler*."""

    def __init__(self, handler: Optional[Handler] = None) -> None:
        self.handler = handler or json_handler()
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.handler(request)

    @property
    def last(self) -> httpx.Request:
        return self.requests[-1]

    def transport(self) -> HttpxTransport:
        mock = httpx.MockTransport(self)
        return HttpxTransport(
            client=httpx.Client(transport=mock),
            async_client=httpx.AsyncClient(transport=mock),
        )


@pytest.fixture
def recorder() -> Recorder:
    return Recorder()


@pytest.fixture
def make_client(recorder: Recorder) -> Callable[..., RootClient]:
    """Factory compiling a description into a client that sends through *recorder*.

    Example::

        client = make_client(example_raw)
        client.users.get()
        assert recorder.last.url.path == "/v1/users"
    """

    def factory(ast: Any, config: Any = None, **kwargs: Any) -> RootClient:
        dispatcher: Dispatcher = kwargs.pop("dispatcher", None) or create_default_dispatcher(
            transport=recorder.transport()
        )
        return generate_client(ast, config, dispatcher=dispatcher, **kwargs)

    return factory


@pytest.fixture
def example_client(make_client: Callable[..., RootClient], example_raw: dict[str, Any]) -> RootClient:
    return make_client(example_raw)


# ---------------------------------------------------------------------------
# Config isolation fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Isolate settings and credentials to a temporary directory.

    Sets XDG_CONFIG_HOME and XDG_DATA_HOME to subdirectories of tmp_path so
    that tests never touch real user config, and clears all APITREE_*
    environment variables.

    Returns:
        The tmp_path root directory for additional file creation.
    """
    monkeypatch.setattr("apitree.config._is_xdg_platform", lambda: True)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))

    for var in ["APITREE_TIMEOUT", "APITREE_PROXY_URL", "APITREE_VERIFY_SSL"]:
        monkeypatch.delenv(var, raising=False)

    monkeypatch.chdir(tmp_path)
    return tmp_path


# ---------------------------------------------------------------------------
# Output fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def quiet_output() -> OutputManager:
    """Install a quiet PLAIN-format OutputManager for the test."""
    output = OutputManager(format=OutputFormat.PLAIN, quiet=True)
    set_output(output)
    yield output
    reset_output()


@pytest.fixture
def cli_runner():
    """Typer CLI test runner."""
    from typer.testing import CliRunner

    return CliRunner()
