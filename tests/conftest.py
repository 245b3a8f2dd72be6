"""Shared test fixtures for atelier_client.

Provides reusable fixtures for isolated config environments, output state,
in-memory collaborators of the async client, fake Atelier servers built on
:class:`httpx.MockTransport`, and the CLI runner. These fixtures are
automatically discovered by pytest and available to all test modules.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Callable, Optional

import httpx
import pytest

from atelier_client.auth.coordinator import SessionManager
from atelier_client.config import FileConfigProvider
from atelier_client.models import AppConfig, ConnectionBlock, ServerDefinition, WebServer
from atelier_client.output import OutputFormat, OutputManager, reset_output, set_output
from atelier_client.scheduler import ReconnectScheduler
from atelier_client.state import MemoryStateStore
from atelier_client.status import StatusBar


# ---------------------------------------------------------------------------
# Auto-reset global output state between tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_output_between_tests() -> None:
    """Reset the global OutputManager after every test.

    The OutputManager caches references to sys.stdout/sys.stderr at
    creation time. When Typer's CliRunner redirects those streams during
    a test and the test finishes, the cached references become stale.
    Resetting forces a fresh manager to be created on next use.
    """
    yield
    reset_output()


# ---------------------------------------------------------------------------
# Config isolation fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Isolate configuration to a temporary directory.

    Sets XDG_CONFIG_HOME, XDG_CACHE_HOME, and XDG_DATA_HOME to
    subdirectories of tmp_path so that tests never touch real user
    config, clears ATELIER_CONNECTION and changes the working directory
    to tmp_path.
    """
    monkeypatch.setattr("atelier_client.config._is_xdg_platform", lambda: True)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("XDG_CACHE_HOME", str(tmp_path / "cache"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))
    monkeypatch.delenv("ATELIER_CONNECTION", raising=False)
    monkeypatch.chdir(tmp_path)
    return tmp_path


# ---------------------------------------------------------------------------
# Output fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def quiet_output() -> OutputManager:
    """Install a PLAIN-format, quiet OutputManager as the global output."""
    output = OutputManager(format=OutputFormat.PLAIN, quiet=True, no_color=True)
    set_output(output)
    yield output
    reset_output()


@pytest.fixture
def plain_output() -> OutputManager:
    """Install a PLAIN-format, colourless OutputManager."""
    output = OutputManager(format=OutputFormat.PLAIN, no_color=True)
    set_output(output)
    yield output
    reset_output()


# ---------------------------------------------------------------------------
# Configuration fixtures
# ---------------------------------------------------------------------------


def _make_config(**connections: ConnectionBlock) -> AppConfig:
    return AppConfig(
        servers={
            "dev": ServerDefinition(
                web_server=WebServer(host="iris.local", port=52773),
                username="_SYSTEM",
                password="SYS",
            )
        },
        connections=connections,
    )


@pytest.fixture
def app_config() -> AppConfig:
    """A config with an inline ``local`` connection and a ``viaserver`` block."""
    return _make_config(
        local=ConnectionBlock(
            active=True,
            host="localhost",
            port=52773,
            ns="USER",
            username="admin",
            password="secret",
        ),
        viaserver=ConnectionBlock(active=True, server="dev", ns="samples"),
    )


@pytest.fixture
def provider(app_config: AppConfig) -> FileConfigProvider:
    return FileConfigProvider(app_config)


@pytest.fixture
def store() -> MemoryStateStore:
    return MemoryStateStore()


@pytest.fixture
def sessions(store: MemoryStateStore) -> SessionManager:
    return SessionManager(store)


@pytest.fixture
def status() -> StatusBar:
    return StatusBar()


@pytest.fixture
def scheduler() -> ReconnectScheduler:
    return ReconnectScheduler()


# ---------------------------------------------------------------------------
# Fake Atelier server
# ---------------------------------------------------------------------------


def _envelope(
    content: Any = None,
    *,
    console: Optional[list[str]] = None,
    errors: Optional[list[Any]] = None,
    summary: str = "",
    result_status: str = "",
    enc: Optional[bool] = None,
) -> dict[str, Any]:
    """Build a raw Atelier response envelope."""
    result: dict[str, Any] = {"content": content if content is not None else []}
    if result_status:
        result["status"] = result_status
    if enc is not None:
        result["enc"] = enc
    return {
        "status": {"errors": errors or [], "summary": summary},
        "console": console or [],
        "result": result,
    }


def _json_response(
    data: Any,
    status_code: int = 200,
    cookies: Optional[list[str]] = None,
) -> httpx.Response:
    headers = [("content-type", "application/json")]
    for cookie in cookies or []:
        headers.append(("set-cookie", cookie))
    return httpx.Response(status_code, headers=headers, content=json.dumps(data).encode())


class FakeServer:
    """Records requests and answers them from a handler function.

    HEAD requests answer 200 with a session cookie unless the handler
    deals with them itself by returning a response.
    """

    envelope = staticmethod(_envelope)
    json_response = staticmethod(_json_response)

    def __init__(self, handler: Optional[Callable[[httpx.Request], Any]] = None) -> None:
        self.handler = handler
        self.requests: list[httpx.Request] = []
        self.session_cookie = "CSPSESSIONID=s1; path=/; httpOnly"

    def methods(self) -> list[str]:
        return [r.method for r in self.requests]

    def count(self, method: str) -> int:
        return self.methods().count(method)

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.handler is not None:
            response = self.handler(request)
            if response is not None:
                return response
        if request.method == "HEAD":
            return httpx.Response(200, headers=[("set-cookie", self.session_cookie)])
        return _json_response(_envelope([]))

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)


@pytest.fixture
def fake_server() -> FakeServer:
    return FakeServer()


# ---------------------------------------------------------------------------
# CLI runner fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def cli_runner():
    """Typer CLI test runner."""
    from typer.testing import CliRunner

    return CliRunner()
