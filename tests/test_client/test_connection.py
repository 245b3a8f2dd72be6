"""Tests for the scheduled connectivity check."""

from __future__ import annotations

import httpx
import pytest

from atelier_client.client.connection import ConnectionChecker
from atelier_client.models import ConnectionIdentity


IDENTITY = ConnectionIdentity(host="localhost", port=52773)


@pytest.fixture
def checker(provider, sessions, status, scheduler, fake_server):
    check = ConnectionChecker(
        provider=provider,
        sessions=sessions,
        status=status,
        scheduler=scheduler,
        default_connection="local",
        transport=fake_server.transport,
    )
    yield check
    scheduler.cancel_all()


def _server_info(fake_server, namespaces=("USER",)):
    def handler(req: httpx.Request):
        if req.method == "GET" and req.url.path == "/api/atelier/":
            return fake_server.json_response(
                fake_server.envelope(
                    {"version": "IRIS 2024.1", "api": 7, "namespaces": list(namespaces)}
                )
            )
        return None

    return handler


class TestConnectionChecker:
    @pytest.mark.asyncio
    async def test_success_reports_connected(
        self, checker, fake_server, status, store, quiet_output
    ) -> None:
        fake_server.handler = _server_info(fake_server)
        assert await checker() is True
        assert checker.runs == 1
        assert status.text == "localhost:52773[USER]"
        assert store.get("local:apiVersion") == 7

    @pytest.mark.asyncio
    async def test_force_drops_stale_session(
        self, checker, fake_server, sessions, quiet_output
    ) -> None:
        sessions.session(IDENTITY).set_cookies(["CSPSESSIONID=stale"])
        fake_server.handler = _server_info(fake_server)
        assert await checker(True) is True
        assert fake_server.methods() == ["HEAD", "GET"]
        assert sessions.session(IDENTITY).get_cookies() == [fake_server.session_cookie]

    @pytest.mark.asyncio
    async def test_uri_selects_connection(
        self, checker, fake_server, quiet_output
    ) -> None:
        fake_server.handler = _server_info(fake_server, namespaces=["SAMPLES"])
        assert await checker(False, "isfs://local/A.cls?ns=SAMPLES") is True

    @pytest.mark.asyncio
    async def test_inactive_connection_skipped(
        self, checker, fake_server, app_config, quiet_output
    ) -> None:
        app_config.connections["local"].active = False
        assert await checker() is False
        assert fake_server.requests == []

    @pytest.mark.asyncio
    async def test_unauthorized_does_not_reschedule(
        self, checker, fake_server, scheduler, capsys, plain_output
    ) -> None:
        fake_server.handler = lambda req: httpx.Response(401)
        assert await checker(True) is False
        assert scheduler.handles == []
        assert "Not authorized" in capsys.readouterr().err

    @pytest.mark.asyncio
    async def test_namespace_missing(
        self, checker, fake_server, capsys, plain_output
    ) -> None:
        fake_server.handler = _server_info(fake_server, namespaces=["%SYS"])
        assert await checker() is False
        assert "USER" in capsys.readouterr().err

    @pytest.mark.asyncio
    async def test_refused_reschedules(
        self, checker, fake_server, scheduler, quiet_output
    ) -> None:
        def _refused(req: httpx.Request):
            raise httpx.ConnectError("Connection refused", request=req)

        fake_server.handler = _refused
        assert await checker() is False
        assert [h.delay for h in scheduler.handles] == [30.0]
