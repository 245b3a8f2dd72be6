"""Session commands -- inspect or drop the cached session of a connection.

The session cookies and the runtime overrides learned from the server
(API version, container settings) live in the on-disk state store, so
they survive between CLI invocations. These commands read and reset that
state without contacting the server.
"""

from __future__ import annotations

import typer

from atelier_client.auth.session_cache import cookie_name
from atelier_client.client.api import AtelierAPI
from atelier_client.output import format_response, info, success
from atelier_client.runtime import run_with_api
from atelier_client.settings import OVERRIDE_KEYS, read_overrides, write_override


session_app = typer.Typer(no_args_is_help=True)


@session_app.command("show")
def session_show(ctx: typer.Context) -> None:
    """Show the cached session and learned overrides of a connection.

    Cookie values are never printed, only their names.

    Example::

        atelier -c dev session show
    """

    async def _run(api: AtelierAPI) -> dict:
        settings = api.settings
        overrides = read_overrides(api.config_name, api.sessions.store)
        return {
            "connection": api.config_name,
            "server": f"{settings.host}:{settings.port}",
            "active": api.active,
            "api_version": settings.api_version,
            "cookies": [cookie_name(c) for c in api.cookies],
            "overrides": overrides.model_dump(exclude_none=True, exclude={"password"}),
        }

    format_response(run_with_api(ctx, _run))


@session_app.command("clear")
def session_clear(
    ctx: typer.Context,
    overrides: bool = typer.Option(
        False, "--overrides", help="Also forget the learned overrides."
    ),
) -> None:
    """Drop the session cookies so the next request logs in again.

    Example::

        atelier -c dev session clear
        atelier -c dev session clear --overrides
    """

    async def _run(api: AtelierAPI) -> str:
        api.clear_cookies()
        if overrides:
            for field in OVERRIDE_KEYS:
                write_override(api.config_name, api.sessions.store, field, None)
        return api.conn_info

    where = run_with_api(ctx, _run)
    success(f"Session cleared for {where}")
    if overrides:
        info("Learned overrides removed")
