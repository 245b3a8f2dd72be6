"""Wiring between CLI commands and the async client.

Commands call :func:`run_with_api` with a coroutine function taking an
:class:`~atelier_client.client.api.AtelierAPI`. It resolves the
configuration and the connection name from the Typer context, opens the
persistent state store, runs the coroutine on a fresh event loop and
cancels any reconnection check still pending when the command finishes.
"""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable, Optional, TypeVar

import httpx
import typer

from atelier_client.auth.coordinator import SessionManager
from atelier_client.client.api import AtelierAPI
from atelier_client.config import (
    FileConfigProvider,
    get_cache_dir,
    resolve_config,
    resolve_connection_name,
)
from atelier_client.exceptions import AtelierError
from atelier_client.output import error
from atelier_client.state import DiskStateStore

T = TypeVar("T")


def create_transport() -> Optional[httpx.AsyncBaseTransport]:
    """Transport for CLI clients; ``None`` selects httpx's default."""
    return None


def _options(ctx: Optional[typer.Context]) -> dict[str, Any]:
    if ctx is None:
        return {}
    root = ctx.find_root()
    return root.obj if isinstance(root.obj, dict) else {}


def build_api(ctx: Optional[typer.Context], store: DiskStateStore) -> AtelierAPI:
    """Create an :class:`AtelierAPI` for the connection selected on the command line."""
    opts = _options(ctx)
    config = resolve_config()
    name = resolve_connection_name(config, opts.get("connection"))
    api = AtelierAPI(
        name,
        provider=FileConfigProvider(config),
        sessions=SessionManager(store),
        transport=create_transport(),
    )
    if opts.get("namespace"):
        api.set_namespace(opts["namespace"])
    return api


def run_with_api(
    ctx: Optional[typer.Context],
    operation: Callable[[AtelierAPI], Awaitable[T]],
) -> T:
    """Run *operation* against the selected connection and return its result.

    Raises:
        typer.Exit: With the error's exit code when an
            :class:`~atelier_client.exceptions.AtelierError` escapes, after
            printing it to stderr.
    """
    store = DiskStateStore(get_cache_dir())

    async def _main() -> T:
        api = build_api(ctx, store)
        try:
            async with api:
                return await operation(api)
        finally:
            api.scheduler.cancel_all()

    try:
        return asyncio.run(_main())
    except AtelierError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None
    finally:
        store.close()
