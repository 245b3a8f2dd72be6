"""Connectivity re-check -- the default target of scheduled reconnection checks.

After a 401 or a refused connection the request pipeline schedules a call
to a :class:`ConnectionChecker`. The checker builds a fresh
:class:`~atelier_client.client.api.AtelierAPI` for the originating context
(with 401 re-checks disabled, so a failing check cannot schedule another
one), optionally drops the stale session, and asks the server for its
capabilities. The outcome is reported on the status indicator and through
the output system; the check itself never raises.
"""

from __future__ import annotations

from typing import Optional

import httpx

from atelier_client.auth.coordinator import SessionManager
from atelier_client.config import ConfigProvider
from atelier_client.exceptions import AtelierError, AuthError, NamespaceNotFoundError
from atelier_client.output import debug, error, warning
from atelier_client.scheduler import ReconnectScheduler
from atelier_client.status import StatusIndicator


class ConnectionChecker:
    """Callable connectivity check sharing a client's collaborators.

    Args:
        provider: Static configuration source.
        sessions: Process-wide session manager.
        status: Status-display sink.
        scheduler: Scheduler handed to the probing client.
        default_connection: Connection checked when no URI is given.
        transport: Optional httpx transport for the probing client.
    """

    def __init__(
        self,
        provider: ConfigProvider,
        sessions: SessionManager,
        status: StatusIndicator,
        scheduler: ReconnectScheduler,
        default_connection: str = "",
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._provider = provider
        self._sessions = sessions
        self._status = status
        self._scheduler = scheduler
        self._default_connection = default_connection
        self._transport = transport
        self.runs = 0

    async def __call__(self, force: bool = False, uri: Optional[str] = None) -> bool:
        """Probe the connection; returns whether the server answered.

        Args:
            force: Clear the cached session cookies before probing.
            uri: Originating document URI; the default connection when
                ``None``.
        """
        from atelier_client.client.api import AtelierAPI

        self.runs += 1
        api = AtelierAPI(
            uri or self._default_connection,
            retry_after_401=False,
            provider=self._provider,
            sessions=self._sessions,
            status=self._status,
            scheduler=self._scheduler,
            recheck=self,
            transport=self._transport,
        )
        async with api:
            if not api.active:
                debug(f"Connection '{api.config_name}' is not active; skipping check")
                return False
            if force:
                api.clear_cookies()
            try:
                await api.server_info()
            except AuthError:
                warning(f"Not authorized on {api.conn_info} as {api.settings.username}")
                return False
            except NamespaceNotFoundError as exc:
                error(str(exc))
                return False
            except AtelierError as exc:
                warning(f"Connection check for {api.conn_info} failed: {exc}")
                return False
            debug(f"Connection check for {api.conn_info} succeeded")
            return True
