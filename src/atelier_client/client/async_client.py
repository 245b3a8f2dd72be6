"""Asynchronous Atelier client -- the request pipeline.

:class:`AtelierClient` resolves its connection settings on every call and
pushes each request through the same steps:

1. fast failures (inactive connection, API version too old) with no I/O;
2. URL, query and header construction;
3. session acquisition -- cached cookies plus Basic credentials, or a wait
   on the single shared login probe (see
   :class:`~atelier_client.auth.coordinator.SessionManager`);
4. the HTTP exchange over a keep-alive :class:`httpx.AsyncClient`;
5. response handling -- cookie refresh, status indicator, envelope
   parsing, ``enc`` decoding, console forwarding, error classification.

A 401 or a refused connection also triggers recovery side effects (pending
handshake dropped, learned host/port forgotten, a delayed connectivity
re-check scheduled) before the error propagates to the caller.

See Also:
    :class:`~atelier_client.client.api.AtelierAPI` for the typed endpoint
    methods built on :meth:`AtelierClient.request`.
"""

from __future__ import annotations

import base64
import errno
import json
from typing import Any, Awaitable, Mapping, Optional, Protocol, Union

import httpx

from atelier_client.auth.coordinator import SessionManager, auth_target
from atelier_client.auth.session_cache import SessionCache, cookie_header
from atelier_client.client.envelope import (
    build_query,
    classify_envelope,
    decode_content,
    encode_uri,
    is_studio_action,
    parse_envelope,
)
from atelier_client.config import ConfigProvider, FileConfigProvider
from atelier_client.exceptions import (
    AuthError,
    ConnectionInactiveError,
    HTTPStatusError,
    TransportError,
    VersionUnsupportedError,
)
from atelier_client.models import ConnectionSettings, ResponseEnvelope
from atelier_client.output import channel_line, console_lines, debug
from atelier_client.scheduler import (
    RECHECK_AFTER_REFUSED,
    RECHECK_AFTER_UNAUTHORIZED,
    ReconnectScheduler,
)
from atelier_client.settings import (
    ConnectionContext,
    parse_context,
    resolve_settings,
    write_override,
)
from atelier_client.status import DISCONNECTED_SUFFIX, StatusBar, StatusIndicator


class ConnectivityCheck(Protocol):
    """Re-check trigger: ``check(force, uri)``; *force* clears cookies first."""

    def __call__(self, force: bool = False, uri: Optional[str] = None) -> Awaitable[Any]: ...


RequestResult = Union[ResponseEnvelope, list[str]]


class AtelierClient:
    """Session-aware client for one logical Atelier connection.

    Args:
        ws_or_uri: Connection name, or a document URI such as
            ``isfs://dev/MyApp/Utils.cls?ns=USER`` whose authority names
            the connection and whose ``ns`` selects the namespace.
        retry_after_401: Record the context so a 401 schedules a
            connectivity re-check against it. Connectivity checks
            themselves pass ``False`` to avoid re-checking in a loop.
        provider: Static configuration source. Defaults to the merged
            user/project configuration files.
        sessions: Process-wide session manager; its state store also holds
            the runtime overrides read by the settings resolver.
        status: Status-display sink.
        scheduler: Where delayed re-checks are scheduled.
        recheck: Connectivity re-check trigger. Defaults to a
            :class:`~atelier_client.client.connection.ConnectionChecker`
            sharing this client's collaborators.
        transport: Optional :class:`httpx.AsyncBaseTransport`, mainly for
            tests with :class:`httpx.MockTransport`.
        default_connection: Name used when *ws_or_uri* is empty.

    Example::

        async with AtelierClient("dev", sessions=manager) as client:
            envelope = await client.request(1, "GET", "USER/docnames/CLS/*")
    """

    def __init__(
        self,
        ws_or_uri: Optional[str] = None,
        retry_after_401: bool = True,
        *,
        provider: Optional[ConfigProvider] = None,
        sessions: Optional[SessionManager] = None,
        status: Optional[StatusIndicator] = None,
        scheduler: Optional[ReconnectScheduler] = None,
        recheck: Optional[ConnectivityCheck] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        default_connection: str = "",
    ) -> None:
        self.ws_or_uri = ws_or_uri if retry_after_401 else None
        self._context: ConnectionContext = parse_context(ws_or_uri, default_connection)
        self._namespace = self._context.namespace
        self._provider = provider if provider is not None else FileConfigProvider()
        self._sessions = sessions if sessions is not None else SessionManager()
        self._status = status if status is not None else StatusBar()
        self._scheduler = scheduler if scheduler is not None else ReconnectScheduler()
        self._recheck = recheck
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    # ------------------------------------------------------------------ #
    # Async context manager
    # ------------------------------------------------------------------ #

    async def __aenter__(self) -> AtelierClient:
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the keep-alive transport."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    # ------------------------------------------------------------------ #
    # Connection state
    # ------------------------------------------------------------------ #

    @property
    def config_name(self) -> str:
        return self._context.name

    @property
    def sessions(self) -> SessionManager:
        return self._sessions

    @property
    def status(self) -> StatusIndicator:
        return self._status

    @property
    def scheduler(self) -> ReconnectScheduler:
        return self._scheduler

    @property
    def provider(self) -> ConfigProvider:
        return self._provider

    @property
    def settings(self) -> ConnectionSettings:
        """Effective settings, recomputed on every access."""
        return resolve_settings(
            self.config_name,
            self._provider,
            self._sessions.store,
            namespace=self._namespace,
        )

    @property
    def ns(self) -> str:
        return (self._namespace or self.settings.namespace or "").upper()

    def set_namespace(self, namespace: str) -> None:
        self._namespace = namespace

    @property
    def enabled(self) -> bool:
        """The configured ``active`` flag, regardless of host/port."""
        return self.settings.active

    @property
    def active(self) -> bool:
        return self.settings.is_operable

    @property
    def session(self) -> SessionCache:
        return self._sessions.session(self.settings.identity)

    @property
    def cookies(self) -> list[str]:
        return self.session.get_cookies()

    def clear_cookies(self) -> None:
        self.session.clear()

    def update_cookies(self, new_cookies: list[str]) -> list[str]:
        return self.session.update_cookies(new_cookies)

    @property
    def conn_info(self) -> str:
        """``host:port[NS]``, or ``docker[:service:port][NS]`` for containers."""
        settings = self.settings
        if settings.is_containerized:
            where = "docker"
            if settings.container_service:
                where += f":{settings.container_service}:{settings.port}"
        else:
            where = f"{settings.host}:{settings.port}"
        return f"{where}[{self.ns}]"

    def xdebug_url(self) -> str:
        """Websocket URL of the server-side debugger endpoint."""
        s = self.settings
        proto = "wss" if s.is_secure else "ws"
        return (
            f"{proto}://{s.host}:{s.port}{s.normalized_path_prefix}"
            f"/api/atelier/v{s.api_version}/%25SYS/debug"
        )

    # ------------------------------------------------------------------ #
    # Request pipeline
    # ------------------------------------------------------------------ #

    async def request(
        self,
        min_version: int,
        method: str,
        path: str = "",
        body: Any = None,
        params: Optional[Mapping[str, Any]] = None,
        headers: Optional[Mapping[str, str]] = None,
        *,
        no_output: bool = False,
    ) -> RequestResult:
        """Execute one Atelier API call.

        Args:
            min_version: Lowest API version the operation exists in; ``0``
                for unversioned paths (server info, the login probe).
            method: HTTP method.
            path: Path below ``/api/atelier/`` (without the version prefix).
            body: JSON-serialisable body for PUT/POST; a ``str`` is sent
                as-is.
            params: Query parameters, see
                :func:`~atelier_client.client.envelope.build_query`.
            headers: Extra request headers.
            no_output: Do not forward the envelope's console lines.

        Returns:
            The parsed :class:`~atelier_client.models.ResponseEnvelope`, or
            the refreshed session cookies for ``HEAD``.

        Raises:
            ConnectionInactiveError: Connection inactive or host/port unset.
            VersionUnsupportedError: *min_version* above the negotiated version.
            AuthError: HTTP 401.
            HTTPStatusError: Any other non-2xx status.
            ProtocolError: The envelope reports an error.
            TransportError: The connection failed.
        """
        settings = self.settings
        if not settings.is_operable:
            raise ConnectionInactiveError(self.config_name)
        if min_version > settings.api_version:
            raise VersionUnsupportedError(path, min_version, settings.api_version)
        if min_version > 0:
            path = f"v{settings.api_version}/{path}"

        method = method.upper()
        request_headers = self._build_headers(method, headers)
        url = self._build_url(settings, path, params)

        session = self._sessions.session(settings.identity)
        target = auth_target(settings.username, settings.host, settings.port)

        try:
            cookies = session.get_cookies()
            if cookies or method == "HEAD":
                request_headers["Authorization"] = _basic_auth(
                    settings.username, settings.password
                )
            else:
                # A probe refused by the server runs the refused-connection
                # recovery itself; the waiter then sees our TransportError,
                # not an httpx one, so that recovery happens only once.
                cookies = await self._sessions.acquire(
                    target, lambda: self.request(0, "HEAD")
                )
            if cookies:
                request_headers["Cookie"] = cookie_header(cookies)

            debug(f"{method} {url}")
            response = await self._send(settings, method, url, request_headers, body)

            if response.status_code == 401:
                self._sessions.discard(target)
                self._schedule_recheck_after_unauthorized()
                raise AuthError(response.reason_phrase or "Unauthorized")

            session.update_cookies(response.headers.get_list("set-cookie"))
            self._report_connected(settings)

            if method == "HEAD":
                self._sessions.discard(target)
                return session.get_cookies()

            if not response.is_success:
                raise HTTPStatusError(response.status_code, response.reason_phrase)

            return self._handle_envelope(response.content, no_output)

        except httpx.ConnectError as exc:
            if not _is_refused(exc):
                raise TransportError(str(exc), code="ECONNECT", url=url) from exc
            self._handle_refused(target)
            raise TransportError(
                f"Connection refused: {settings.host}:{settings.port}",
                code="ECONNREFUSED",
                url=url,
            ) from exc
        except httpx.TransportError as exc:
            raise TransportError(str(exc) or type(exc).__name__, url=url) from exc

    # ------------------------------------------------------------------ #
    # Private helpers
    # ------------------------------------------------------------------ #

    def _build_headers(
        self, method: str, headers: Optional[Mapping[str, str]]
    ) -> dict[str, str]:
        merged: dict[str, str] = dict(headers or {})
        merged["Accept"] = "application/json"
        has_content_type = any(k.lower() == "content-type" for k in merged)
        if method in ("PUT", "POST") and not has_content_type:
            merged["Content-Type"] = "application/json"
        merged["Cache-Control"] = "no-cache"
        return merged

    def _build_url(
        self,
        settings: ConnectionSettings,
        path: str,
        params: Optional[Mapping[str, Any]],
    ) -> str:
        location = f"{settings.normalized_path_prefix}/api/atelier/{path or ''}{build_query(params)}"
        return f"{settings.scheme}://{settings.host}:{settings.port}{encode_uri(location)}"

    def _http(self, settings: ConnectionSettings) -> httpx.AsyncClient:
        if self._client is None:
            http = self._provider.http()
            kwargs: dict[str, Any] = {
                "timeout": http.timeout,
                "limits": httpx.Limits(
                    max_connections=http.max_connections,
                    max_keepalive_connections=http.max_connections,
                ),
                "verify": http.strict_ssl if settings.is_secure else True,
            }
            if self._transport is not None:
                kwargs["transport"] = self._transport
            self._client = httpx.AsyncClient(**kwargs)
        return self._client

    async def _send(
        self,
        settings: ConnectionSettings,
        method: str,
        url: str,
        headers: dict[str, str],
        body: Any,
    ) -> httpx.Response:
        content: Optional[bytes] = None
        if method in ("PUT", "POST"):
            text = body if isinstance(body, str) else json.dumps(body)
            content = text.encode("utf-8")
        return await self._http(settings).request(
            method, url, headers=headers, content=content
        )

    def _handle_envelope(self, raw: bytes, no_output: bool) -> ResponseEnvelope:
        envelope = decode_content(parse_envelope(raw))
        if envelope.console and not is_studio_action(envelope) and not no_output:
            console_lines(envelope.console)
        if envelope.result.status:
            channel_line(envelope.result.status)
        failure = classify_envelope(envelope)
        if failure is not None:
            raise failure
        return envelope

    def _report_connected(self, settings: ConnectionSettings) -> None:
        prefix = settings.normalized_path_prefix
        self._status.text = self.conn_info
        self._status.tooltip = (
            f"Connected{' to ' + prefix if prefix else ''} as {settings.username}"
        )

    def _handle_refused(self, target: str) -> None:
        self._sessions.discard(target)
        self._status.text = f"{self.conn_info}{DISCONNECTED_SUFFIX}"
        self._status.tooltip = "Disconnected"
        write_override(self.config_name, self._sessions.store, "host", None)
        write_override(self.config_name, self._sessions.store, "port", None)
        self._scheduler.schedule(
            RECHECK_AFTER_REFUSED,
            lambda: self._connectivity_check()(),
            label="after-refused",
        )

    def _schedule_recheck_after_unauthorized(self) -> None:
        if not self.ws_or_uri:
            return
        uri = self._context.uri
        self._scheduler.schedule(
            RECHECK_AFTER_UNAUTHORIZED,
            lambda: self._connectivity_check()(True, uri),
            label="after-401",
        )

    def _connectivity_check(self) -> ConnectivityCheck:
        if self._recheck is None:
            from atelier_client.client.connection import ConnectionChecker

            self._recheck = ConnectionChecker(
                provider=self._provider,
                sessions=self._sessions,
                status=self._status,
                scheduler=self._scheduler,
                default_connection=self.config_name,
                transport=self._transport,
            )
        return self._recheck


def _basic_auth(username: str, password: str) -> str:
    token = base64.b64encode(f"{username}:{password}".encode("utf-8")).decode("ascii")
    return f"Basic {token}"


def _is_refused(exc: BaseException) -> bool:
    """Walk the exception chain looking for a refused connection."""
    seen: set[int] = set()
    current: Optional[BaseException] = exc
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        if isinstance(current, ConnectionRefusedError):
            return True
        if isinstance(current, OSError) and current.errno == errno.ECONNREFUSED:
            return True
        if "refused" in str(current).lower():
            return True
        current = current.__cause__ or current.__context__
    return False
