"""Effective connection settings: static configuration plus runtime overrides.

Settings are modelled as two layers:

1. a **static layer** built from configuration -- either a registered
   external server definition or a workspace-local connection block;
2. a sparse **override layer** of values learned at runtime and kept in
   the :class:`~atelier_client.state.StateStore` (negotiated API version,
   a server that moved to another host or port, a password entered
   interactively, container flags).

:func:`merge_settings` combines them: each field takes the override when
one is present and the static value otherwise. :func:`resolve_settings`
runs the whole resolution and is called on every access; nothing here is
cached.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional
from urllib.parse import parse_qs, unquote, urlsplit

from atelier_client.config import ConfigProvider
from atelier_client.exceptions import ConfigError
from atelier_client.models import ConnectionOverrides, ConnectionSettings
from atelier_client.state import StateStore

DEFAULT_API_VERSION = 1

# URI schemes whose authority names a connection.
FILE_SCHEMES = ("isfs", "isfs-readonly", "objectscript", "objectscriptxml")

# State-store key suffix for each overridable field.
OVERRIDE_KEYS = {
    "host": "host",
    "port": "port",
    "password": "password",
    "api_version": "apiVersion",
    "is_containerized": "docker",
    "container_service": "dockerService",
}


@dataclass(frozen=True)
class ConnectionContext:
    """The logical connection a client was created for.

    Attributes:
        name: Workspace or connection name; also the prefix of every
            override key in the state store.
        namespace: Namespace carried by the context (``?ns=`` on a URI),
            empty when none.
        uri: The originating document URI, if the context was one.
    """

    name: str
    namespace: str = ""
    uri: Optional[str] = None


def parse_context(ws_or_uri: Optional[str], default_name: str = "") -> ConnectionContext:
    """Derive a :class:`ConnectionContext` from a connection name or document URI.

    ``isfs://dev/MyApp/Utils.cls?ns=USER`` resolves to connection ``dev``
    with namespace ``USER``. URIs with any other scheme, and empty input,
    fall back to *default_name*.
    """
    if not ws_or_uri:
        return ConnectionContext(name=default_name)
    if "://" not in ws_or_uri:
        return ConnectionContext(name=ws_or_uri)

    parts = urlsplit(ws_or_uri)
    if parts.scheme not in FILE_SCHEMES:
        return ConnectionContext(name=default_name, uri=ws_or_uri)
    query = parse_qs(unquote(parts.query))
    namespace = (query.get("ns") or [""])[0]
    return ConnectionContext(
        name=parts.netloc or default_name,
        namespace=namespace,
        uri=ws_or_uri,
    )


def read_overrides(name: str, state: StateStore) -> ConnectionOverrides:
    """Read the override layer for connection *name* from the state store."""
    values = {
        field: state.get(f"{name}:{suffix}")
        for field, suffix in OVERRIDE_KEYS.items()
    }
    return ConnectionOverrides(**values)


def write_override(name: str, state: StateStore, field: str, value: object) -> None:
    """Persist one override; ``None`` clears it."""
    state.update(f"{name}:{OVERRIDE_KEYS[field]}", value)


def merge_settings(
    static: ConnectionSettings, overrides: ConnectionOverrides
) -> ConnectionSettings:
    """Return *static* with every present override applied. Pure."""
    changes = {
        field: value
        for field, value in overrides.model_dump().items()
        if value is not None
    }
    return static.model_copy(update=changes)


def _static_settings(
    name: str, namespace: str, provider: ConfigProvider
) -> tuple[ConnectionSettings, bool]:
    """Build the static layer; returns ``(settings, is_external_server)``."""
    conn = provider.connection(name)
    servers = provider.servers()

    server_name = name.lower()
    external = server_name in servers
    if not external:
        server_name = (conn.server or "").lower()

    ns = namespace or conn.ns
    if server_name:
        definition = servers.get(server_name)
        if definition is None:
            raise ConfigError(
                f"Connection '{name}' refers to unknown server '{server_name}'"
            )
        web = definition.web_server
        settings = ConnectionSettings(
            server_name=server_name,
            active=external or conn.active,
            is_secure=web.scheme == "https",
            host=web.host,
            port=web.port,
            path_prefix=web.path_prefix,
            namespace=ns.upper(),
            username=definition.username,
            password=definition.password,
        )
        # A server-only context without a namespace is not operable; marking
        # it inactive keeps the connection checker quiet.
        if not ns and external:
            settings.active = False
        return settings, external

    settings = ConnectionSettings(
        server_name="",
        active=conn.active,
        is_secure=conn.https,
        host=conn.host,
        port=conn.port,
        path_prefix=conn.path_prefix,
        namespace=ns.upper(),
        username=conn.username,
        password=conn.password,
    )
    return settings, False


def resolve_settings(
    name: str,
    provider: ConfigProvider,
    state: StateStore,
    namespace: str = "",
) -> ConnectionSettings:
    """Compute the effective :class:`ConnectionSettings` for *name*.

    Args:
        name: Logical connection name (workspace folder or server name).
        provider: Source of static definitions.
        state: Runtime state holding the override layer.
        namespace: Explicit namespace; beats the configured one.

    Raises:
        ConfigError: If a connection block names an unregistered server.
    """
    static, external = _static_settings(name, namespace, provider)
    overrides = read_overrides(name, state)
    if external:
        # External servers are addressed by their definition only.
        overrides.host = None
        overrides.port = None
    if overrides.api_version is None:
        overrides.api_version = DEFAULT_API_VERSION
    return merge_settings(static, overrides)
