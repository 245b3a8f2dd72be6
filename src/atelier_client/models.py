"""Canonical Pydantic models shared across all atelier_client modules.

This is the single source of truth for data shapes in the project. The
models fall into three groups:

**Configuration models** -- serialised as JSON (or YAML for project files):
    :class:`WebServer`, :class:`ServerDefinition`, :class:`ConnectionBlock`,
    :class:`HTTPConfig` and :class:`AppConfig`.

**Connection models** -- computed on every access from configuration plus
runtime state:
    :class:`ConnectionIdentity`, :class:`ConnectionOverrides` and
    :class:`ConnectionSettings`.

**Wire models** -- the Atelier response envelope:
    :class:`EnvelopeStatus`, :class:`EnvelopeResult`,
    :class:`ResponseEnvelope` and :class:`ServerInfo`.
"""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


# --- Configuration ---


class WebServer(BaseModel):
    """Web server address of a registered server definition."""

    scheme: str = Field(default="http", description="http or https")
    host: str = ""
    port: int = 0
    path_prefix: str = Field(default="", description="Prefix before /api/atelier")


class ServerDefinition(BaseModel):
    """A registered (external) server, defined at user level.

    External servers take precedence over workspace-local connection
    blocks of the same name.

    Example::

        ServerDefinition(
            web_server=WebServer(scheme="https", host="iris.local", port=52773),
            username="_SYSTEM",
            password="SYS",
        )
    """

    web_server: WebServer = Field(default_factory=WebServer)
    username: str = ""
    password: str = ""
    description: Optional[str] = None


class ConnectionBlock(BaseModel):
    """Workspace-local connection settings.

    When ``server`` names a registered :class:`ServerDefinition`, that
    definition supplies the address and credentials and only ``active``
    and ``ns`` are read from this block.
    """

    model_config = ConfigDict(extra="allow")

    active: bool = False
    server: Optional[str] = None
    https: bool = False
    host: str = ""
    port: int = 0
    path_prefix: str = ""
    ns: str = ""
    username: str = ""
    password: str = ""


class HTTPConfig(BaseModel):
    """Transport settings applied to every request."""

    strict_ssl: bool = Field(default=True, description="Verify TLS certificates")
    timeout: float = Field(default=30.0, description="Request timeout in seconds")
    max_connections: int = Field(default=10, description="Keep-alive socket pool size")


class AppConfig(BaseModel):
    """User-wide configuration persisted at ``~/.config/atelier/config.json``.

    Loaded and saved by :func:`~atelier_client.config.load_app_config` and
    :func:`~atelier_client.config.save_app_config`. Project files
    (``./atelier.json`` or ``./atelier.yaml``) are layered on top by
    :func:`~atelier_client.config.resolve_config`.
    """

    servers: dict[str, ServerDefinition] = Field(default_factory=dict)
    connections: dict[str, ConnectionBlock] = Field(default_factory=dict)
    default_connection: Optional[str] = None
    http: HTTPConfig = Field(default_factory=HTTPConfig)


# --- Connection ---


class ConnectionIdentity(BaseModel):
    """The ``(host, port)`` pair that addresses session cookies and status display."""

    model_config = ConfigDict(frozen=True)

    host: str
    port: int

    @property
    def key(self) -> str:
        return f"{self.host}:{self.port}"


class ConnectionOverrides(BaseModel):
    """Sparse layer of runtime-learned values; ``None`` means not overridden."""

    host: Optional[str] = None
    port: Optional[int] = None
    password: Optional[str] = None
    api_version: Optional[int] = None
    is_containerized: Optional[bool] = None
    container_service: Optional[str] = None


class ConnectionSettings(BaseModel):
    """Effective connection parameters for one logical connection name."""

    server_name: str = ""
    active: bool = False
    api_version: int = 1
    is_secure: bool = False
    host: str = ""
    port: int = 0
    path_prefix: str = ""
    namespace: str = ""
    username: str = ""
    password: str = ""
    is_containerized: bool = False
    container_service: Optional[str] = None

    @property
    def identity(self) -> ConnectionIdentity:
        return ConnectionIdentity(host=self.host, port=self.port)

    @property
    def is_operable(self) -> bool:
        """Active flag set, and a non-empty host and positive port present."""
        return bool(self.active) and len(self.host or "") > 0 and (self.port or 0) > 0

    @property
    def scheme(self) -> str:
        return "https" if self.is_secure else "http"

    @property
    def normalized_path_prefix(self) -> str:
        prefix = self.path_prefix or ""
        if prefix and not prefix.startswith("/"):
            prefix = "/" + prefix
        return prefix


# --- Wire ---


class EnvelopeStatus(BaseModel):
    """``status`` member of the response envelope."""

    model_config = ConfigDict(extra="allow")

    summary: str = ""
    errors: list[Any] = Field(default_factory=list)


class EnvelopeResult(BaseModel):
    """``result`` member of the response envelope.

    ``content`` is whatever the endpoint returns; after base64 decoding it
    holds ``bytes`` and ``enc`` is ``False``.
    """

    model_config = ConfigDict(extra="allow")

    status: str = ""
    content: Any = None
    enc: bool = False


class ResponseEnvelope(BaseModel):
    """The uniform JSON wrapper every Atelier endpoint returns."""

    model_config = ConfigDict(extra="allow")

    status: EnvelopeStatus = Field(default_factory=EnvelopeStatus)
    console: list[str] = Field(default_factory=list)
    result: EnvelopeResult = Field(default_factory=EnvelopeResult)


class ServerInfo(BaseModel):
    """Content of the capability endpoint (``GET /api/atelier/``)."""

    model_config = ConfigDict(extra="allow")

    version: str = ""
    id: str = ""
    api: int = 0
    features: list[Any] = Field(default_factory=list)
    namespaces: list[str] = Field(default_factory=list)
