"""Config commands -- manage registered servers and connection blocks.

Edits the user configuration file (:class:`~atelier_client.models.AppConfig`)
in the atelier config directory. A project file (``atelier.json`` or
``atelier.yaml``) in the working directory is layered on top at runtime and
is never written by these commands.
"""

from __future__ import annotations

from typing import Optional

import typer

from atelier_client.exit_codes import EXIT_INVALID_USAGE, EXIT_NOT_FOUND
from atelier_client.output import error, format_response, info, success


config_app = typer.Typer(no_args_is_help=True)


def _redact(data: dict) -> dict:
    for server in data.get("servers", {}).values():
        if server.get("password"):
            server["password"] = "***"
    for block in data.get("connections", {}).values():
        if block.get("password"):
            block["password"] = "***"
    return data


@config_app.command("show")
def config_show(
    effective: bool = typer.Option(
        False, "--effective", help="Include the project file in the working directory."
    ),
) -> None:
    """Show the configuration with passwords redacted.

    Example::

        atelier config show
        atelier config show --effective --json
    """
    from atelier_client.config import get_config_dir, load_app_config, resolve_config

    config = resolve_config() if effective else load_app_config()
    info(f"Config directory: {get_config_dir()}")
    format_response(_redact(config.model_dump(mode="json")))


@config_app.command("add-server")
def config_add_server(
    name: str = typer.Argument(help="Server name, referenced by connection blocks."),
    host: str = typer.Option(..., "--host", help="Web server host."),
    port: int = typer.Option(..., "--port", help="Web server port."),
    scheme: str = typer.Option("http", "--scheme", help="http or https."),
    path_prefix: str = typer.Option("", "--path-prefix", help="Prefix before /api/atelier."),
    username: str = typer.Option("", "--username", "-u", help="Login user."),
    password: str = typer.Option("", "--password", "-p", help="Login password."),
    description: Optional[str] = typer.Option(None, "--description", help="Free text."),
) -> None:
    """Register or replace a named server definition.

    Server names are case-insensitive and stored lower-cased.

    Example::

        atelier config add-server dev --host iris.local --port 52773 -u _SYSTEM
    """
    from atelier_client.config import load_app_config, save_app_config
    from atelier_client.models import ServerDefinition, WebServer

    if scheme not in ("http", "https"):
        error(f"Unsupported scheme: {scheme}")
        raise typer.Exit(code=EXIT_INVALID_USAGE)

    config = load_app_config()
    config.servers[name.lower()] = ServerDefinition(
        web_server=WebServer(scheme=scheme, host=host, port=port, path_prefix=path_prefix),
        username=username,
        password=password,
        description=description,
    )
    save_app_config(config)
    success(f"Server '{name.lower()}' saved")


@config_app.command("remove-server")
def config_remove_server(
    name: str = typer.Argument(help="Server name."),
) -> None:
    """Remove a named server definition."""
    from atelier_client.config import load_app_config, save_app_config

    config = load_app_config()
    if config.servers.pop(name.lower(), None) is None:
        error(f"Server '{name}' not found")
        raise typer.Exit(code=EXIT_NOT_FOUND)
    save_app_config(config)
    success(f"Server '{name.lower()}' removed")


@config_app.command("set-connection")
def config_set_connection(
    name: str = typer.Argument(help="Connection name."),
    server: Optional[str] = typer.Option(None, "--server", help="Named server to use."),
    host: Optional[str] = typer.Option(None, "--host", help="Host for inline settings."),
    port: Optional[int] = typer.Option(None, "--port", help="Port for inline settings."),
    https: Optional[bool] = typer.Option(None, "--https/--http", help="Use TLS."),
    path_prefix: Optional[str] = typer.Option(None, "--path-prefix", help="URL prefix."),
    ns: Optional[str] = typer.Option(None, "--ns", help="Default namespace."),
    username: Optional[str] = typer.Option(None, "--username", "-u", help="Login user."),
    password: Optional[str] = typer.Option(None, "--password", "-p", help="Login password."),
    active: Optional[bool] = typer.Option(
        None, "--active/--inactive", help="Enable or disable the connection."
    ),
) -> None:
    """Create or update a connection block.

    Only the options given are changed; a new block starts inactive unless
    ``--active`` is passed.

    Example::

        atelier config set-connection dev --server dev --ns USER --active
    """
    from atelier_client.config import load_app_config, save_app_config
    from atelier_client.models import ConnectionBlock

    config = load_app_config()
    if server is not None and server.lower() not in config.servers:
        error(f"Server '{server}' is not defined")
        raise typer.Exit(code=EXIT_NOT_FOUND)

    block = config.connections.get(name) or ConnectionBlock()
    changes = {
        "server": server.lower() if server is not None else None,
        "host": host,
        "port": port,
        "https": https,
        "path_prefix": path_prefix,
        "ns": ns,
        "username": username,
        "password": password,
        "active": active,
    }
    block = block.model_copy(update={k: v for k, v in changes.items() if v is not None})
    config.connections[name] = block
    save_app_config(config)
    success(f"Connection '{name}' saved")


@config_app.command("use")
def config_use(
    name: str = typer.Argument(help="Connection name to use by default."),
) -> None:
    """Set the default connection.

    Example::

        atelier config use dev
    """
    from atelier_client.config import load_app_config, save_app_config

    config = load_app_config()
    if name not in config.connections and name.lower() not in config.servers:
        error(f"Connection '{name}' not found")
        raise typer.Exit(code=EXIT_NOT_FOUND)
    config.default_connection = name
    save_app_config(config)
    success(f"Default connection set to '{name}'")
