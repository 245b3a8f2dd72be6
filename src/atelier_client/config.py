"""Configuration management with XDG paths, atomic writes, and precedence resolution.

This module handles all persistent configuration for atelier_client:

* **Directory layout** -- XDG Base Directory compliant on Linux/BSD,
  ``~/.atelier/`` on macOS and Windows. See :func:`get_config_dir`,
  :func:`get_cache_dir`, :func:`get_data_dir`.
* **User config** -- A single :class:`~atelier_client.models.AppConfig`
  JSON file holding registered servers, connection blocks and transport
  settings.
* **Project config** -- ``./atelier.json`` or ``./atelier.yaml`` in the
  working directory; its connections override user-level ones by name.
* **Precedence resolution** -- :func:`resolve_config` merges project and
  user config; :func:`resolve_connection_name` picks the active
  connection from CLI flag, environment, project and user defaults.
* **Configuration provider** -- :class:`FileConfigProvider` is what the
  settings resolver reads static connection definitions from.

All file writes use an atomic temp-file-then-rename strategy
(:func:`_atomic_write`) to prevent data loss on crash or power failure.
"""

from __future__ import annotations

import json
import os
import platform
import tempfile
from pathlib import Path
from typing import Any, Optional, Protocol

import yaml

from atelier_client.exceptions import ConfigError
from atelier_client.models import AppConfig, ConnectionBlock, HTTPConfig, ServerDefinition

_APP_NAME = "atelier"
_CONFIG_FILENAME = "config.json"
_PROJECT_CONFIG_FILENAMES = ("atelier.json", "atelier.yaml", "atelier.yml")


# --- XDG path resolution ---


def _is_xdg_platform() -> bool:
    """Return True if the platform supports XDG Base Directory spec (Linux/FreeBSD)."""
    return platform.system() == "Linux" or platform.system().endswith("BSD")


def _fallback_base_dir() -> Path:
    """Fallback base directory for non-XDG platforms (macOS, Windows)."""
    return Path.home() / f".{_APP_NAME}"


def _xdg_base(env_var: str, default_segments: tuple[str, ...]) -> Path:
    """Resolve an XDG base directory from an env var with fallback segments under $HOME."""
    env_value = os.environ.get(env_var, "")
    if env_value:
        return Path(env_value)
    base = Path.home()
    for seg in default_segments:
        base = base / seg
    return base


def get_config_dir() -> Path:
    """Return the configuration directory, creating it if necessary.

    On Linux/BSD: ``$XDG_CONFIG_HOME/atelier/`` (default ``~/.config/atelier/``).
    On macOS/Windows: ``~/.atelier/``.
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_CONFIG_HOME", (".config",)) / _APP_NAME
    else:
        path = _fallback_base_dir()
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_cache_dir() -> Path:
    """Return the cache directory, creating it if necessary.

    Holds the runtime state store (learned API versions, session cookies).
    Deleting it logs every connection out and forgets learned settings.

    On Linux/BSD: ``$XDG_CACHE_HOME/atelier/`` (default ``~/.cache/atelier/``).
    On macOS/Windows: ``~/.atelier/cache/``.
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_CACHE_HOME", (".cache",)) / _APP_NAME
    else:
        path = _fallback_base_dir() / "cache"
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_data_dir() -> Path:
    """Return the data directory (crash logs), creating it if necessary.

    On Linux/BSD: ``$XDG_DATA_HOME/atelier/`` (default ``~/.local/share/atelier/``).
    On macOS/Windows: ``~/.atelier/logs/``.
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_DATA_HOME", (".local", "share")) / _APP_NAME
    else:
        path = _fallback_base_dir() / "logs"
    path.mkdir(parents=True, exist_ok=True)
    return path


# --- Atomic file writes ---


def _atomic_write(path: Path, data: str) -> None:
    """Write data to file atomically using temp file + rename.

    The temporary file is created in the same directory as *path* so that
    ``os.replace`` is an atomic rename on POSIX systems. The file holds
    passwords, so it is created with ``0o600`` permissions.
    """
    path.parent.mkdir(parents=True, exist_ok=True)

    fd = None
    tmp_path: Optional[str] = None
    try:
        fd = tempfile.NamedTemporaryFile(
            mode="w",
            dir=path.parent,
            prefix=f".{path.name}.",
            suffix=".tmp",
            delete=False,
            encoding="utf-8",
        )
        tmp_path = fd.name
        os.chmod(tmp_path, 0o600)
        fd.write(data)
        fd.flush()
        os.fsync(fd.fileno())
        fd.close()
        fd = None  # prevent double-close in finally
        os.replace(tmp_path, path)
    except BaseException:
        if fd is not None:
            fd.close()
        if tmp_path is not None:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
        raise


# --- User config ---


def _app_config_path() -> Path:
    return get_config_dir() / _CONFIG_FILENAME


def load_app_config() -> AppConfig:
    """Load the user configuration from the XDG config directory.

    Returns:
        The deserialised :class:`~atelier_client.models.AppConfig`. If the
        file does not exist, a default instance is returned.

    Raises:
        ConfigError: If the file exists but contains invalid JSON or fails
            Pydantic validation.
    """
    path = _app_config_path()
    if not path.is_file():
        return AppConfig()
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
        config = AppConfig.model_validate(data)
    except (json.JSONDecodeError, ValueError) as exc:
        raise ConfigError(f"Invalid config at {path}: {exc}") from exc
    # Server names are case-insensitive.
    config.servers = {name.lower(): server for name, server in config.servers.items()}
    return config


def save_app_config(config: AppConfig) -> None:
    """Persist the user configuration atomically to disk."""
    data = config.model_dump(mode="json")
    _atomic_write(_app_config_path(), json.dumps(data, indent=2) + "\n")


# --- Project-local config ---


def find_project_config(directory: Optional[Path] = None) -> Optional[Path]:
    """Return the first project config file present in *directory* (default: cwd)."""
    root = directory or Path.cwd()
    for name in _PROJECT_CONFIG_FILENAMES:
        candidate = root / name
        if candidate.is_file():
            return candidate
    return None


def load_project_config(directory: Optional[Path] = None) -> Optional[dict[str, Any]]:
    """Load project-local configuration from ``atelier.json`` or ``atelier.yaml``.

    Returns:
        The parsed document as a dict, or ``None`` if no project file exists.

    Raises:
        ConfigError: If the file exists but cannot be parsed or is not a
            mapping.
    """
    path = find_project_config(directory)
    if path is None:
        return None
    try:
        text = path.read_text(encoding="utf-8")
        if path.suffix == ".json":
            data = json.loads(text)
        else:
            data = yaml.safe_load(text)
    except (json.JSONDecodeError, yaml.YAMLError, OSError) as exc:
        raise ConfigError(f"Invalid project config at {path}: {exc}") from exc
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Project config at {path} must be a mapping")
    return data


# --- Precedence resolution ---


def resolve_config(directory: Optional[Path] = None) -> AppConfig:
    """Merge project config over user config.

    Servers and connections from the project file replace user-level
    entries with the same name; ``default_connection`` and ``http`` fields
    from the project file win when present.

    Raises:
        ConfigError: If either file is invalid.
    """
    config = load_app_config()
    project = load_project_config(directory)
    if not project:
        return config

    try:
        for name, raw in (project.get("servers") or {}).items():
            config.servers[name.lower()] = ServerDefinition.model_validate(raw)
        for name, raw in (project.get("connections") or {}).items():
            config.connections[name] = ConnectionBlock.model_validate(raw)
        if project.get("http"):
            merged = {**config.http.model_dump(), **project["http"]}
            config.http = HTTPConfig.model_validate(merged)
    except ValueError as exc:
        raise ConfigError(f"Invalid project config: {exc}") from exc

    if project.get("default_connection"):
        config.default_connection = project["default_connection"]
    return config


def resolve_connection_name(
    config: AppConfig,
    cli_connection: Optional[str] = None,
) -> str:
    """Pick the connection name to operate on.

    Precedence (high to low):
        1. CLI flag (``--connection``)
        2. Environment variable ``ATELIER_CONNECTION``
        3. ``default_connection`` from project or user config
        4. The only configured connection or server, if exactly one exists

    Raises:
        ConfigError: If no connection can be determined.
    """
    if cli_connection:
        return cli_connection
    env_name = os.environ.get("ATELIER_CONNECTION")
    if env_name:
        return env_name
    if config.default_connection:
        return config.default_connection
    names = set(config.connections) | set(config.servers)
    if len(names) == 1:
        return names.pop()
    raise ConfigError(
        "No connection selected. Pass --connection, set ATELIER_CONNECTION, "
        "or set default_connection in the config."
    )


# --- Configuration provider ---


class ConfigProvider(Protocol):
    """Source of static connection definitions, looked up by logical name."""

    def servers(self) -> dict[str, ServerDefinition]: ...

    def connection(self, name: str) -> ConnectionBlock: ...

    def http(self) -> HTTPConfig: ...


class FileConfigProvider:
    """:class:`ConfigProvider` backed by an :class:`AppConfig`.

    Args:
        config: A pre-resolved configuration. When ``None`` the merged
            user/project configuration is loaded lazily on first use and
            then kept for the lifetime of the provider.
    """

    def __init__(self, config: Optional[AppConfig] = None) -> None:
        self._config = config

    @property
    def config(self) -> AppConfig:
        if self._config is None:
            self._config = resolve_config()
        return self._config

    def servers(self) -> dict[str, ServerDefinition]:
        return self.config.servers

    def connection(self, name: str) -> ConnectionBlock:
        block = self.config.connections.get(name)
        if block is None:
            return ConnectionBlock()
        return block.model_copy(deep=True)

    def http(self) -> HTTPConfig:
        return self.config.http
