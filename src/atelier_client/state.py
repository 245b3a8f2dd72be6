"""Persistent runtime state shared by every connection.

Uses :mod:`diskcache` to keep small values on the filesystem so they
survive process restarts:

* per-connection overrides learned at runtime, keyed ``"<name>:<field>"``
  (``apiVersion``, ``host``, ``port``, ``password``, ``docker``, ...);
* session cookies, keyed ``"API:<host>:<port>:cookies"``.

Writing ``None`` removes a key, so "clear the override" and "never set"
read back the same way.

See Also:
    :class:`~atelier_client.auth.session_cache.SessionCache` -- cookie view
    over a state store.
    :func:`~atelier_client.settings.resolve_settings` -- reads overrides.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Optional, Protocol

import diskcache


class StateStore(Protocol):
    """Key-value store with get/update by string key."""

    def get(self, key: str, default: Any = None) -> Any: ...

    def update(self, key: str, value: Any) -> None: ...


class DiskStateStore:
    """Disk-backed :class:`StateStore`.

    Args:
        state_dir: Root directory. A ``state/`` subdirectory is created
            inside it for the :class:`diskcache.Cache`.

    Example::

        store = DiskStateStore(get_cache_dir())
        store.update("dev:apiVersion", 6)
        assert store.get("dev:apiVersion") == 6
    """

    def __init__(self, state_dir: str | Path) -> None:
        self._dir = Path(state_dir) / "state"
        self._cache = diskcache.Cache(str(self._dir))

    @property
    def directory(self) -> Path:
        return self._dir

    def get(self, key: str, default: Any = None) -> Any:
        return self._cache.get(key, default)

    def update(self, key: str, value: Any) -> None:
        """Store *value* under *key*; ``None`` deletes the key."""
        if value is None:
            self._cache.delete(key)
        else:
            self._cache.set(key, value)

    def keys(self, prefix: str = "") -> list[str]:
        """Return all stored keys starting with *prefix*, sorted."""
        return sorted(k for k in self._cache.iterkeys() if str(k).startswith(prefix))

    def clear(self) -> None:
        self._cache.clear()

    def close(self) -> None:
        """Close the underlying :class:`diskcache.Cache` and release resources."""
        self._cache.close()


class MemoryStateStore:
    """In-process :class:`StateStore` for embedding and tests."""

    def __init__(self, initial: Optional[dict[str, Any]] = None) -> None:
        self._data: dict[str, Any] = dict(initial or {})

    def get(self, key: str, default: Any = None) -> Any:
        return self._data.get(key, default)

    def update(self, key: str, value: Any) -> None:
        if value is None:
            self._data.pop(key, None)
        else:
            self._data[key] = value

    def keys(self, prefix: str = "") -> list[str]:
        return sorted(k for k in self._data if k.startswith(prefix))

    def clear(self) -> None:
        self._data.clear()

    def close(self) -> None:
        pass
