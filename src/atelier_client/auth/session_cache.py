"""Persistent cookie session per ``host:port`` identity.

A session is the ordered list of ``Set-Cookie`` strings the server handed
out for one :class:`~atelier_client.models.ConnectionIdentity`. It lives in
the :class:`~atelier_client.state.StateStore` under
``API:<host>:<port>:cookies`` so it survives process restarts.

Cookie names are unique within a session: an update replaces the entry
with the same name in place and appends new names, so the relative order
of first appearance is preserved.
"""

from __future__ import annotations

from typing import Iterable

from atelier_client.models import ConnectionIdentity
from atelier_client.state import StateStore


def cookie_name(cookie: str) -> str:
    """Return the name part of a ``name=value; attrs`` cookie string."""
    return cookie.split("=", 1)[0].strip()


def merge_cookies(existing: Iterable[str], new: Iterable[str]) -> list[str]:
    """Merge *new* cookies into *existing* by name. Pure.

    Example::

        >>> merge_cookies(["a=1", "b=2"], ["a=3"])
        ['a=3', 'b=2']
    """
    merged = list(existing)
    positions = {cookie_name(c): i for i, c in enumerate(merged)}
    for cookie in new:
        name = cookie_name(cookie)
        if name in positions:
            merged[positions[name]] = cookie
        else:
            positions[name] = len(merged)
            merged.append(cookie)
    return merged


def cookie_header(cookies: Iterable[str]) -> str:
    """Render stored ``Set-Cookie`` strings as a ``Cookie`` request header value.

    Attributes (``Path``, ``HttpOnly``, ...) are dropped; only ``name=value``
    pairs are sent.
    """
    return "; ".join(c.split(";", 1)[0].strip() for c in cookies if c.strip())


class SessionCache:
    """Cookie view over a state store for one connection identity.

    Args:
        identity: The ``(host, port)`` pair the session belongs to.
        store: Runtime state store holding the cookies.

    Example::

        cache = SessionCache(ConnectionIdentity(host="iris", port=52773), store)
        cache.update_cookies(["CSPSESSIONID=abc; path=/"])
        assert cache.get_cookies() == ["CSPSESSIONID=abc; path=/"]
    """

    def __init__(self, identity: ConnectionIdentity, store: StateStore) -> None:
        self._identity = identity
        self._store = store

    @property
    def identity(self) -> ConnectionIdentity:
        return self._identity

    @property
    def key(self) -> str:
        return f"API:{self._identity.key}:cookies"

    def get_cookies(self) -> list[str]:
        return list(self._store.get(self.key, None) or [])

    def set_cookies(self, cookies: Iterable[str]) -> None:
        self._store.update(self.key, list(cookies))

    def update_cookies(self, new_cookies: Iterable[str]) -> list[str]:
        """Merge *new_cookies* by name, persist and return the merged session."""
        merged = merge_cookies(self.get_cookies(), new_cookies)
        self.set_cookies(merged)
        return merged

    def clear(self) -> None:
        self._store.update(self.key, [])
