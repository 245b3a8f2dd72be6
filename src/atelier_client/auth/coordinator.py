"""Authentication coordinator -- one handshake per target, however many callers.

When a connection has no session yet, every request needs to authenticate
first. If N requests start at once from a cold session they must not fire N
login probes: the first caller registers its handshake in the pending map
under ``username@host:port`` and every later caller awaits that same task.

The check-then-insert in :meth:`SessionManager.acquire` has no lock. All
callers run on one asyncio event loop and there is no ``await`` between
the lookup and the insert, so no other coroutine can interleave.

A :class:`SessionManager` is created once per process and handed to every
:class:`~atelier_client.client.async_client.AtelierClient`; it owns both the
pending-handshake registry and access to the persistent session caches.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Optional

from atelier_client.auth.session_cache import SessionCache
from atelier_client.models import ConnectionIdentity
from atelier_client.state import MemoryStateStore, StateStore

logger = logging.getLogger(__name__)

Handshake = Callable[[], Awaitable[list[str]]]


def auth_target(username: str, host: str, port: int) -> str:
    """Return the pending-map key ``username@host:port``."""
    return f"{username}@{host}:{port}"


class SessionManager:
    """Owner of the pending-handshake registry and the session caches.

    Args:
        store: Runtime state store backing the session caches. Defaults to
            an in-memory store, which forgets sessions on exit.
    """

    def __init__(self, store: Optional[StateStore] = None) -> None:
        self._store: StateStore = store if store is not None else MemoryStateStore()
        self._pending: dict[str, asyncio.Task] = {}

    @property
    def store(self) -> StateStore:
        return self._store

    def session(self, identity: ConnectionIdentity) -> SessionCache:
        """Return the session cache for *identity*."""
        return SessionCache(identity, self._store)

    # ------------------------------------------------------------------ #
    # Pending handshakes
    # ------------------------------------------------------------------ #

    def pending(self, target: str) -> Optional[asyncio.Task]:
        """Return the in-flight handshake for *target*, if any."""
        return self._pending.get(target)

    def discard(self, target: str) -> None:
        """Forget the pending handshake for *target* (no-op when absent)."""
        if self._pending.pop(target, None) is not None:
            logger.debug("Dropped pending handshake for %s", target)

    async def acquire(self, target: str, handshake: Handshake) -> list[str]:
        """Await the session cookies for *target*, starting at most one handshake.

        If a handshake for *target* is already in flight it is awaited;
        otherwise *handshake* is started as a task and registered before
        the first suspension point. The entry is removed as soon as the
        task finishes, whether it succeeded or failed.

        Args:
            target: ``username@host:port`` key.
            handshake: Zero-argument coroutine factory performing the
                probe request and returning the session cookies.

        Returns:
            The cookies produced by the handshake.

        Raises:
            Exception: Whatever the handshake raised.
        """
        task = self._pending.get(target)
        if task is None:
            logger.debug("Starting authentication handshake for %s", target)
            task = asyncio.ensure_future(handshake())
            self._pending[target] = task
            task.add_done_callback(lambda done: self._forget(target, done))
        # One cancelled waiter must not cancel the handshake for the others.
        return await asyncio.shield(task)

    def _forget(self, target: str, task: asyncio.Task) -> None:
        if self._pending.get(target) is task:
            del self._pending[target]
