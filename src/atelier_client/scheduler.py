"""Delayed background tasks for reconnection checks.

The request pipeline schedules a connectivity re-check 1 s after a 401 and
30 s after a refused connection. Those are fire-and-forget from the
caller's point of view, but each one is a :class:`ScheduledCheck` handle
that can be cancelled, and :meth:`ReconnectScheduler.cancel_all` tears
down whatever is still waiting at shutdown.

Overlapping checks are not deduplicated: two 401s in a row schedule two
checks.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional

logger = logging.getLogger(__name__)

RECHECK_AFTER_UNAUTHORIZED = 1.0
RECHECK_AFTER_REFUSED = 30.0


class ScheduledCheck:
    """Handle for one delayed callback."""

    def __init__(self, delay: float, label: str = "") -> None:
        self.delay = delay
        self.label = label
        self._timer: Optional[asyncio.TimerHandle] = None
        self._task: Optional[asyncio.Task] = None
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def fired(self) -> bool:
        return self._task is not None

    @property
    def task(self) -> Optional[asyncio.Task]:
        """The running task once the delay has elapsed."""
        return self._task

    def cancel(self) -> None:
        """Cancel the check, whether it is still waiting or already running."""
        self._cancelled = True
        if self._timer is not None:
            self._timer.cancel()
        if self._task is not None and not self._task.done():
            self._task.cancel()


class ReconnectScheduler:
    """Schedules coroutine factories to run after a delay on the running loop."""

    def __init__(self) -> None:
        self._handles: list[ScheduledCheck] = []

    @property
    def handles(self) -> list[ScheduledCheck]:
        """Checks scheduled and not yet finished or cancelled."""
        return [h for h in self._handles if not h.cancelled and not (h.task and h.task.done())]

    def schedule(
        self,
        delay: float,
        factory: Callable[[], Awaitable[Any]],
        label: str = "",
    ) -> ScheduledCheck:
        """Run ``factory()`` after *delay* seconds.

        Must be called from inside a running event loop. Exceptions raised
        by the check are logged, not propagated: nobody awaits it.
        """
        loop = asyncio.get_running_loop()
        handle = ScheduledCheck(delay, label)

        def _fire() -> None:
            if handle.cancelled:
                return
            handle._task = loop.create_task(_run())

        async def _run() -> None:
            try:
                await factory()
            except asyncio.CancelledError:
                raise
            except Exception as exc:
                logger.warning("Connection re-check %s failed: %s", label or "", exc)
            finally:
                if handle in self._handles:
                    self._handles.remove(handle)

        handle._timer = loop.call_later(delay, _fire)
        self._handles.append(handle)
        self._handles = [h for h in self._handles if not h.cancelled]
        logger.debug("Scheduled connection re-check %s in %ss", label, delay)
        return handle

    def cancel_all(self) -> None:
        for handle in self._handles:
            handle.cancel()
        self._handles.clear()
