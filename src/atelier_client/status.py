"""Connection status indicator.

The request pipeline reports the current connection after every
successful response (``host:port[NS]`` plus "Connected as user") and marks
it disconnected when the server refuses connections.
:class:`StatusIndicator` is the sink interface; :class:`StatusBar` keeps
the last text/tooltip and echoes changes as debug output.
"""

from __future__ import annotations

from typing import Protocol

from atelier_client.output import debug

DISCONNECTED_SUFFIX = " $(debug-disconnect)"


class StatusIndicator(Protocol):
    """Status-display sink with settable text and tooltip."""

    text: str
    tooltip: str


class StatusBar:
    """Default :class:`StatusIndicator` that remembers the latest state."""

    def __init__(self) -> None:
        self._text = ""
        self._tooltip = ""

    @property
    def text(self) -> str:
        return self._text

    @text.setter
    def text(self, value: str) -> None:
        if value != self._text:
            debug(f"status: {value}")
        self._text = value

    @property
    def tooltip(self) -> str:
        return self._tooltip

    @tooltip.setter
    def tooltip(self, value: str) -> None:
        self._tooltip = value

    @property
    def connected(self) -> bool:
        return bool(self._text) and not self._text.endswith(DISCONNECTED_SUFFIX)
