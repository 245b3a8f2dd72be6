"""Exception hierarchy for atelier_client.

All exceptions inherit from :class:`AtelierError`, which carries an
``exit_code`` attribute mapped to a constant from
:mod:`atelier_client.exit_codes`. The CLI entry point in
:func:`atelier_client.app.main` catches ``AtelierError`` and exits with the
appropriate code.

The request pipeline raises a closed set of error kinds, each carrying
structured fields instead of an ad hoc ``{statusCode, message}`` shape::

    AtelierError (exit 1)
    +-- ConfigError               (exit 1)
    +-- ConnectionInactiveError   (exit 2)
    +-- VersionUnsupportedError   (exit 2)
    +-- HTTPStatusError           (exit 5)
    |   +-- AuthError             (exit 3)
    +-- ProtocolError             (exit 5)
    +-- NamespaceNotFoundError    (exit 4)
    +-- TransportError            (exit 6)
"""

from __future__ import annotations

from typing import Optional

from atelier_client.exit_codes import (
    EXIT_AUTH_FAILURE,
    EXIT_CONNECTION_ERROR,
    EXIT_GENERIC_FAILURE,
    EXIT_INVALID_USAGE,
    EXIT_NOT_FOUND,
    EXIT_SERVER_ERROR,
)


class AtelierError(Exception):
    """Base exception for all atelier_client errors.

    Every subclass sets a class-level ``exit_code`` corresponding to one of
    the constants in :mod:`atelier_client.exit_codes`.

    Args:
        message: Human-readable error description printed to stderr.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        self.message = message
        if exit_code is not None:
            self.exit_code = exit_code


class ConfigError(AtelierError):
    """Raised for configuration problems (unknown connection, invalid JSON/YAML)."""

    exit_code = EXIT_GENERIC_FAILURE


class ConnectionInactiveError(AtelierError):
    """Raised before any network I/O when the connection is inactive or lacks host/port."""

    exit_code = EXIT_INVALID_USAGE

    def __init__(self, connection: str = "") -> None:
        label = f"'{connection}' " if connection else ""
        super().__init__(f"Connection {label}is not active or has no host/port")
        self.connection = connection


class VersionUnsupportedError(AtelierError):
    """Raised when an operation needs a newer API version than the server negotiated."""

    exit_code = EXIT_INVALID_USAGE

    def __init__(self, path: str, required: int, available: int) -> None:
        super().__init__(f"{path} not supported by API version {available}")
        self.path = path
        self.required = required
        self.available = available


class HTTPStatusError(AtelierError):
    """Raised for a non-2xx HTTP response.

    Attributes:
        status_code: The HTTP status code.
        reason: The status text sent by the server.
    """

    exit_code = EXIT_SERVER_ERROR

    def __init__(self, status_code: int, reason: str = "") -> None:
        super().__init__(f"HTTP {status_code}: {reason}" if reason else f"HTTP {status_code}")
        self.status_code = status_code
        self.reason = reason


class AuthError(HTTPStatusError):
    """Raised when the server answers 401 Unauthorized."""

    exit_code = EXIT_AUTH_FAILURE

    def __init__(self, reason: str = "Unauthorized") -> None:
        super().__init__(401, reason)


class ProtocolError(AtelierError):
    """Raised when the response envelope reports a failure.

    The message is the server-supplied ``result.status`` or
    ``status.summary`` text; ``errors`` holds the envelope's
    ``status.errors`` list when present.
    """

    exit_code = EXIT_SERVER_ERROR

    def __init__(self, message: str, errors: Optional[list] = None) -> None:
        super().__init__(message)
        self.errors = errors or []


class NamespaceNotFoundError(AtelierError):
    """Raised when the resolved namespace is absent from the server's namespace list."""

    exit_code = EXIT_NOT_FOUND

    def __init__(self, namespace: str, namespaces: list[str]) -> None:
        super().__init__(
            f"This server does not have specified namespace '{namespace}'. "
            f"You must select one of the following: {', '.join(namespaces)}."
        )
        self.namespace = namespace
        self.namespaces = list(namespaces)


class TransportError(AtelierError):
    """Raised on low-level connection failures.

    Named after the transport error code rather than shadowing the
    built-in ``ConnectionError``.

    Attributes:
        code: Transport error code, ``"ECONNREFUSED"`` for refused
            connections.
        url: The URL that could not be reached.
    """

    exit_code = EXIT_CONNECTION_ERROR

    def __init__(self, message: str, code: str = "", url: str = "") -> None:
        super().__init__(message)
        self.code = code
        self.url = url
