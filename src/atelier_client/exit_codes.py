"""Numeric process exit codes following `clig.dev <https://clig.dev/>`_ conventions.

Each constant maps to a specific error category and is referenced by the
corresponding :class:`~atelier_client.exceptions.AtelierError` subclass.
Shell wrappers can inspect the exit code to tell a rejected login from an
unreachable server without parsing stderr.

Example::

    $ atelier doc get MyApp.Utils.cls
    $ echo $?
    6   # EXIT_CONNECTION_ERROR -- the server refused the connection
"""

EXIT_SUCCESS = 0
"""The command completed successfully."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_INVALID_USAGE = 2
"""The connection is not usable for the requested operation."""

EXIT_AUTH_FAILURE = 3
"""The server rejected the credentials (HTTP 401)."""

EXIT_NOT_FOUND = 4
"""The requested namespace or document does not exist on the server."""

EXIT_SERVER_ERROR = 5
"""The server returned an error status or an error envelope."""

EXIT_CONNECTION_ERROR = 6
"""A network-level error occurred (connection refused, DNS failure)."""
