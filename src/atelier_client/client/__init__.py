"""HTTP client module for atelier_client.

Provides the asynchronous Atelier client built on :mod:`httpx`:

Classes:
    :class:`AtelierClient` -- the request pipeline (settings resolution,
    session handling, envelope parsing, error classification).
    :class:`AtelierAPI` -- typed endpoint methods on top of it.
    :class:`ConnectionChecker` -- the default reconnection check.

Both clients are async context managers sharing one keep-alive transport
per instance.

Example::

    from atelier_client.client import AtelierAPI

    async with AtelierAPI("dev", sessions=manager) as api:
        envelope = await api.get_doc("MyApp.Utils.cls")
"""

from atelier_client.client.api import AtelierAPI
from atelier_client.client.async_client import AtelierClient
from atelier_client.client.connection import ConnectionChecker

__all__ = ["AtelierAPI", "AtelierClient", "ConnectionChecker"]
