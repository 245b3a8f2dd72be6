"""Session authentication for atelier_client.

The Atelier API authenticates with HTTP Basic credentials once and then
with the session cookies the server hands back. This package provides:

- :class:`SessionCache` -- persistent, per-``host:port`` cookie store.
- :class:`SessionManager` -- process-wide owner of the session caches and
  of the pending-handshake registry that keeps concurrent requests from a
  cold session down to a single login probe.

Typical usage::

    from atelier_client.auth import SessionManager
    from atelier_client.state import DiskStateStore

    manager = SessionManager(DiskStateStore(get_cache_dir()))
    cookies = manager.session(settings.identity).get_cookies()
"""

from atelier_client.auth.coordinator import SessionManager, auth_target
from atelier_client.auth.session_cache import (
    SessionCache,
    cookie_header,
    cookie_name,
    merge_cookies,
)

__all__ = [
    "SessionCache",
    "SessionManager",
    "auth_target",
    "cookie_header",
    "cookie_name",
    "merge_cookies",
]
