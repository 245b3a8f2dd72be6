"""atelier_client -- session-aware async client for the Atelier REST API.

The Atelier API is the document-oriented protocol a database server exposes
to fetch, edit, compile and search the source documents it stores. This
package wraps it with connection resolution, cookie session persistence,
authentication handshake deduplication and API-version negotiation, and
ships a small Typer CLI on top.

Typical usage::

    from atelier_client.client import AtelierAPI

    async with AtelierAPI("my-connection") as api:
        await api.server_info()
        names = await api.get_doc_names(category="CLS")

Modules:
    app: Typer application and CLI entry point.
    models: Pydantic models shared across the package.
    config: XDG-aware configuration files and the configuration provider.
    state: Persistent runtime key-value state (learned settings, cookies).
    settings: Effective connection settings resolution.
    exceptions: Exception hierarchy with exit-code mapping.
    output: stdout/stderr formatting system with Rich support.
"""

__version__ = "0.3.0"
