"""Typed Atelier endpoint methods.

Each method of :class:`AtelierAPI` names the lowest API version its
endpoint exists in and maps its arguments onto
:meth:`~atelier_client.client.async_client.AtelierClient.request` with a
fixed path template. :meth:`AtelierAPI.server_info` is the exception: it
also learns the server's API version and product family and checks that
the selected namespace exists.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Optional

from atelier_client.client.async_client import AtelierClient
from atelier_client.exceptions import NamespaceNotFoundError
from atelier_client.models import ResponseEnvelope, ServerInfo
from atelier_client.settings import write_override

SEARCH_DEFAULT_FILES = "*.cls,*.mac,*.int,*.inc"


def transform_name_if_csp(filename: str) -> str:
    """Turn a CSP path like ``\\csp\\user\\x.csp`` into ``csp/user/x.csp``."""
    if filename.startswith("\\"):
        return filename[1:].replace("\\", "/")
    return filename


def mtime_header(mtime: int) -> str:
    """Format a millisecond timestamp the way the ``IF_NONE_MATCH`` header expects.

    Example::

        >>> mtime_header(1704164645123)
        '2024-01-02 03:04:05.123'
    """
    seconds, millis = divmod(int(mtime), 1000)
    stamp = datetime.fromtimestamp(seconds, tz=timezone.utc)
    return f"{stamp.strftime('%Y-%m-%d %H:%M:%S')}.{millis:03d}"


class AtelierAPI(AtelierClient):
    """Endpoint methods of the Atelier REST API.

    Every method returns the parsed
    :class:`~atelier_client.models.ResponseEnvelope` and raises the errors
    documented on :meth:`AtelierClient.request`.
    """

    async def server_info(self) -> ResponseEnvelope:
        """Fetch server capabilities and learn the negotiated API version.

        Persists the advertised API version and whether the server is an
        IRIS product into the state store under this connection's name.

        Raises:
            NamespaceNotFoundError: The selected namespace is not in the
                server's namespace list.
        """
        envelope = await self.request(0, "GET")
        content = envelope.result.content
        if isinstance(content, dict) and (content.get("api") or 0) > 0:
            info = ServerInfo.model_validate(content)
            ns = self.ns
            if ns and ns not in [n.upper() for n in info.namespaces]:
                raise NamespaceNotFoundError(ns, info.namespaces)
            store = self.sessions.store
            write_override(self.config_name, store, "api_version", info.api)
            store.update(f"{self.config_name}:iris", info.version.startswith("IRIS"))
        return envelope

    # api v1+
    async def get_doc_names(
        self,
        generated: bool = False,
        category: str = "*",
        type: str = "*",
        filter: str = "",
    ) -> ResponseEnvelope:
        return await self.request(
            1,
            "GET",
            f"{self.ns}/docnames/{category}/{type}",
            params={"filter": filter, "generated": generated},
        )

    # api v1+
    async def get_doc(self, name: str, format: Optional[str] = None) -> ResponseEnvelope:
        params = {"format": format} if format else {}
        name = transform_name_if_csp(name)
        return await self.request(1, "GET", f"{self.ns}/doc/{name}", params=params)

    # api v1+
    async def delete_doc(self, name: str) -> ResponseEnvelope:
        return await self.request(1, "DELETE", f"{self.ns}/doc/{name}")

    # api v1+
    async def put_doc(
        self,
        name: str,
        data: dict[str, Any],
        ignore_conflict: Optional[bool] = None,
    ) -> ResponseEnvelope:
        """Save a document.

        Args:
            name: Document name.
            data: ``{"enc": bool, "content": [lines or base64 chunks], "mtime": ms}``.
            ignore_conflict: Overwrite even if the server copy changed.
                Without it, a positive ``mtime`` is sent as
                ``IF_NONE_MATCH`` so the server can detect the conflict.
        """
        name = transform_name_if_csp(name)
        headers: dict[str, str] = {}
        mtime = data.get("mtime") or 0
        if not ignore_conflict and mtime > 0:
            headers["IF_NONE_MATCH"] = mtime_header(mtime)
        return await self.request(
            1,
            "PUT",
            f"{self.ns}/doc/{name}",
            data,
            {"ignoreConflict": ignore_conflict},
            headers,
        )

    # api v1+
    async def action_index(self, docs: list[str]) -> ResponseEnvelope:
        return await self.request(1, "POST", f"{self.ns}/action/index", docs)

    # api v2+
    async def action_search(
        self,
        query: str,
        files: str = SEARCH_DEFAULT_FILES,
        sys: bool = False,
        gen: bool = False,
        max: Optional[int] = None,
        regex: bool = False,
        case: bool = False,
        wild: bool = False,
        word: bool = False,
    ) -> ResponseEnvelope:
        params = {
            "files": files,
            "gen": gen,
            "sys": sys,
            "regex": regex,
            "case": case,
            "wild": wild,
            "word": word,
            "query": query,
            "max": max,
        }
        return await self.request(
            2, "GET", f"{self.ns}/action/search", params=params, no_output=True
        )

    # api v1+
    async def action_query(self, query: str, parameters: list[Any]) -> ResponseEnvelope:
        return await self.request(
            1,
            "POST",
            f"{self.ns}/action/query",
            {"parameters": parameters, "query": query},
        )

    # api v1+
    async def action_compile(
        self,
        docs: list[str],
        flags: Optional[str] = None,
        source: bool = False,
    ) -> ResponseEnvelope:
        docs = [transform_name_if_csp(doc) for doc in docs]
        return await self.request(
            1,
            "POST",
            f"{self.ns}/action/compile",
            docs,
            {"flags": flags, "source": source},
        )

    # api v1+
    async def cvt_xml_udl(self, source: str) -> ResponseEnvelope:
        """Convert an XML export to UDL documents."""
        return await self.request(
            1, "POST", f"{self.ns}/", source, {}, {"Content-Type": "application/xml"}
        )

    # api v2+
    async def get_macro_definition(
        self, docname: str, macroname: str, includes: list[str]
    ) -> ResponseEnvelope:
        return await self.request(
            2,
            "POST",
            f"{self.ns}/action/getmacrodefinition",
            {"docname": docname, "includes": includes, "macroname": macroname},
        )

    # api v2+
    async def get_macro_location(
        self, docname: str, macroname: str, includes: list[str]
    ) -> ResponseEnvelope:
        return await self.request(
            2,
            "POST",
            f"{self.ns}/action/getmacrolocation",
            {"docname": docname, "includes": includes, "macroname": macroname},
        )

    # api v2+
    async def get_macro_list(self, docname: str, includes: list[str]) -> ResponseEnvelope:
        return await self.request(
            2,
            "POST",
            f"{self.ns}/action/getmacrolist",
            {"docname": docname, "includes": includes},
        )

    # api v1+
    async def get_jobs(self, system: bool) -> ResponseEnvelope:
        return await self.request(1, "GET", "%SYS/jobs", params={"system": system})

    # api v1+
    async def get_csp_apps(self, detail: bool = False) -> ResponseEnvelope:
        return await self.request(
            1,
            "GET",
            f"%SYS/cspapps/{self.ns or ''}",
            params={"detail": 1 if detail else 0},
        )
