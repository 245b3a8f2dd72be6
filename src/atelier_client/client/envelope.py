"""Request and response helpers for the Atelier wire format.

Outbound:

* :func:`build_query` -- the query-string rules (booleans as ``1``/``0``,
  other values only when truthy, input order kept).
* :func:`encode_uri` -- percent-encodes a whole path-plus-query the way a
  browser's ``encodeURI`` does, so ``%SYS`` goes out as ``%25SYS``.

Inbound, every endpoint answers with the same envelope::

    {"status": {"summary": "", "errors": []},
     "console": ["..."],
     "result": {"status": "", "content": ..., "enc": false}}

* :func:`parse_envelope` -- bytes to :class:`~atelier_client.models.ResponseEnvelope`.
* :func:`decode_content` -- joins and base64-decodes ``enc`` content.
* :func:`is_studio_action` -- detects server-driven UI action payloads.
* :func:`classify_envelope` -- the single ordered error classification.
"""

from __future__ import annotations

import base64
import binascii
import json
from typing import Any, Mapping, Optional
from urllib.parse import quote

from atelier_client.exceptions import ProtocolError
from atelier_client.models import ResponseEnvelope

# Characters encodeURI leaves alone besides alphanumerics and "-_.~".
_URI_SAFE = ";,/?:@&=+$!*'()#"


def build_query(params: Optional[Mapping[str, Any]]) -> str:
    """Render *params* as ``?k=v&...`` or ``""``.

    Example::

        >>> build_query({"flag": True, "name": "", "count": 0, "x": "v"})
        '?flag=1&x=v'
    """
    if not params:
        return ""
    parts = []
    for key, value in params.items():
        if isinstance(value, bool):
            parts.append(f"{key}={1 if value else 0}")
        elif value:
            parts.append(f"{key}={value}")
    return "?" + "&".join(parts) if parts else ""


def encode_uri(text: str) -> str:
    """Percent-encode *text* with ``encodeURI`` semantics."""
    return quote(text, safe=_URI_SAFE)


def parse_envelope(raw: bytes) -> ResponseEnvelope:
    """Parse a response body into a :class:`ResponseEnvelope`.

    Raises:
        ProtocolError: If the body is not JSON or not an object.
    """
    try:
        data = json.loads(raw.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise ProtocolError(f"Invalid response from server: {exc}") from exc
    if not isinstance(data, dict):
        raise ProtocolError("Invalid response from server: expected a JSON object")
    try:
        return ResponseEnvelope.model_validate(data)
    except ValueError as exc:
        raise ProtocolError(f"Invalid response envelope: {exc}") from exc


def decode_fragments(fragments: list[str]) -> bytes:
    """Decode a list of base64 fragments into one byte string.

    Fragments normally slice a single base64 text; when a fragment carries
    its own padding mid-stream each fragment is decoded on its own.
    """
    joined = "".join(fragments)
    try:
        if "=" in joined.rstrip("="):
            return b"".join(base64.b64decode(f) for f in fragments)
        return base64.b64decode(joined)
    except (binascii.Error, ValueError) as exc:
        raise ProtocolError(f"Invalid encoded content: {exc}") from exc


def decode_content(envelope: ResponseEnvelope) -> ResponseEnvelope:
    """Replace ``enc`` content with its decoded bytes, in place.

    Decoding happens once: afterwards ``enc`` is ``False`` and calling this
    again is a no-op.
    """
    result = envelope.result
    if result.enc and result.content:
        content = result.content
        if isinstance(content, str):
            content = [content]
        result.content = decode_fragments(list(content))
        result.enc = False
    return envelope


def is_studio_action(envelope: ResponseEnvelope) -> bool:
    """True when the first content element carries an ``action`` field."""
    content = envelope.result.content
    if not isinstance(content, list) or not content:
        return False
    first = content[0]
    return isinstance(first, dict) and first.get("action") is not None


def classify_envelope(envelope: ResponseEnvelope) -> Optional[ProtocolError]:
    """Return the error an envelope reports, or ``None`` on success.

    ``result.status`` wins over ``status.summary``.
    """
    if envelope.result.status:
        return ProtocolError(envelope.result.status, envelope.status.errors)
    if envelope.status.summary:
        return ProtocolError(envelope.status.summary, envelope.status.errors)
    return None
