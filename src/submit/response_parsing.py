"""Sandbox identifier recovery from define-API responses.

The define endpoint answers with an HTML page, a JSON document, or a
redirect. Each marker is an anchored pattern applied to a bounded prefix of
the body; the first marker found wins.
"""

from __future__ import annotations

import json
import re
from typing import Mapping

from core.constants import RESPONSE_SCAN_LIMIT_BYTES, VIEWER_PATH_PREFIX

_SANDBOX_ID = r"([A-Za-z0-9-]+)"
_MARKER_PATTERNS = (
    re.compile(r'og:url"[^>]{0,200}?content="https?://[^"/]+/s/' + _SANDBOX_ID),
    re.compile(r'rel="canonical"\s+href="https?://[^"/]+/s/' + _SANDBOX_ID),
    re.compile(r'href="/s/' + _SANDBOX_ID),
)
_LOCATION_PATTERN = re.compile(r"^(?:https?://[^/]+)?/s/" + _SANDBOX_ID)


def bounded_body(body: bytes, limit: int = RESPONSE_SCAN_LIMIT_BYTES) -> str:
    """Decode the scanned prefix of a response body."""
    return body[:limit].decode("utf-8", errors="replace")


def extract_sandbox_id(body_text: str) -> str | None:
    """Find the sandbox identifier in a response body.

    Args:
        body_text: Decoded, already bounded response body.

    Returns:
        Identifier, or None when no marker is present.
    """
    for pattern in _MARKER_PATTERNS:
        match = pattern.search(body_text)
        if match is not None:
            return match.group(1)
    return _json_sandbox_id(body_text)


def extract_redirect_id(headers: Mapping[str, str]) -> str | None:
    """Read the identifier from a ``Location: /s/<id>`` redirect header."""
    location = headers.get("Location") or headers.get("location")
    if not location:
        return None
    match = _LOCATION_PATTERN.match(location.strip())
    return match.group(1) if match is not None else None


def viewer_url(origin: str, sandbox_id: str) -> str:
    return f"{origin}{VIEWER_PATH_PREFIX}{sandbox_id}"


def response_excerpt(body_text: str, length: int) -> str:
    """Collapse whitespace and truncate a body for error reports."""
    collapsed = " ".join(body_text.split())
    if len(collapsed) <= length:
        return collapsed
    return collapsed[:length] + "..."


def _json_sandbox_id(body_text: str) -> str | None:
    stripped = body_text.lstrip()
    if not stripped.startswith("{"):
        return None
    try:
        payload = json.loads(stripped)
    except json.JSONDecodeError:
        return None
    if not isinstance(payload, dict):
        return None
    sandbox_id = payload.get("sandbox_id")
    if isinstance(sandbox_id, str) and re.fullmatch(_SANDBOX_ID, sandbox_id):
        return sandbox_id
    return None
