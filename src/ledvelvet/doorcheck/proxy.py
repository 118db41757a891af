"""
Same-origin relay for door-check clients.

The public client posts its check-in payload here; the relay forwards the
body untouched to the internal ``/api/doorcheck`` endpoint with the
server-held ``x-api-key`` added, then mirrors the internal response. The
key is only ever sent on the outbound hop.
"""
from __future__ import annotations

import logging
from typing import Mapping

import requests
from flask import Response

from ledvelvet.config import Settings
from ledvelvet.errors import ConfigurationError, UpstreamError

logger = logging.getLogger(__name__)

INTERNAL_PATH = "/api/doorcheck"
# Plain http when no proxy says otherwise (local dev); see DESIGN.md.
DEFAULT_SCHEME = "http"


def _first_value(raw) -> str:
    # proxies may append: "a.example, b.internal"
    return (raw or "").split(",")[0].strip()


def resolve_origin(headers: Mapping[str, str]) -> str:
    """
    Effective origin of the incoming request.
    Host precedence: X-Forwarded-Host, then Host. Scheme: X-Forwarded-Proto,
    then ``http``. Raises ConfigurationError when no host can be found.
    """
    scheme = _first_value(headers.get("X-Forwarded-Proto")) or DEFAULT_SCHEME
    host = _first_value(headers.get("X-Forwarded-Host")) or _first_value(headers.get("Host"))
    if not host:
        raise ConfigurationError("Missing host header")
    return f"{scheme}://{host}"


def relay(raw_body: bytes, headers: Mapping[str, str], settings: Settings) -> Response:
    secret = (settings.door_api_key or "").strip()
    if not secret:
        raise ConfigurationError("Server misconfigured: DOOR_API_KEY missing")

    url = f"{resolve_origin(headers)}{INTERNAL_PATH}"
    try:
        upstream = requests.post(
            url,
            data=raw_body,
            headers={
                "Content-Type": "application/json",
                "x-api-key": secret,
            },
            timeout=settings.upstream_timeout,
        )
    except requests.RequestException as e:
        logger.error("doorcheck relay to %s failed: %s", url, e)
        raise UpstreamError(str(e) or "Unknown error") from e

    return Response(
        upstream.content,
        status=upstream.status_code,
        headers={
            "Content-Type": upstream.headers.get("content-type") or "application/json",
            "Cache-Control": "no-store",
        },
    )
