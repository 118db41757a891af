from __future__ import annotations

import logging
from typing import List, Optional

import httpx
from flask import current_app
from postgrest.exceptions import APIError
from supabase import Client, create_client

from ledvelvet.config import current_settings
from ledvelvet.errors import ConfigurationError, UpstreamError

logger = logging.getLogger(__name__)

_EXT_KEY = "supabase"


def _make_client() -> Client:
    settings = current_settings()
    if not settings.supabase_url or not settings.supabase_service_role:
        raise ConfigurationError("Missing SUPABASE_URL or SUPABASE_SERVICE_ROLE")
    return create_client(settings.supabase_url, settings.supabase_service_role)


def get_client() -> Client:
    # One handle per app; no query results are kept.
    client = current_app.extensions.get(_EXT_KEY)
    if client is None:
        client = _make_client()
        current_app.extensions[_EXT_KEY] = client
    return client


def table(name: str):
    return get_client().table(name)


def run(query) -> List[dict]:
    """
    Execute a query builder and return its rows.
    Store failures, including transport errors, surface as UpstreamError.
    """
    try:
        res = query.execute()
    except APIError as e:
        raise UpstreamError(e.message or str(e)) from e
    except httpx.HTTPError as e:
        raise UpstreamError(str(e) or type(e).__name__) from e
    data = getattr(res, "data", None)
    if data is None:
        return []
    if isinstance(data, dict):
        return [data]
    return list(data)


def first(query) -> Optional[dict]:
    rows = run(query.limit(1))
    return rows[0] if rows else None


def ping() -> bool:
    try:
        run(table("events").select("id").limit(1))
        return True
    except Exception as e:
        logger.error("Supabase ping failed: %s", e)
        return False
