# ledvelvet/airtable/client.py
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple
from urllib.parse import quote

import requests

from ledvelvet.airtable import fields as af
from ledvelvet.config import Settings
from ledvelvet.errors import ConfigurationError, UpstreamError

logger = logging.getLogger(__name__)

# -----------------------------
# Airtable API Configuration
# -----------------------------
AIRTABLE_API_BASE = "https://api.airtable.com/v0"
SPONSOR_BATCH = 50
MAX_EVENTS = 200


class AirtableClient:
    def __init__(self, token: str, base_id: str, timeout: float = 30.0,
                 api_base: str = AIRTABLE_API_BASE):
        if not token:
            raise ConfigurationError("Missing AIRTABLE_TOKEN")
        if not base_id:
            raise ConfigurationError("Missing AIRTABLE_BASE_ID")
        self.token = token
        self.base_id = base_id
        self.timeout = timeout
        self.api_base = api_base.rstrip("/")

    @classmethod
    def from_settings(cls, settings: Settings) -> "AirtableClient":
        return cls(settings.airtable_token, settings.airtable_base_id, timeout=settings.upstream_timeout)

    def _get(self, url: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """GET wrapper; any non-2xx becomes UpstreamError with the body attached."""
        try:
            r = requests.get(
                url,
                headers={"Authorization": f"Bearer {self.token}"},
                params=params,
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise UpstreamError(f"Airtable request failed: {e}") from e
        if r.status_code >= 400:
            logger.error("Airtable error %s on %s: %s", r.status_code, url, r.text)
            raise UpstreamError(
                f"Airtable fetch failed ({r.status_code})", details={"extra": r.text}
            )
        return r.json()

    def list_records(
        self,
        table: str,
        filter_formula: Optional[str] = None,
        sort: Optional[Sequence[Tuple[str, str]]] = None,
        page_size: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        params: Dict[str, Any] = {}
        if filter_formula:
            params["filterByFormula"] = filter_formula
        if page_size:
            params["pageSize"] = page_size
        for i, (field, direction) in enumerate(sort or ()):
            params[f"sort[{i}][field]"] = field
            params[f"sort[{i}][direction]"] = direction

        url = f"{self.api_base}/{self.base_id}/{quote(table, safe='')}"
        body = self._get(url, params=params)
        records = body.get("records")
        return records if isinstance(records, list) else []

    def delete_record(self, table: str, record_id: str) -> None:
        url = f"{self.api_base}/{self.base_id}/{quote(table, safe='')}/{quote(record_id, safe='')}"
        try:
            r = requests.delete(
                url, headers={"Authorization": f"Bearer {self.token}"}, timeout=self.timeout
            )
        except requests.RequestException as e:
            raise UpstreamError(f"Airtable request failed: {e}") from e
        if r.status_code >= 400:
            logger.error("Airtable delete error %s: %s", r.status_code, r.text)
            raise UpstreamError("Airtable delete failed")

    def table_meta(self) -> Dict[str, Any]:
        # needs the schema.bases:read scope on the token
        return self._get(f"{self.api_base}/meta/bases/{self.base_id}/tables")


# -----------------------------
# Metadata -> dropdown options
# -----------------------------
def _choices(field: Optional[Dict[str, Any]]) -> List[str]:
    choices = ((field or {}).get("options") or {}).get("choices") or []
    return [c["name"] for c in choices if isinstance(c, dict) and c.get("name")]


def event_meta_options(meta: Dict[str, Any], table_name: str = "EVENTS") -> Dict[str, List[str]]:
    tables = meta.get("tables") or []
    events_table = next((t for t in tables if t.get("name") == table_name), None) or next(
        (t for t in tables if str(t.get("name") or "").lower() == table_name.lower()), None
    )
    if not events_table:
        raise UpstreamError(f"{table_name} table not found")

    by_name = {f.get("name"): f for f in events_table.get("fields") or []}
    return {
        "statusOptions": _choices(by_name.get("Status")),
        "ticketPlatformOptions": _choices(by_name.get("Ticket Platform")),
    }


# -----------------------------
# Public events feed
# -----------------------------
def _chunk(items: List[str], size: int) -> List[List[str]]:
    return [items[i:i + size] for i in range(0, len(items), size)]


def fetch_sponsors(client: AirtableClient, table: str, sponsor_ids: List[str]) -> Dict[str, Dict[str, str]]:
    out: Dict[str, Dict[str, str]] = {}
    ids = list(dict.fromkeys(i for i in sponsor_ids if i))
    if not table or not ids:
        return out

    for batch in _chunk(ids, SPONSOR_BATCH):
        formula = "OR(" + ",".join(f"RECORD_ID()='{rid}'" for rid in batch) + ")"
        for rec in client.list_records(table, filter_formula=formula):
            f = rec.get("fields") or {}
            sponsor = {"id": rec["id"], **af.map_fields(f, af.SPONSOR_FIELDS)}
            logo = af.url_field(af.first_value(f, af.SPONSOR_LOGO))
            if logo:
                sponsor["logoUrl"] = logo
            if not sponsor["website"]:
                del sponsor["website"]
            out[rec["id"]] = sponsor
    return out


def _event(rec: Dict[str, Any], sponsors: Dict[str, Dict[str, str]]) -> Dict[str, Any]:
    f = rec.get("fields") or {}
    linked = af.linked_ids(f, af.EVENT_SPONSOR_LINKS)
    mapped = af.map_fields(f, af.EVENT_FIELDS)
    return {
        "id": rec["id"],
        "eventId": rec["id"],
        **mapped,
        **{k: af.first_flag(f, c) for k, c in af.EVENT_FLAGS.items()},
        "deepdive_slug": af.slug_list(f, af.EVENT_DEEPDIVE),
        # never fall back to record ids as labels
        "sponsors": [sponsors[i] for i in linked if i in sponsors and sponsors[i].get("label")],
        "phase": af.phase(f, mapped["status"]),
    }


def clamp_limit(raw, default: int = 100) -> int:
    try:
        n = int(raw)
    except (TypeError, ValueError):
        n = default
    return max(1, min(MAX_EVENTS, n))


def list_public_events(settings: Settings, limit: int = 100) -> List[Dict[str, Any]]:
    client = AirtableClient.from_settings(settings)
    records = client.list_records(
        settings.airtable_events_table,
        sort=[("date", "desc")],
        page_size=clamp_limit(limit),
    )

    all_ids: List[str] = []
    for rec in records:
        all_ids.extend(af.linked_ids(rec.get("fields") or {}, af.EVENT_SPONSOR_LINKS))
    sponsors = fetch_sponsors(client, settings.airtable_sponsors_table, all_ids)

    return [_event(rec, sponsors) for rec in records]
