from __future__ import annotations

from typing import Dict, List

from ledvelvet.db import supabase as db

DOOR_EVENT_COLUMNS = "id, name, starts_at, city, venue, xceed_event_ref, xceed_url"
PICKER_LIMIT = 200


def _door_event(row: Dict) -> Dict:
    return {
        "id": row.get("id"),
        "name": row.get("name") or "",
        "starts_at": row.get("starts_at"),
        "city": row.get("city") or "",
        "venue": row.get("venue") or "",
        "xceed_event_ref": row.get("xceed_event_ref") or None,
        "xceed_url": row.get("xceed_url") or None,
    }


def list_door_events() -> List[Dict]:
    """
    All events, newest ``starts_at`` first, trimmed to what door-check
    clients need. Every key is always present.
    """
    rows = db.run(
        db.table("events").select(DOOR_EVENT_COLUMNS).order("starts_at", desc=True)
    )
    return [_door_event(r) for r in rows]


def list_doorcheck_events() -> List[Dict]:
    # minimal select keeps working across schema changes
    return db.run(
        db.table("events").select("id, name").order("name").limit(PICKER_LIMIT)
    )
