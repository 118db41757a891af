from __future__ import annotations
from flask import Blueprint, jsonify, request

from ledvelvet.airtable.client import list_public_events
from ledvelvet.config import current_settings
from ledvelvet.doorcheck.events import list_door_events

bp = Blueprint("api_public", __name__, url_prefix="/public")

NO_STORE = {"Cache-Control": "no-store, max-age=0"}

@bp.get("/door-events")
def door_events():
    """
    GET /api/public/door-events
    Events for door-check clients, most recent start first.
    """
    return jsonify({"ok": True, "events": list_door_events()})

@bp.get("/events")
def events():
    """
    GET /api/public/events?limit=100
    Site event list from Airtable with sponsors resolved.
    """
    limit = request.args.get("limit", 100)
    evs = list_public_events(current_settings(), limit=limit)
    return jsonify({"ok": True, "events": evs}), 200, NO_STORE
