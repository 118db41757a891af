"""
Admin JSON API under /api/admin. Every route here sits behind the Basic-Auth
admin gate registered in ``create_app``.
"""
from __future__ import annotations

from flask import Blueprint, Response, jsonify, request

from ledvelvet.airtable.client import AirtableClient, event_meta_options
from ledvelvet.auth import door_keys
from ledvelvet.config import current_settings
from ledvelvet.errors import BadRequestError
from ledvelvet.qr import render_png

bp = Blueprint("api_admin", __name__, url_prefix="/admin")


@bp.get("/door-api-keys")
def get_door_api_keys():
    return jsonify({"ok": True, **door_keys.list_keys()})


@bp.post("/door-api-keys")
def post_door_api_keys():
    """
    POST /api/admin/door-api-keys
    {"action": "rotate", "label"?, "api_key"?} | {"action": "revoke"|"activate", "id"}
    A body without ``action`` rotates.
    """
    body = request.get_json(silent=True) or {}
    action = body.get("action") or "rotate"

    if action == "rotate":
        active = door_keys.rotate_key(body.get("label"), body.get("api_key"))
        return jsonify({"ok": True, "active": active})
    if action == "revoke":
        door_keys.revoke_key(body.get("id"))
        return jsonify({"ok": True})
    if action == "activate":
        return jsonify({"ok": True, "active": door_keys.activate_key(body.get("id"))})

    raise BadRequestError("Unknown action")


@bp.get("/qr")
def qr_png():
    data = (request.args.get("data") or "").strip()
    if not data:
        raise BadRequestError("missing_data")
    return Response(
        render_png(data),
        mimetype="image/png",
        headers={"Cache-Control": "no-store"},
    )


@bp.get("/meta/events")
def meta_events():
    """Dropdown options (Status, Ticket Platform) from the Airtable schema."""
    settings = current_settings()
    meta = AirtableClient.from_settings(settings).table_meta()
    return jsonify({"ok": True, **event_meta_options(meta, settings.airtable_events_table)})


@bp.post("/events/delete")
def delete_event():
    body = request.get_json(silent=True) or {}
    record_id = str(body.get("id") or "").strip()
    if not record_id:
        raise BadRequestError("Missing id")

    settings = current_settings()
    AirtableClient.from_settings(settings).delete_record(settings.airtable_events_table, record_id)
    return jsonify({"ok": True})
