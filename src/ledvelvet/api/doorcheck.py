from __future__ import annotations

import logging

from flask import Blueprint, jsonify, request

from ledvelvet.auth.door_keys import authorize_door_request, validate
from ledvelvet.config import current_settings
from ledvelvet.doorcheck import checkin, proxy
from ledvelvet.doorcheck.events import list_doorcheck_events
from ledvelvet.errors import BadRequestError

bp = Blueprint("api_doorcheck", __name__)

logger = logging.getLogger(__name__)


@bp.post("/doorcheck/ping")
def doorcheck_ping():
    """
    POST /api/doorcheck/ping  (header: x-api-key)
    200 {"ok": true} when the key is an active door key, 401 otherwise.
    """
    validate(request.headers.get("x-api-key"))
    return jsonify({"ok": True})


@bp.post("/doorcheck-proxy")
def doorcheck_proxy():
    """
    POST /api/doorcheck-proxy
    Forwards the raw body to /api/doorcheck with the server-side key.
    """
    return proxy.relay(request.get_data(cache=False), request.headers, current_settings())


@bp.post("/doorcheck")
def doorcheck():
    """
    POST /api/doorcheck  (header: x-api-key)
    Body: {event_id|event_ref, mode: scan|manual, qr, full_name, phone, email}
    """
    authorize_door_request(request.headers.get("x-api-key"), current_settings().door_api_key)

    body = request.get_json(silent=True)
    if not isinstance(body, dict):
        raise BadRequestError("Invalid JSON body")

    result = checkin.check_in(body)
    logger.info(
        "doorcheck event=%s kind=%s status=%s device=%s",
        body.get("event_id") or body.get("event_ref"),
        result.get("kind"), result.get("status"), body.get("device_id"),
    )
    return jsonify(result)


@bp.get("/doorcheck-events")
def doorcheck_events():
    """GET /api/doorcheck-events: id + name of every event, for pickers."""
    return jsonify({"ok": True, "events": list_doorcheck_events()})
