from __future__ import annotations
from datetime import datetime, timezone
from flask import Blueprint, jsonify

from ledvelvet.config import current_settings
from ledvelvet.db.supabase import ping

bp = Blueprint("api_health", __name__)

@bp.get("/health")
def health():
    """
    GET /api/health
    Liveness plus which secrets are configured (as booleans, never values).
    """
    settings = current_settings()
    store_ready = bool(settings.supabase_url and settings.supabase_service_role)

    return jsonify({
        "ok": True,
        "time_utc": datetime.now(timezone.utc).isoformat(),
        "config": {
            "admin_password_set": bool(settings.admin_password),
            "door_api_key_set": bool(settings.door_api_key),
            "supabase_set": store_ready,
            "airtable_set": bool(settings.airtable_token and settings.airtable_base_id),
        },
        "db": {
            "ping": ping() if store_ready else False,
        },
    })
