from __future__ import annotations
from flask import Blueprint, jsonify

bp = Blueprint("web", __name__)

ADMIN_SECTIONS = [
    {"label": "Door API key", "api": "/api/admin/door-api-keys"},
    {"label": "QR", "api": "/api/admin/qr"},
    {"label": "Event options", "api": "/api/admin/meta/events"},
    {"label": "Delete event", "api": "/api/admin/events/delete"},
]

@bp.get("/admin/")
def admin_index():
    # only reachable past the admin gate
    return jsonify({"ok": True, "sections": ADMIN_SECTIONS})

def register_web(app):
    app.register_blueprint(bp)
