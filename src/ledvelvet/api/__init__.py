from __future__ import annotations

import importlib
from flask import Blueprint

API_MODULES = [
    "health",
    "doorcheck",
    "public",
    "admin",
]

def register_api(app):
    api_bp = Blueprint("api", __name__, url_prefix="/api")

    for name in API_MODULES:
        mod = importlib.import_module(f"{__name__}.{name}")
        bp = getattr(mod, "bp", None)
        if bp is None:
            raise RuntimeError(f"API module {mod.__name__} has no `bp`")
        api_bp.register_blueprint(bp)

    app.register_blueprint(api_bp)
