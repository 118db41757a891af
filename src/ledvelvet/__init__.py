import logging
from typing import Optional

from flask import Flask
from flask_cors import CORS

from ledvelvet.config import Settings

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def create_app(settings: Optional[Settings] = None) -> Flask:
    settings = settings or Settings.from_env()

    logging.basicConfig(level=getattr(logging, settings.log_level, logging.INFO), format=LOG_FORMAT)

    app = Flask(__name__)
    app.config["SECRET_KEY"] = settings.secret_key
    app.config["SETTINGS"] = settings
    CORS(app, origins=[o.strip() for o in settings.cors_origins.split(",") if o.strip()] or "*")

    from ledvelvet.errors import register_error_handlers
    from ledvelvet.auth.admin_gate import register_admin_gate
    from ledvelvet.api import register_api
    from ledvelvet.web import register_web

    register_error_handlers(app)
    register_admin_gate(app)
    register_api(app)
    register_web(app)

    if not settings.admin_password:
        app.logger.warning("[create_app] ADMIN_PASSWORD not set; /admin will answer 500")
    if not settings.door_api_key:
        app.logger.warning("[create_app] DOOR_API_KEY not set; doorcheck relay disabled")

    return app
