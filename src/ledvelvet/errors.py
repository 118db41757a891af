from __future__ import annotations

from typing import Any, Dict, Optional

from flask import jsonify
from werkzeug.exceptions import HTTPException


class LedVelvetError(Exception):
    """Base error; carries the HTTP status and extra envelope fields."""

    status_code = 500

    def __init__(self, message: str, status_code: Optional[int] = None,
                 details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        return {"ok": False, "error": self.message, **self.details}


class ConfigurationError(LedVelvetError):
    """A required secret or environment value is absent."""

    status_code = 500


class AuthenticationError(LedVelvetError):
    """Missing or invalid credential. Messages stay generic."""

    status_code = 401


class UpstreamError(LedVelvetError):
    """The store or an external service failed."""

    status_code = 500


class BadRequestError(LedVelvetError):
    status_code = 400


class NotFoundError(LedVelvetError):
    status_code = 404


def register_error_handlers(app) -> None:
    @app.errorhandler(LedVelvetError)
    def _handle_app_error(e: LedVelvetError):
        if e.status_code >= 500:
            app.logger.error("%s: %s", type(e).__name__, e.message)
        return jsonify(e.to_dict()), e.status_code

    @app.errorhandler(HTTPException)
    def _handle_http_error(e: HTTPException):
        return jsonify({"ok": False, "error": e.description or e.name}), e.code

    @app.errorhandler(Exception)
    def _handle_unexpected(e: Exception):
        app.logger.exception("Unhandled error: %s", e)
        return jsonify({"ok": False, "error": str(e) or "Server error"}), 500
