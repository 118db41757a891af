from __future__ import annotations

import base64
import hmac
from typing import Iterable, Optional

from flask import Response, current_app, request

from ledvelvet.config import Settings

PROTECTED_PREFIXES = ("/admin", "/api/admin")


def expected_authorization(password: str) -> str:
    token = base64.b64encode(f"admin:{password}".encode("utf-8")).decode("ascii")
    return f"Basic {token}"


def is_protected(path: str, prefixes: Iterable[str] = PROTECTED_PREFIXES) -> bool:
    return any(path == p or path.startswith(p + "/") for p in prefixes)


def check(path: str, authorization: Optional[str], settings: Settings) -> Optional[Response]:
    """
    None when the request may proceed, otherwise the denial response.
    Re-evaluated on every request; nothing is remembered between calls.
    """
    if not is_protected(path):
        return None

    if not settings.admin_password:
        return Response("ADMIN_PASSWORD missing", status=500, mimetype="text/plain")

    got = (authorization or "").encode("utf-8")
    if hmac.compare_digest(got, expected_authorization(settings.admin_password).encode("utf-8")):
        return None

    return Response(
        "Auth required",
        status=401,
        mimetype="text/plain",
        headers={"WWW-Authenticate": f'Basic realm="{settings.admin_realm}"'},
    )


def register_admin_gate(app) -> None:
    @app.before_request
    def _admin_gate():
        return check(
            request.path,
            request.headers.get("Authorization"),
            current_app.config["SETTINGS"],
        )
