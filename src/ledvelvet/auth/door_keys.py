"""
Door-check API keys.

Keys live in the ``door_api_keys`` table; a key is usable iff a row with the
exact (trimmed) value exists and ``active`` is true. ``validate`` never tells
the caller which of those two conditions failed.

Failed attempts are not rate-limited here; put throttling in front of the
app if it is needed.
"""
from __future__ import annotations

import hmac
import logging
import secrets
from datetime import datetime, timezone
from typing import Dict, Optional

from ledvelvet.db import supabase as db
from ledvelvet.errors import AuthenticationError, BadRequestError, UpstreamError

logger = logging.getLogger(__name__)

TABLE = "door_api_keys"
KEY_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZabcdefghijkmnopqrstuvwxyz23456789@*-_"
KEY_LENGTH = 28
HISTORY_LIMIT = 20


def validate(api_key: Optional[str]) -> None:
    """Raise AuthenticationError unless ``api_key`` is an active stored key."""
    k = (api_key or "").strip()
    if not k:
        raise AuthenticationError("Missing API key")

    try:
        rows = db.run(
            db.table(TABLE).select("id").eq("active", True).eq("api_key", k).limit(1)
        )
    except UpstreamError as e:
        logger.warning("door key lookup failed: %s", e.message)
        rows = []

    if not rows:
        raise AuthenticationError("Invalid API key")


def authorize_door_request(api_key: Optional[str], configured_key: str) -> None:
    """
    Accept the server-held door key (what the relay injects) or any active
    stored key.
    """
    k = (api_key or "").strip()
    if not k:
        raise AuthenticationError("Missing API key")
    if configured_key and hmac.compare_digest(k.encode("utf-8"), configured_key.encode("utf-8")):
        return
    validate(k)


def generate_key(length: int = KEY_LENGTH) -> str:
    # no ambiguous characters (0/O, 1/l/I)
    return "".join(secrets.choice(KEY_ALPHABET) for _ in range(length))


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def list_keys() -> Dict:
    active = db.first(
        db.table(TABLE)
        .select("id, label, api_key, active, created_at, revoked_at")
        .eq("active", True)
        .is_("revoked_at", "null")
        .order("created_at", desc=True)
    )
    history = db.run(
        db.table(TABLE)
        .select("id, label, active, created_at, revoked_at")
        .order("created_at", desc=True)
        .limit(HISTORY_LIMIT)
    )
    return {
        "active": {
            "id": active.get("id"),
            "label": active.get("label"),
            "api_key": active.get("api_key"),
            "created_at": active.get("created_at"),
        } if active else None,
        "history": history,
    }


def _deactivate_all() -> None:
    db.run(
        db.table(TABLE)
        .update({"active": False, "revoked_at": _now_iso()})
        .eq("active", True)
        .is_("revoked_at", "null")
    )


def rotate_key(label: Optional[str] = None, api_key: Optional[str] = None) -> Dict:
    """Revoke every active key and insert a fresh active one."""
    label = str(label or "rotated").strip()[:80] or "rotated"
    next_key = str(api_key or "").strip() or generate_key()

    _deactivate_all()
    rows = db.run(
        db.table(TABLE).insert(
            {"label": label, "api_key": next_key, "active": True, "revoked_at": None}
        )
    )
    ins = rows[0] if rows else {}
    logger.info("door api key rotated (label=%s)", label)
    return {
        "id": ins.get("id"),
        "label": ins.get("label") or label,
        "api_key": ins.get("api_key") or next_key,
        "created_at": ins.get("created_at"),
    }


def _require_id(key_id) -> str:
    kid = str(key_id or "").strip()
    if not kid:
        raise BadRequestError("Missing id")
    return kid


def revoke_key(key_id) -> None:
    kid = _require_id(key_id)
    db.run(
        db.table(TABLE).update({"active": False, "revoked_at": _now_iso()}).eq("id", kid)
    )
    logger.info("door api key %s revoked", kid)


def activate_key(key_id) -> Optional[Dict]:
    # revoked_at is left untouched on purpose: it stays as the audit trail
    kid = _require_id(key_id)
    db.run(db.table(TABLE).update({"active": False}).eq("active", True))
    rows = db.run(db.table(TABLE).update({"active": True}).eq("id", kid))
    logger.info("door api key %s activated", kid)
    return rows[0] if rows else None
