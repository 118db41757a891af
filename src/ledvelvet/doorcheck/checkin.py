"""
Internal check-in endpoint logic (target of the door-check relay).

A scan is resolved in this order:

  A. member card: numeric Wally barcode (members.legacy_barcode) or
     LedVelvet card QR (member_cards.qr_secret, not revoked)
  B. Xceed ticket for the event (xceed_tickets.qr_code)
  C. numeric legacy barcode (legacy_people.legacy_barcode)
  D. unknown -> denied

Manual mode registers a guest (legacy person) and checks them in.
Every result is ``ok: true``; ``allowed`` says whether the door opens.
"""
from __future__ import annotations

import logging
import re
from typing import Dict, Optional

from ledvelvet.db import supabase as db
from ledvelvet.errors import BadRequestError, NotFoundError

logger = logging.getLogger(__name__)

MEMBER_COLUMNS = "id, first_name, last_name, email, phone"
TICKET_COLUMNS = "id, legacy_person_id, buyer_name, buyer_email_norm, buyer_phone_norm"

_DIGITS = re.compile(r"^[0-9]+$")
_PHONE_JUNK = re.compile(r"[^\d+]")


def is_digits_only(s: str) -> bool:
    return bool(_DIGITS.match(s))


def normalize_email(email: Optional[str]) -> Optional[str]:
    e = str(email or "").strip().lower()
    return e or None


def normalize_phone(phone: Optional[str]) -> Optional[str]:
    p = _PHONE_JUNK.sub("", str(phone or "").strip())
    return p or None


def build_full_name(first: Optional[str], last: Optional[str]) -> Optional[str]:
    joined = f"{(first or '').strip()} {(last or '').strip()}".strip()
    return joined or None


# ---------------------------
# Lookups
# ---------------------------

def resolve_event_id(event_id: Optional[str], event_ref: Optional[str]) -> Optional[str]:
    eid = str(event_id or "").strip()
    if eid:
        ev = db.first(db.table("events").select("id").eq("id", eid))
        return ev["id"] if ev else None

    ref = str(event_ref or "").strip()
    if not ref:
        return None
    ev = db.first(db.table("events").select("id").eq("xceed_event_ref", ref))
    return ev["id"] if ev else None


def get_event_policy(event_id: str) -> Dict[str, bool]:
    ev = db.first(
        db.table("events").select("id, require_ticket, require_membership").eq("id", event_id)
    ) or {}
    return {
        "require_ticket": bool(ev.get("require_ticket")),
        "require_membership": bool(ev.get("require_membership")),
    }


def _member_view(m: Dict) -> Dict:
    return {
        "id": m["id"],
        "display_name": build_full_name(m.get("first_name"), m.get("last_name")),
        "email": m.get("email"),
        "phone": m.get("phone"),
    }


def find_member_by_barcode_or_card(qr: str) -> Optional[Dict]:
    if is_digits_only(qr):
        m = db.first(db.table("members").select(MEMBER_COLUMNS).eq("legacy_barcode", qr))
        return _member_view(m) if m else None

    card = db.first(db.table("member_cards").select("member_id, revoked").eq("qr_secret", qr))
    if not card or card.get("revoked"):
        return None

    m = db.first(db.table("members").select(MEMBER_COLUMNS).eq("id", card["member_id"]))
    return _member_view(m) if m else None


def _already_checked_in(event_id: str, column: str, value: str) -> Optional[str]:
    row = db.first(
        db.table("checkins").select("id").eq("event_id", event_id).eq(column, value)
    )
    return row["id"] if row else None


def member_already_checked_in(event_id: str, member_id: str) -> Optional[str]:
    return _already_checked_in(event_id, "member_id", member_id)


def legacy_already_checked_in(event_id: str, legacy_person_id: str) -> Optional[str]:
    return _already_checked_in(event_id, "legacy_person_id", legacy_person_id)


def resolve_member_by_email_or_phone(email_norm: Optional[str], phone_norm: Optional[str]):
    """
    Single member matching the email (first) or phone.
    Returns the match, ``"ambiguous"`` for several, or None.
    """
    lookups = []
    if email_norm:
        lookups.append(lambda: db.table("members").select("id, first_name, last_name").ilike("email", email_norm))
    if phone_norm:
        lookups.append(lambda: db.table("members").select("id, first_name, last_name").eq("phone", phone_norm))

    for build in lookups:
        rows = db.run(build().limit(2))
        if len(rows) == 1:
            m = rows[0]
            return {"id": m["id"], "display_name": build_full_name(m.get("first_name"), m.get("last_name"))}
        if len(rows) > 1:
            return "ambiguous"
    return None


def member_has_ticket_for_event(event_id: str, email_norm: Optional[str], phone_norm: Optional[str]) -> bool:
    parts = []
    if email_norm:
        parts.append(f"buyer_email_norm.eq.{email_norm}")
    if phone_norm:
        parts.append(f"buyer_phone_norm.eq.{phone_norm}")
    if not parts:
        return False

    row = db.first(
        db.table("xceed_tickets").select("id").eq("event_id", event_id).or_(",".join(parts))
    )
    return row is not None


def upsert_legacy_person(full_name: Optional[str], email: Optional[str],
                         phone: Optional[str], source: str = "guest") -> str:
    email_norm = normalize_email(email)
    phone_norm = normalize_phone(phone)

    if email_norm or phone_norm:
        parts = []
        if email_norm:
            parts.append(f"email.ilike.{email_norm}")
        if phone_norm:
            parts.append(f"phone.eq.{phone_norm}")
        existing = db.run(
            db.table("legacy_people").select("id").or_(",".join(parts)).limit(2)
        )
        if len(existing) == 1:
            return existing[0]["id"]

    rows = db.run(
        db.table("legacy_people").insert({
            "source": source or "guest",
            "full_name": (full_name or "").strip() or None,
            "email": email_norm,
            "phone": phone_norm,
        })
    )
    return rows[0]["id"]


def _insert_checkin(**fields) -> Optional[str]:
    rows = db.run(db.table("checkins").insert({"result": "allowed", **fields}))
    return rows[0].get("id") if rows else None


# ---------------------------
# Flows
# ---------------------------

def _manual(event_id: str, body: Dict, qr: str) -> Dict:
    full_name = str(body.get("full_name") or "").strip()
    phone_norm = normalize_phone(body.get("phone"))
    email_norm = normalize_email(body.get("email"))
    if not full_name or not phone_norm:
        raise BadRequestError("Missing full_name or phone")

    legacy_id = upsert_legacy_person(full_name, email_norm, phone_norm)

    if legacy_already_checked_in(event_id, legacy_id):
        return {
            "ok": True, "allowed": True, "kind": "SRL", "status": "already",
            "legacy_person_id": legacy_id, "display_name": full_name,
        }

    scanned_code = qr or f"MANUAL:{phone_norm}"
    checkin_id = _insert_checkin(
        event_id=event_id, legacy_person_id=legacy_id, reason="srl_created",
        method="lv_manual", kind="SRL", scanned_code=scanned_code,
    )
    return {
        "ok": True, "allowed": True, "kind": "SRL", "status": "created_and_checked_in",
        "checkin_id": checkin_id, "legacy_person_id": legacy_id,
        "display_name": full_name, "scanned_code": scanned_code,
    }


def _scan_member(event_id: str, member: Dict, qr: str, policy: Dict[str, bool]) -> Dict:
    if policy["require_ticket"]:
        has_ticket = member_has_ticket_for_event(
            event_id, normalize_email(member["email"]), normalize_phone(member["phone"])
        )
        if not has_ticket:
            return {
                "ok": True, "allowed": False, "kind": "ETS", "status": "denied",
                "reason": "missing_ticket", "member_id": member["id"],
                "display_name": member["display_name"],
            }

    if member_already_checked_in(event_id, member["id"]):
        return {
            "ok": True, "allowed": True, "kind": "ETS", "status": "already",
            "member_id": member["id"], "display_name": member["display_name"],
        }

    checkin_id = _insert_checkin(
        event_id=event_id, member_id=member["id"],
        reason="ets_ok_ticket_ok" if policy["require_ticket"] else "ets_ok",
        method="wally_barcode" if is_digits_only(qr) else "lv_qr",
        kind="ETS", scanned_code=qr,
    )
    return {
        "ok": True, "allowed": True, "kind": "ETS", "status": "checked_in",
        "member_id": member["id"], "checkin_id": checkin_id,
        "display_name": member["display_name"],
    }


def _scan_ticket(event_id: str, ticket: Dict, qr: str, policy: Dict[str, bool]) -> Dict:
    buyer_email = str(ticket["buyer_email_norm"]) if ticket.get("buyer_email_norm") else None
    buyer_phone = str(ticket["buyer_phone_norm"]) if ticket.get("buyer_phone_norm") else None
    buyer_name = str(ticket.get("buyer_name") or "").strip() or "Xceed guest"

    if policy["require_membership"]:
        m = resolve_member_by_email_or_phone(buyer_email, buyer_phone)
        if m is None or m == "ambiguous":
            return {
                "ok": True, "allowed": False, "kind": "XCEED", "status": "denied",
                "reason": "ambiguous_member_match" if m else "not_a_member",
            }

    legacy_id = ticket.get("legacy_person_id")
    if not legacy_id:
        legacy_id = upsert_legacy_person(buyer_name, buyer_email, buyer_phone)
        db.run(
            db.table("xceed_tickets").update({"legacy_person_id": legacy_id}).eq("id", ticket["id"])
        )

    if legacy_already_checked_in(event_id, legacy_id):
        return {
            "ok": True, "allowed": True, "kind": "XCEED", "status": "already",
            "legacy_person_id": legacy_id, "display_name": buyer_name,
        }

    checkin_id = _insert_checkin(
        event_id=event_id, legacy_person_id=legacy_id,
        reason="xceed_ok_member_required" if policy["require_membership"] else "xceed_ok",
        method="xceed_qr", kind="XCEED", scanned_code=qr,
    )
    return {
        "ok": True, "allowed": True, "kind": "XCEED", "status": "checked_in",
        "checkin_id": checkin_id, "legacy_person_id": legacy_id,
        "display_name": buyer_name,
    }


def _scan_legacy(event_id: str, person: Dict, qr: str) -> Dict:
    legacy_id = person["id"]
    display_name = person.get("full_name")

    if legacy_already_checked_in(event_id, legacy_id):
        return {
            "ok": True, "allowed": True, "kind": "SRL", "status": "already",
            "legacy_person_id": legacy_id, "display_name": display_name,
        }

    checkin_id = _insert_checkin(
        event_id=event_id, legacy_person_id=legacy_id, reason="srl_ok",
        method="lv_qr", kind="SRL", scanned_code=qr,
    )
    return {
        "ok": True, "allowed": True, "kind": "SRL", "status": "checked_in",
        "checkin_id": checkin_id, "legacy_person_id": legacy_id,
        "display_name": display_name,
    }


def check_in(body: Dict) -> Dict:
    event_id = resolve_event_id(body.get("event_id"), body.get("event_ref"))
    if not event_id:
        raise NotFoundError("Event not found")

    policy = get_event_policy(event_id)
    mode = body.get("mode") or "scan"
    qr = str(body.get("qr") or "").strip()

    if mode == "manual":
        return _manual(event_id, body, qr)

    if not qr:
        raise BadRequestError("Missing qr")

    member = find_member_by_barcode_or_card(qr)
    if member:
        return _scan_member(event_id, member, qr, policy)

    ticket = db.first(
        db.table("xceed_tickets").select(TICKET_COLUMNS).eq("event_id", event_id).eq("qr_code", qr)
    )
    if ticket and ticket.get("id"):
        return _scan_ticket(event_id, ticket, qr, policy)

    if is_digits_only(qr):
        person = db.first(
            db.table("legacy_people").select("id, full_name").eq("legacy_barcode", qr)
        )
        if person and person.get("id"):
            return _scan_legacy(event_id, person, qr)

    logger.info("doorcheck: no match for scan on event %s", event_id)
    return {
        "ok": True, "allowed": False, "kind": "UNKNOWN",
        "status": "denied", "reason": "not_found",
    }
