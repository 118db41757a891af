import pytest

from ledvelvet.doorcheck.checkin import normalize_email, normalize_phone, build_full_name

EVENT = "ev-1"


@pytest.fixture
def door(fake_db, app_client, settings):
    fake_db.seed("events", {"id": EVENT, "xceed_event_ref": "XREF", "require_ticket": False,
                            "require_membership": False})
    fake_db.seed("members",
                 {"id": "m-1", "first_name": "Ada", "last_name": "Rossi", "email": "ada@example.com",
                  "phone": "+39111", "legacy_barcode": "4242"},
                 {"id": "m-2", "first_name": "Bo", "last_name": None, "email": "bo@example.com",
                  "phone": "+39222", "legacy_barcode": None})
    fake_db.seed("member_cards",
                 {"member_id": "m-2", "qr_secret": "LV-CARD-2", "revoked": False},
                 {"member_id": "m-1", "qr_secret": "LV-CARD-OLD", "revoked": True})
    fake_db.seed("xceed_tickets",
                 {"id": "t-1", "event_id": EVENT, "qr_code": "XQ-1", "legacy_person_id": None,
                  "buyer_name": "Carla Bianchi", "buyer_email_norm": "carla@example.com",
                  "buyer_phone_norm": "+39333"})
    fake_db.seed("legacy_people",
                 {"id": "lp-1", "full_name": "Dario Verdi", "legacy_barcode": "9001",
                  "email": None, "phone": None})

    def post(body, key=settings.door_api_key):
        headers = {"x-api-key": key} if key is not None else {}
        return app_client.post("/api/doorcheck", json=body, headers=headers)

    fake_db.client = app_client
    fake_db.post = post
    return fake_db


def _checkins(db):
    return db.tables.get("checkins", [])


# ---------------------------
# authorization
# ---------------------------

def test_requires_a_key(door):
    r = door.post({"event_id": EVENT, "qr": "4242"}, key=None)
    assert r.status_code == 401
    assert r.get_json() == {"ok": False, "error": "Missing API key"}


def test_rejects_unknown_key(door):
    r = door.post({"event_id": EVENT, "qr": "4242"}, key="guess")
    assert r.status_code == 401
    assert r.get_json()["error"] == "Invalid API key"


def test_accepts_active_stored_key(door):
    door.seed("door_api_keys", {"id": "k", "api_key": "DEVICE", "active": True})
    r = door.post({"event_id": EVENT, "qr": "4242"}, key="DEVICE")
    assert r.status_code == 200


def test_invalid_json(door, settings):
    r = door.client.post("/api/doorcheck", data=b"not json",
                         headers={"x-api-key": settings.door_api_key, "Content-Type": "application/json"})
    assert r.status_code == 400
    assert r.get_json()["error"] == "Invalid JSON body"


# ---------------------------
# event resolution
# ---------------------------

def test_unknown_event(door):
    r = door.post({"event_id": "nope", "qr": "4242"})
    assert r.status_code == 404
    assert r.get_json() == {"ok": False, "error": "Event not found"}


def test_event_by_xceed_ref(door):
    r = door.post({"event_ref": "XREF", "qr": "4242"})
    assert r.get_json()["status"] == "checked_in"


def test_scan_requires_qr(door):
    r = door.post({"event_id": EVENT})
    assert r.status_code == 400
    assert r.get_json()["error"] == "Missing qr"


# ---------------------------
# members
# ---------------------------

def test_member_barcode_checkin_then_already(door):
    first = door.post({"event_id": EVENT, "qr": "4242"}).get_json()
    assert first["allowed"] is True
    assert first["kind"] == "ETS"
    assert first["status"] == "checked_in"
    assert first["display_name"] == "Ada Rossi"
    row = _checkins(door)[0]
    assert row["method"] == "wally_barcode"
    assert row["reason"] == "ets_ok"
    assert row["result"] == "allowed"

    again = door.post({"event_id": EVENT, "qr": "4242"}).get_json()
    assert again["status"] == "already"
    assert len(_checkins(door)) == 1


def test_member_card_qr(door):
    body = door.post({"event_id": EVENT, "qr": "LV-CARD-2"}).get_json()
    assert body["member_id"] == "m-2"
    assert body["display_name"] == "Bo"
    assert _checkins(door)[0]["method"] == "lv_qr"


def test_revoked_card_is_unknown(door):
    body = door.post({"event_id": EVENT, "qr": "LV-CARD-OLD"}).get_json()
    assert body == {"ok": True, "allowed": False, "kind": "UNKNOWN", "status": "denied", "reason": "not_found"}


def test_member_without_ticket_is_denied(door):
    door.tables["events"][0]["require_ticket"] = True
    body = door.post({"event_id": EVENT, "qr": "4242"}).get_json()
    assert body["allowed"] is False
    assert body["reason"] == "missing_ticket"
    assert _checkins(door) == []


def test_member_with_ticket_passes(door):
    door.tables["events"][0]["require_ticket"] = True
    door.seed("xceed_tickets", {"id": "t-9", "event_id": EVENT, "qr_code": "XQ-9",
                                "buyer_email_norm": "ada@example.com", "buyer_phone_norm": None})
    body = door.post({"event_id": EVENT, "qr": "4242"}).get_json()
    assert body["allowed"] is True
    assert _checkins(door)[0]["reason"] == "ets_ok_ticket_ok"


# ---------------------------
# xceed tickets
# ---------------------------

def test_ticket_links_legacy_person(door):
    body = door.post({"event_id": EVENT, "qr": "XQ-1"}).get_json()
    assert body["kind"] == "XCEED"
    assert body["status"] == "checked_in"
    assert body["display_name"] == "Carla Bianchi"

    person = door.tables["legacy_people"][-1]
    assert person["email"] == "carla@example.com"
    assert person["source"] == "guest"
    assert door.tables["xceed_tickets"][0]["legacy_person_id"] == person["id"]
    assert _checkins(door)[0]["method"] == "xceed_qr"

    assert door.post({"event_id": EVENT, "qr": "XQ-1"}).get_json()["status"] == "already"


def test_ticket_requires_membership(door):
    door.tables["events"][0]["require_membership"] = True
    body = door.post({"event_id": EVENT, "qr": "XQ-1"}).get_json()
    assert body["allowed"] is False
    assert body["reason"] == "not_a_member"


def test_ticket_ambiguous_member(door):
    door.tables["events"][0]["require_membership"] = True
    door.seed("members",
              {"id": "m-3", "email": "CARLA@example.com"},
              {"id": "m-4", "email": "carla@example.com"})
    body = door.post({"event_id": EVENT, "qr": "XQ-1"}).get_json()
    assert body["reason"] == "ambiguous_member_match"


def test_ticket_with_member_match(door):
    door.tables["events"][0]["require_membership"] = True
    door.seed("members", {"id": "m-5", "first_name": "Carla", "email": "carla@example.com"})
    body = door.post({"event_id": EVENT, "qr": "XQ-1"}).get_json()
    assert body["allowed"] is True
    assert _checkins(door)[0]["reason"] == "xceed_ok_member_required"


# ---------------------------
# legacy + manual
# ---------------------------

def test_legacy_barcode(door):
    body = door.post({"event_id": EVENT, "qr": "9001"}).get_json()
    assert body["kind"] == "SRL"
    assert body["legacy_person_id"] == "lp-1"
    assert body["display_name"] == "Dario Verdi"


def test_unknown_numeric_code(door):
    body = door.post({"event_id": EVENT, "qr": "0000"}).get_json()
    assert body["status"] == "denied"
    assert body["kind"] == "UNKNOWN"


def test_manual_guest(door):
    body = door.post({"event_id": EVENT, "mode": "manual", "full_name": " Elena Neri ",
                      "phone": "+39 (444) 55-66", "email": " Elena@Example.com "}).get_json()
    assert body["status"] == "created_and_checked_in"
    assert body["scanned_code"] == "MANUAL:+394445566"
    assert body["display_name"] == "Elena Neri"

    person = door.tables["legacy_people"][-1]
    assert person["email"] == "elena@example.com"
    assert person["phone"] == "+394445566"

    again = door.post({"event_id": EVENT, "mode": "manual", "full_name": "Elena Neri",
                       "phone": "+394445566"}).get_json()
    assert again["status"] == "already"
    assert again["legacy_person_id"] == person["id"]


def test_manual_requires_name_and_phone(door):
    r = door.post({"event_id": EVENT, "mode": "manual", "full_name": "Solo"})
    assert r.status_code == 400
    assert r.get_json()["error"] == "Missing full_name or phone"


def test_normalizers():
    assert normalize_email("  A@B.IT ") == "a@b.it"
    assert normalize_email("   ") is None
    assert normalize_phone("+39 333-12 34") == "+393331234"
    assert normalize_phone("n/a") is None
    assert build_full_name(" Ada ", None) == "Ada"
    assert build_full_name(None, "") is None


def test_numeric_identifiers_are_coerced(door):
    door.seed("events", {"id": "123", "require_ticket": False, "require_membership": False})
    r = door.post({"event_id": 123, "qr": 4242})
    assert r.status_code == 200
    assert r.get_json()["status"] == "checked_in"

    missing = door.post({"event_ref": 999, "qr": "4242"})
    assert missing.status_code == 404
    assert missing.get_json() == {"ok": False, "error": "Event not found"}

    manual = door.post({"event_id": EVENT, "mode": "manual", "full_name": "Num Guest", "phone": 39555})
    assert manual.get_json()["scanned_code"] == "MANUAL:39555"
