import base64

import pytest

from ledvelvet import create_app
from ledvelvet.config import Settings
import ledvelvet.db.supabase as supabase_mod

from fixtures import FakeSupabase

ADMIN_PASSWORD = "rightpass"
DOOR_KEY = "server-door-key"


@pytest.fixture
def settings():
    return Settings(
        admin_password=ADMIN_PASSWORD,
        door_api_key=DOOR_KEY,
        supabase_url="https://example.supabase.co",
        supabase_service_role="service-role",
        airtable_token="at-token",
        airtable_base_id="appBASE",
    )


@pytest.fixture
def fake_db(monkeypatch):
    db = FakeSupabase()
    monkeypatch.setattr(supabase_mod, "get_client", lambda: db, raising=True)
    return db


@pytest.fixture
def app(settings, fake_db):
    flask_app = create_app(settings)
    flask_app.config.update(TESTING=True)
    return flask_app


@pytest.fixture
def app_client(app):
    with app.test_client() as c:
        yield c


@pytest.fixture
def admin_headers():
    token = base64.b64encode(f"admin:{ADMIN_PASSWORD}".encode()).decode()
    return {"Authorization": f"Basic {token}"}


@pytest.fixture
def fake_requests(monkeypatch):
    """
    Route requests.get/post/delete through ``mapper(method, url, kwargs)``
    which returns a DummyResp (or raises). Returns the call log.
    """
    calls = []

    def install(mapper):
        def _make(method):
            def _call(url, **kwargs):
                calls.append({"method": method, "url": url, **kwargs})
                return mapper(method, url, kwargs)
            return _call

        for method in ("get", "post", "delete"):
            monkeypatch.setattr(f"requests.{method}", _make(method), raising=True)
        return calls

    return install
