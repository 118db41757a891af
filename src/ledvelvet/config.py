# robust .env loading
from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv
from flask import current_app

# 1) load from CWD (project root when you run commands there)
load_dotenv(override=False)
# 2) also try repo root even if code runs from src/
_repo_root = Path(__file__).resolve().parents[2]
_env_path = _repo_root / ".env"
if _env_path.exists():
    load_dotenv(dotenv_path=_env_path, override=False)

DEFAULT_ADMIN_REALM = "LedVelvet Admin"
DEFAULT_EVENTS_TABLE = "EVENTS"
DEFAULT_SPONSORS_TABLE = "SPONSOR"


def _env(name: str, default: str = "") -> str:
    return (os.getenv(name) or default).strip()


@dataclass(frozen=True)
class Settings:
    """
    Everything the handlers need from the environment, resolved once at
    startup and handed to the app factory.
    """

    # --- Admin gate ---
    admin_password: str = ""
    admin_realm: str = DEFAULT_ADMIN_REALM

    # --- Door-check ---
    door_api_key: str = ""
    upstream_timeout: float = 30.0

    # --- Supabase ---
    supabase_url: str = ""
    supabase_service_role: str = ""

    # --- Airtable ---
    airtable_token: str = ""
    airtable_base_id: str = ""
    airtable_events_table: str = DEFAULT_EVENTS_TABLE
    airtable_sponsors_table: str = DEFAULT_SPONSORS_TABLE

    # --- Flask / server ---
    secret_key: str = "dev-secret"
    cors_origins: str = "*"
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        try:
            timeout = float(_env("UPSTREAM_TIMEOUT", "30"))
        except ValueError:
            timeout = 30.0
        return cls(
            admin_password=_env("ADMIN_PASSWORD"),
            admin_realm=_env("ADMIN_REALM", DEFAULT_ADMIN_REALM),
            door_api_key=_env("DOOR_API_KEY"),
            upstream_timeout=timeout,
            supabase_url=_env("SUPABASE_URL"),
            supabase_service_role=_env("SUPABASE_SERVICE_ROLE"),
            airtable_token=_env("AIRTABLE_TOKEN"),
            airtable_base_id=_env("AIRTABLE_BASE_ID"),
            airtable_events_table=_env("AIRTABLE_EVENTS_TABLE", DEFAULT_EVENTS_TABLE),
            airtable_sponsors_table=_env("AIRTABLE_SPONSORS_TABLE", DEFAULT_SPONSORS_TABLE),
            secret_key=_env("SECRET_KEY", "dev-secret"),
            cors_origins=_env("CORS_ORIGINS", "*"),
            log_level=_env("LOG_LEVEL", "INFO").upper(),
        )


def current_settings() -> Settings:
    """Settings of the app handling the current request."""
    return current_app.config["SETTINGS"]
