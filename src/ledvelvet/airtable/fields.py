"""
Airtable column names drifted over time (``Event Name`` vs ``name`` ...).
Each output field lists its candidate source columns in priority order; the
first one holding a non-empty value wins.
"""
from __future__ import annotations

from typing import Any, Dict, Sequence

EVENT_FIELDS: Dict[str, Sequence[str]] = {
    "name": ("Event Name", "name"),
    "date": ("date",),
    "city": ("City", "city"),
    "venue": ("Venue", "venue"),
    "status": ("status", "Status"),
    "ticketPlatform": ("Ticket Platform", "ticketPlatform"),
    "ticketUrl": ("Ticket Url", "ticketUrl"),
    "posterSrc": ("Hero Image", "posterSrc"),
    "teaserUrl": ("Teaser", "teaserUrl"),
    "aftermovieUrl": ("Aftermovie", "aftermovieUrl"),
    "heroTitle": ("Hero Title", "heroTitle"),
    "heroSubtitle": ("Hero Subtitle", "heroSubtitle"),
    "notes": ("Notes", "notes"),
}

EVENT_FLAGS: Dict[str, Sequence[str]] = {
    "featured": ("featured",),
    "heroOnly": ("HeroOnly", "heroOnly"),
}

EVENT_SPONSOR_LINKS: Sequence[str] = ("Event Sponsored", "Sponsors")
EVENT_DEEPDIVE: Sequence[str] = ("deepdive_slug", "DeepDive Slug")
EVENT_PHASE: Sequence[str] = ("phase", "Phase")

SPONSOR_FIELDS: Dict[str, Sequence[str]] = {
    "label": ("Brand Name", "Brand", "Name", "Company", "Title"),
    "website": ("WebSite", "Website", "website"),
}
SPONSOR_LOGO: Sequence[str] = ("Logo", "logo", "logoUrl")


def as_string(v: Any) -> str:
    if isinstance(v, bool):
        return "true" if v else "false"
    if isinstance(v, str):
        return v.strip()
    if isinstance(v, (int, float)):
        return str(v)
    return ""


def url_field(v: Any) -> str:
    """URL from a plain string, an attachment list, or a ``{url}`` object."""
    if not v:
        return ""
    if isinstance(v, str):
        return v.strip()
    if isinstance(v, list):
        first = v[0]
        if isinstance(first, dict):
            thumbs = first.get("thumbnails") or {}
            url = first.get("url") or next(
                (thumbs[size].get("url") for size in ("large", "full", "small")
                 if isinstance(thumbs.get(size), dict) and thumbs[size].get("url")),
                None,
            )
            return url if isinstance(url, str) else ""
        return ""
    if isinstance(v, dict) and isinstance(v.get("url"), str):
        return v["url"].strip()
    return ""


def first_value(fields: Dict[str, Any], candidates: Sequence[str]) -> Any:
    for name in candidates:
        v = fields.get(name)
        if v not in (None, "", [], {}):
            return v
    return None


def first_match(fields: Dict[str, Any], candidates: Sequence[str]) -> str:
    return as_string(first_value(fields, candidates))


def map_fields(fields: Dict[str, Any], table: Dict[str, Sequence[str]]) -> Dict[str, str]:
    return {out: first_match(fields, candidates) for out, candidates in table.items()}


def first_flag(fields: Dict[str, Any], candidates: Sequence[str]) -> bool:
    for name in candidates:
        if name in fields and fields[name] is not None:
            return bool(fields[name])
    return False


def linked_ids(fields: Dict[str, Any], candidates: Sequence[str]) -> list:
    for name in candidates:
        v = fields.get(name)
        if isinstance(v, list):
            return [x for x in v if isinstance(x, str) and x]
    return []


def slug_list(fields: Dict[str, Any], candidates: Sequence[str]) -> list:
    v = first_value(fields, candidates)
    if isinstance(v, list):
        return v
    s = as_string(v)
    return [s] if s else []


def phase(fields: Dict[str, Any], status: str) -> str:
    """Explicit phase column, else derived from the status text."""
    return first_match(fields, EVENT_PHASE) or ("past" if "past" in status.lower() else "upcoming")
