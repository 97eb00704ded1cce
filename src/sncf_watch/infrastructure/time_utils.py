from __future__ import annotations

from datetime import date, datetime
from zoneinfo import ZoneInfo

PARIS_TZ: ZoneInfo = ZoneInfo("Europe/Paris")
UTC_TZ: ZoneInfo = ZoneInfo("UTC")


def now_paris() -> datetime:
    """Return the current moment as a timezone-aware datetime in Europe/Paris."""
    return datetime.now(tz=PARIS_TZ)


def today_paris() -> date:
    return now_paris().date()


def parse_sncf_datetime(s: str) -> datetime:
    """Parse a datetime string from the free-places API.

    Handles formats:
    - "2025-03-10T06:12:00"            (naive, assumed Paris)
    - "2025-03-10T06:12:00+01:00"      (offset-aware)
    - "2025-03-10T05:12:00.000Z"       (UTC)

    Always returns a timezone-aware datetime in Europe/Paris.
    Raises ValueError on empty or unparseable input.
    """
    if not s or not s.strip():
        raise ValueError("Empty datetime string")

    s = s.strip()
    if s.endswith("Z"):
        s = s[:-1] + "+00:00"

    try:
        dt = datetime.fromisoformat(s)
    except ValueError:
        raise ValueError(f"Cannot parse datetime string: {s!r}")

    if dt.tzinfo is None:
        return dt.replace(tzinfo=PARIS_TZ)
    return dt.astimezone(PARIS_TZ)


def parse_optional_datetime(value: object) -> datetime | None:
    """Like parse_sncf_datetime, but returns None for missing or malformed values."""
    if not isinstance(value, str):
        return None
    try:
        return parse_sncf_datetime(value)
    except ValueError:
        return None


def parse_travel_date(s: str) -> date:
    """Parse a YYYY-MM-DD travel date. Raises ValueError on bad input."""
    try:
        return date.fromisoformat(s.strip())
    except (AttributeError, ValueError):
        raise ValueError(f"Invalid date {s!r}, expected YYYY-MM-DD")


def format_departure_param(d: date) -> str:
    """Return the departureDateTime query value: start of the travel day, YYYY-MM-DDT01:00:00.000Z."""
    return f"{d.isoformat()}T01:00:00.000Z"


def format_fr_date(d: date) -> str:
    """Return date string in DD/MM/YYYY format."""
    return d.strftime("%d/%m/%Y")


def format_fr_datetime(dt: datetime | None) -> str:
    """Return "DD/MM/YYYY HH:MM" in Paris time, or "N/A" when missing."""
    if dt is None:
        return "N/A"
    return dt.astimezone(PARIS_TZ).strftime("%d/%m/%Y %H:%M")


def format_duration(minutes: int | None) -> str:
    """Return "2h 5min" style duration, or an empty string when unknown."""
    if minutes is None or minutes < 0:
        return ""
    return f"{minutes // 60}h {minutes % 60}min"
