from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone
from typing import Optional


def parse_iso_date(value: str) -> date:
    """Parse YYYY-MM-DD string into date."""
    return datetime.strptime(value, "%Y-%m-%d").date()


def parse_hhmm(value: str) -> time:
    """Parse HH:MM (24h) string into time."""
    return datetime.strptime(value.strip(), "%H:%M").time()


def utc_now() -> datetime:
    """Current instant in UTC.

    Note: Wrapped so tests can patch/inject a clock easier.
    """
    return datetime.now(timezone.utc)


def as_utc(instant: datetime) -> datetime:
    # Naive datetimes are treated as UTC instants.
    if instant.tzinfo is None:
        return instant.replace(tzinfo=timezone.utc)
    return instant.astimezone(timezone.utc)


def civil_zone(offset_minutes: int) -> timezone:
    return timezone(timedelta(minutes=offset_minutes))


def to_civil(instant: datetime, offset_minutes: int) -> datetime:
    """Wall-clock time of `instant` in the fixed civil offset.

    The device timezone is never consulted.
    """
    return as_utc(instant).astimezone(civil_zone(offset_minutes))


def civil_date(instant: datetime, offset_minutes: int) -> date:
    return to_civil(instant, offset_minutes).date()


def civil_minutes_since_midnight(instant: datetime, offset_minutes: int) -> int:
    # Seconds are ignored: 09:30:59 is still minute 570.
    civil = to_civil(instant, offset_minutes)
    return civil.hour * 60 + civil.minute


def to_backend_format(instant: datetime, offset_minutes: int) -> str:
    """Backend expects civil "YYYY-MM-DDTHH:MM:SS" (ISO 8601 without zone)."""
    return to_civil(instant, offset_minutes).strftime("%Y-%m-%dT%H:%M:%S")


def parse_server_timestamp(value: object, offset_minutes: int) -> Optional[datetime]:
    """Parse a server punch time into a UTC instant.

    Accepts ISO 8601 (with or without zone, "Z" included) and the formatted
    "2025-12-24 11:49:46 AM" civil form. Returns None when nothing matches.
    """
    if not isinstance(value, str) or not value.strip():
        return None
    text = value.strip()

    try:
        parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        try:
            parsed = datetime.strptime(text, "%Y-%m-%d %I:%M:%S %p")
        except ValueError:
            return None
        parsed = parsed.replace(tzinfo=civil_zone(offset_minutes))

    return as_utc(parsed)
