from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Optional
from zoneinfo import ZoneInfo

from flask import current_app, has_app_context


DEFAULT_BUSINESS_TIMEZONE = "Asia/Colombo"


def utcnow() -> datetime:
    """Server-side 'now' in UTC (naive, canonical)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def parse_iso_datetime(value: Optional[str]) -> Optional[datetime]:
    """
    Parse an ISO-8601 datetime string and normalize to UTC-naive datetime.

    - None / "" -> None
    - "YYYY-MM-DDTHH:MM" (naive) is interpreted as UTC
    - "...Z" or "...+/-HH:MM" is converted to UTC and tzinfo is stripped
    """
    if value is None:
        return None
    s = value.strip()
    if not s:
        return None

    # Accept trailing Z
    if s.endswith("Z"):
        s = s[:-1] + "+00:00"

    dt = datetime.fromisoformat(s)

    # Normalize to UTC-naive
    if dt.tzinfo is None:
        # interpret naive as UTC
        return dt.replace(tzinfo=None)

    return dt.astimezone(timezone.utc).replace(tzinfo=None)


def parse_iso_date(value: Optional[str]) -> Optional[date]:
    """Parse "YYYY-MM-DD"; None / "" -> None."""
    if value is None:
        return None
    s = value.strip()
    if not s:
        return None
    return date.fromisoformat(s)


def to_utc_z(dt: Optional[datetime]) -> Optional[str]:
    """
    Serializes datetime to ISO-8601 with trailing 'Z'.
    If dt is naive, it is treated as UTC.
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    dt_utc = dt.astimezone(timezone.utc).replace(microsecond=0)
    return dt_utc.isoformat().replace("+00:00", "Z")


def business_timezone(override: Optional[str] = None) -> ZoneInfo:
    """
    Zone that defines the business day.

    Tenant override first, then BUSINESS_TIMEZONE from app config.
    """
    if override:
        return ZoneInfo(override)
    if has_app_context():
        return ZoneInfo(current_app.config.get("BUSINESS_TIMEZONE", DEFAULT_BUSINESS_TIMEZONE))
    return ZoneInfo(DEFAULT_BUSINESS_TIMEZONE)


def business_date(moment: Optional[datetime] = None, tz_name: Optional[str] = None) -> date:
    """
    Calendar date of a UTC moment in the business timezone.

    Naive datetimes are treated as UTC, matching utcnow().
    """
    moment = moment or utcnow()
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(business_timezone(tz_name)).date()


def date_key(day: date) -> str:
    """Counter key for a day: YYYYMMDD."""
    return day.strftime("%Y%m%d")


def date_string(day: date) -> str:
    """Stats/lock key for a day: YYYY-MM-DD."""
    return day.isoformat()
