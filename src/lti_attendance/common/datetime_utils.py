from __future__ import annotations

import re
from datetime import date, datetime, timezone, tzinfo
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

# Moodle renders session headers like "Monday, 20 October 2025, 12:00 PM";
# other sources send ISO-ish strings.
_SESSION_FORMATS = (
    "%A, %d %B %Y, %I:%M %p",
    "%A, %d %B %Y, %H:%M",
    "%d %B %Y, %I:%M %p",
    "%d %B %Y, %H:%M",
    "%A, %d %b %Y, %I:%M %p",
    "%d %b %Y, %I:%M %p",
    "%Y-%m-%d %H:%M",
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%dT%H:%M",
    "%Y-%m-%dT%H:%M:%S",
    "%d/%m/%Y %H:%M",
    "%A, %d %B %Y",
    "%d %B %Y",
    "%Y-%m-%d",
)

_MONTHS = (
    "january|february|march|april|may|june|july|august|september|october|november|december"
    "|jan|feb|mar|apr|jun|jul|aug|sep|sept|oct|nov|dec"
)
_DATETIME_SHAPE = re.compile(
    rf"\b(19|20)\d{{2}}\b|\b\d{{1,2}}:\d{{2}}\b|\b({_MONTHS})\b|\b\d{{1,2}}[/.-]\d{{1,2}}[/.-]\d{{2,4}}\b",
    re.IGNORECASE,
)
# "..., 12:00 PM - 1:00 PM" -> keep the start only
_TIME_RANGE_TAIL = re.compile(r"\s*[-–]\s*\d{1,2}:\d{2}(\s*[AaPp][Mm])?\s*$")


def parse_iso_date(value: str) -> date:
    """Parse YYYY-MM-DD string into date."""
    return datetime.strptime(value, "%Y-%m-%d").date()


def resolve_timezone(name: Optional[str]) -> tzinfo:
    if not name or name.upper() == "UTC":
        return timezone.utc
    try:
        return ZoneInfo(name)
    except ZoneInfoNotFoundError:
        raise ValueError(f"Unknown timezone: {name!r}") from None


def looks_like_datetime(value: str) -> bool:
    """True when a header has the shape of a date or time, parsable or not."""
    return bool(_DATETIME_SHAPE.search(value or ""))


def parse_session_datetime(value, tz: tzinfo = timezone.utc) -> Optional[datetime]:
    """Parse a session date-time cell or header into an aware datetime.

    Accepts epoch seconds (int/float or a long digit string) and the string
    formats Moodle reports use. Returns None when nothing matches.
    """

    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, (int, float)):
        return from_epoch(value, tz)

    text = str(value).strip()
    if not text:
        return None
    if text.isascii() and text.isdigit() and len(text) >= 9:
        return from_epoch(int(text), tz)

    text = _TIME_RANGE_TAIL.sub("", text)
    for fmt in _SESSION_FORMATS:
        try:
            parsed = datetime.strptime(text, fmt)
        except ValueError:
            continue
        return parsed.replace(tzinfo=tz)

    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=tz)
    return parsed.astimezone(tz)


def from_epoch(seconds, tz: tzinfo = timezone.utc) -> Optional[datetime]:
    try:
        return datetime.fromtimestamp(int(seconds), tz)
    except (OverflowError, OSError, ValueError):
        return None


def to_epoch(value: datetime) -> int:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return int(value.timestamp())


def split_date_time(value: datetime) -> tuple[str, str]:
    """Return (YYYY-MM-DD, HH:MM) for a session datetime."""
    return value.strftime("%Y-%m-%d"), value.strftime("%H:%M")
