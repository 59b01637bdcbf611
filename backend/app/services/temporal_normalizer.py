"""
Date/time normalization for booking notifications.

Booking notifications carry the visit date as "M-D-YYYY" and the time as
"H:MM" with an optional AM/PM suffix. normalize_datetime() turns that pair
into a timezone-aware datetime.

Timezone: the wall-clock values in the email are interpreted in the intake
timezone (INTAKE_TIMEZONE, an IANA name; default UTC). The returned
datetime is always aware, so it serialises with an explicit offset.

When the date cannot be read the ingestion time is used instead and the
result is flagged with fallback=True so callers can tell it apart from a
real parse.
"""

import logging
import os
import re
from dataclasses import dataclass
from datetime import datetime, timezone, tzinfo
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

logger = logging.getLogger(__name__)

DEFAULT_HOUR = 9
DEFAULT_MINUTE = 0

_DATE_RE = re.compile(r"(\d{1,2})-(\d{1,2})-(\d{4})")
_TIME_RE = re.compile(r"(\d{1,2}):(\d{2})\s*(AM|PM)?", re.IGNORECASE)


@dataclass(frozen=True)
class NormalizedDateTime:
    """A normalized timestamp and whether it is the ingestion-time fallback."""
    value: datetime
    fallback: bool = False


def get_intake_timezone() -> tzinfo:
    """
    Resolve INTAKE_TIMEZONE to a tzinfo.

    Unknown names are logged and fall back to UTC rather than failing intake.
    """
    name = os.getenv("INTAKE_TIMEZONE", "").strip()
    if not name or name.upper() == "UTC":
        return timezone.utc
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning(f"Unknown INTAKE_TIMEZONE {name!r}; using UTC")
        return timezone.utc


def to_24_hour(hour: int, meridiem: Optional[str]) -> int:
    """
    Convert a 12-hour clock value to 24-hour.

    PM and hour != 12 adds 12; AM and hour == 12 becomes 0; anything else
    (including a bare 24-hour value) passes through unchanged.
    """
    meridiem = (meridiem or "").upper()
    if meridiem == "PM" and hour != 12:
        return hour + 12
    if meridiem == "AM" and hour == 12:
        return 0
    return hour


def parse_time(time_text: Optional[str]) -> tuple[int, int]:
    """Return (hour, minute) for a time fragment, or 09:00 when unreadable."""
    if not time_text:
        return DEFAULT_HOUR, DEFAULT_MINUTE
    match = _TIME_RE.search(time_text)
    if not match:
        logger.info(f"Unreadable booking time {time_text!r}; defaulting to 09:00")
        return DEFAULT_HOUR, DEFAULT_MINUTE

    hour = to_24_hour(int(match.group(1)), match.group(3))
    minute = int(match.group(2))
    if hour > 23 or minute > 59:
        logger.info(f"Out-of-range booking time {time_text!r}; defaulting to 09:00")
        return DEFAULT_HOUR, DEFAULT_MINUTE
    return hour, minute


def normalize_datetime(
    date_text: Optional[str],
    time_text: Optional[str] = None,
    tz: Optional[tzinfo] = None,
    now: Optional[datetime] = None,
) -> NormalizedDateTime:
    """
    Combine free-text date and time fragments into an aware datetime.

    Args:
        date_text: "M-D-YYYY" fragment (the first match in the text is used).
        time_text: "H:MM" with optional AM/PM; absent means 09:00.
        tz:        timezone the wall-clock values are in (default: intake tz).
        now:       ingestion time used on fallback (default: current time).

    Returns:
        NormalizedDateTime. fallback is True when the date was missing,
        did not match the expected shape, or is not a real calendar date.
    """
    tz = tz or get_intake_timezone()

    def _fallback(reason: str) -> NormalizedDateTime:
        current = now or datetime.now(timezone.utc)
        if current.tzinfo is None:
            current = current.replace(tzinfo=tz)
        logger.warning(f"Booking date {date_text!r} {reason}; using ingestion time")
        return NormalizedDateTime(value=current, fallback=True)

    if not date_text:
        return _fallback("is missing")

    match = _DATE_RE.search(date_text)
    if not match:
        return _fallback("does not match M-D-YYYY")

    month, day, year = (int(part) for part in match.groups())
    hour, minute = parse_time(time_text)

    try:
        value = datetime(year, month, day, hour, minute, tzinfo=tz)
    except ValueError:
        return _fallback("is not a valid calendar date")

    return NormalizedDateTime(value=value, fallback=False)
