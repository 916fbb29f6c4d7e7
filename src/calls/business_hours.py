"""Office hours policy for the receptionist."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Final
from zoneinfo import ZoneInfo

BUSINESS_TIMEZONE: Final[ZoneInfo] = ZoneInfo("America/Los_Angeles")
OPENING_HOUR: Final[int] = 8
CLOSING_HOUR: Final[int] = 18

AFTER_HOURS_MESSAGE: Final[str] = (
    "Our office hours are Monday through Friday, 8 AM to 6 PM Pacific. "
    "Please state your name, phone number, and a brief description of your matter, "
    "and we will return your call during the next business day."
)


def is_business_hours(timestamp: datetime, tz: ZoneInfo = BUSINESS_TIMEZONE) -> bool:
    """Return True when ``timestamp`` falls on Mon-Fri between 08:00 and 18:00 local time.

    Naive timestamps are interpreted as UTC.
    """

    if timestamp.tzinfo is None:
        timestamp = timestamp.replace(tzinfo=timezone.utc)
    local = timestamp.astimezone(tz)
    return local.weekday() < 5 and OPENING_HOUR <= local.hour < CLOSING_HOUR


def utc_now() -> datetime:
    return datetime.now(timezone.utc)
