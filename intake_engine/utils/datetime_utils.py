"""
Common date/time helpers.

Storage: all timestamps are stored in UTC.
Scopes: "today" for daily counters (visit numbers, tokens, doctor workload) is
taken in the hospital's configured timezone, through an injectable Clock so
tests can pin the date.
"""

from datetime import date, datetime, timezone
from functools import lru_cache
from typing import Optional
from zoneinfo import ZoneInfo

from intake_engine.core.config import get_settings


def as_utc(dt: datetime) -> datetime:
    """
    Convert dt to tz-aware UTC.
    If dt is naive, we treat it as UTC.
    """
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def utc_now() -> datetime:
    """
    Get current UTC datetime.
    """
    return datetime.now(timezone.utc)


class Clock:
    """
    Date/time source for the engine.

    Subclass and override ``now`` to freeze time.
    """

    def __init__(self, tz_name: str = "UTC"):
        self.tz = ZoneInfo(tz_name)

    def now(self) -> datetime:
        return utc_now()

    def today(self) -> date:
        return self.now().astimezone(self.tz).date()


@lru_cache()
def get_clock() -> Clock:
    return Clock(get_settings().hospital_timezone)


def calculate_age(dob: Optional[date], today: date) -> Optional[int]:
    """Calculate age in whole years from date of birth."""
    if not dob:
        return None
    return today.year - dob.year - ((today.month, today.day) < (dob.month, dob.day))
