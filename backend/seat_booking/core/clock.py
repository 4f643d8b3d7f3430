"""
Wall clock in the office's local timezone.

Everything time-dependent (cutoff, horizon, check-in timestamp, expiry) reads
"now" from a Clock passed in by the caller, never from datetime.now()
directly, so routes can have it overridden in tests.
"""

from datetime import date, datetime, timezone
from zoneinfo import ZoneInfo

from seat_booking.core.config import get_settings


class Clock:
    def __init__(self, tz_name: str):
        self.tz = ZoneInfo(tz_name)

    def now(self) -> datetime:
        return datetime.now(timezone.utc).astimezone(self.tz)

    def today(self) -> date:
        return self.now().date()


def get_clock() -> Clock:
    return Clock(get_settings().TIMEZONE)
