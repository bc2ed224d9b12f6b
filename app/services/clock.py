from datetime import datetime, timedelta
from typing import Protocol

import pytz


class Clock(Protocol):
    def now(self) -> datetime:
        ...


class SystemClock:
    """Wall clock in the business's local time zone."""

    def __init__(self, tz_str: str = "UTC"):
        self.tz = pytz.timezone(tz_str or "UTC")

    def now(self) -> datetime:
        return datetime.now(pytz.UTC).astimezone(self.tz)


class FixedClock:
    """Clock pinned to a given instant; naive datetimes are taken as UTC."""

    def __init__(self, current: datetime):
        self.current = pytz.UTC.localize(current) if current.tzinfo is None else current

    def now(self) -> datetime:
        return self.current

    def advance(self, minutes: int) -> datetime:
        self.current = self.current + timedelta(minutes=minutes)
        return self.current
