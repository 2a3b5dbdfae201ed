"""
Clock abstraction so "now" can be fixed in tests and replays.
"""

from datetime import date, datetime, timedelta
from typing import Optional
from zoneinfo import ZoneInfo

from .config import APP_TIMEZONE


class SystemClock:
    """Wall clock in the configured timezone, returned as naive local time."""

    def __init__(self, tz_name: Optional[str] = None):
        self.tz = ZoneInfo(tz_name or APP_TIMEZONE)

    def now(self) -> datetime:
        return datetime.now(self.tz).replace(tzinfo=None, microsecond=0)

    def today(self) -> date:
        return self.now().date()


class FixedClock:
    """Clock pinned to a single instant."""

    def __init__(self, now: datetime):
        self._now = now

    def now(self) -> datetime:
        return self._now

    def today(self) -> date:
        return self._now.date()

    def advance(self, **delta) -> None:
        self._now = self._now + timedelta(**delta)
