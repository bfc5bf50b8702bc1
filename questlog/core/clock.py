# questlog/core/clock.py
from datetime import datetime, timezone, tzinfo
from typing import Protocol
from zoneinfo import ZoneInfo

from questlog.config import settings


class Clock(Protocol):
    def now(self) -> datetime: ...


class SystemClock:
    def __init__(self, tz: tzinfo = timezone.utc):
        self.tz = tz

    def now(self) -> datetime:
        return datetime.now(self.tz)


class FixedClock:
    """Always returns the same moment. Used by tests and replays."""

    def __init__(self, moment: datetime):
        self.moment = moment

    def now(self) -> datetime:
        return self.moment


_system_clock = SystemClock(ZoneInfo(settings.REPORT_TIMEZONE))


def get_clock() -> Clock:
    return _system_clock
