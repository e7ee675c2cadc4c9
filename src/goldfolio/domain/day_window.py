"""Market-day boundary math.

Every conversion between a market-local calendar day and UTC instants goes
through this module. The market runs on a fixed UTC offset (IST by default),
so "yesterday" is the local day before the local date of *now*, not the UTC
date minus one.
"""

from datetime import date, datetime, time, timedelta, timezone, tzinfo
from typing import NamedTuple


class DayWindow(NamedTuple):
    """Half-open UTC interval ``[start, end)`` covering one local calendar day."""

    start: datetime
    end: datetime

    def contains(self, instant: datetime) -> bool:
        instant = as_utc(instant)
        return self.start <= instant < self.end


def market_timezone(offset_minutes: int) -> timezone:
    """Fixed-offset timezone, e.g. 330 -> UTC+05:30."""
    return timezone(timedelta(minutes=offset_minutes))


def as_utc(instant: datetime) -> datetime:
    """Normalize to an aware UTC datetime. Naive values are taken to be UTC."""
    if instant.tzinfo is None:
        return instant.replace(tzinfo=timezone.utc)
    return instant.astimezone(timezone.utc)


def local_date(instant: datetime, tz: tzinfo) -> date:
    """Calendar date of ``instant`` as seen in ``tz``."""
    return as_utc(instant).astimezone(tz).date()


def day_window_utc(day: date, tz: tzinfo) -> DayWindow:
    start_local = datetime.combine(day, time.min, tzinfo=tz)
    end_local = datetime.combine(day + timedelta(days=1), time.min, tzinfo=tz)
    return DayWindow(start_local.astimezone(timezone.utc), end_local.astimezone(timezone.utc))


def yesterday(now: datetime, tz: tzinfo) -> date:
    return local_date(now, tz) - timedelta(days=1)


def iter_days(start: date, end: date):
    """Yield each date from ``start`` through ``end`` inclusive."""
    day = start
    while day <= end:
        yield day
        day += timedelta(days=1)
