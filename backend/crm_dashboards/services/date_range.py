"""Resolve symbolic dashboard date ranges into epoch-millisecond windows."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional
from zoneinfo import ZoneInfo

from crm_dashboards.utils.datetime import MS_PER_DAY, now_ms as current_ms

# Months, quarters and years are fixed day counts, not calendar periods
_TRAILING_DAYS = {
    "week": 7,
    "month": 30,
    "quarter": 90,
    "year": 365,
}

DATE_RANGE_KEYWORDS = ("today", *_TRAILING_DAYS, "custom", "all")


@dataclass(frozen=True)
class DateRange:
    start: int | float
    end: int | float

    def contains(self, ts: int | float) -> bool:
        return self.start <= ts <= self.end


def _midnight_ms(now: int | float, tz: Optional[str]) -> int:
    zone = ZoneInfo(tz) if tz else None
    moment = datetime.fromtimestamp(now / 1000, tz=zone)
    midnight = moment.replace(hour=0, minute=0, second=0, microsecond=0)
    return int(midnight.timestamp() * 1000)


def resolve_date_range(
    keyword: Optional[str] = None,
    custom_start: Optional[float] = None,
    custom_end: Optional[float] = None,
    now_ms: Optional[int | float] = None,
    tz: Optional[str] = None,
) -> DateRange:
    """
    Map a range keyword to ``[start, end]`` in epoch milliseconds.

    ``today`` starts at local midnight (``tz`` when given, server local time
    otherwise). Unknown or missing keywords cover everything since the epoch.
    """
    now = current_ms() if now_ms is None else now_ms

    if keyword == "today":
        return DateRange(start=_midnight_ms(now, tz), end=now)
    if keyword in _TRAILING_DAYS:
        return DateRange(start=now - _TRAILING_DAYS[keyword] * MS_PER_DAY, end=now)
    if keyword == "custom":
        start = custom_start if custom_start is not None else now - 30 * MS_PER_DAY
        end = custom_end if custom_end is not None else now
        return DateRange(start=start, end=end)
    return DateRange(start=0, end=now)


def previous_period(current: DateRange) -> DateRange:
    """Equal-length window ending where ``current`` starts."""
    length = current.end - current.start
    return DateRange(start=current.start - length, end=current.start)
