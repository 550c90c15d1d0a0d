from __future__ import annotations

import calendar
from dataclasses import dataclass
from datetime import datetime, time, timedelta, timezone

PERIOD_1D = "1d"
PERIOD_7D = "7d"
PERIOD_30D = "30d"
PERIOD_CALENDAR = "calendar"
PERIOD_ALL = "all"

PERIODS = (PERIOD_1D, PERIOD_7D, PERIOD_30D, PERIOD_CALENDAR, PERIOD_ALL)
DEFAULT_PERIOD = PERIOD_30D

_LOOKBACK_DAYS = {PERIOD_1D: 0, PERIOD_7D: 7, PERIOD_30D: 30}


@dataclass(frozen=True)
class ReportQuery:
    account_id: str | None = None
    period: str = DEFAULT_PERIOD
    year: int | None = None
    month: int | None = None


@dataclass(frozen=True)
class Window:
    period: str
    start: datetime | None
    end: datetime
    year: int
    month: int

    def contains(self, timestamp: datetime) -> bool:
        if self.start is not None and timestamp < self.start:
            return False
        return timestamp <= self.end


def resolve_window(query: ReportQuery, now: datetime | None = None) -> Window:
    current = _as_utc(now or datetime.now(timezone.utc))
    year = query.year if query.year is not None else current.year
    month = query.month if query.month is not None else current.month
    if month < 1 or month > 12:
        raise ValueError(f"Invalid month: {month}")

    period = (query.period or DEFAULT_PERIOD).strip().lower()
    end_of_today = _end_of_day(current)

    if period in _LOOKBACK_DAYS:
        start_day = current - timedelta(days=_LOOKBACK_DAYS[period])
        return Window(
            period=period,
            start=_start_of_day(start_day),
            end=end_of_today,
            year=year,
            month=month,
        )

    if period == PERIOD_CALENDAR:
        last_day = calendar.monthrange(year, month)[1]
        month_start = datetime(year, month, 1, tzinfo=timezone.utc)
        month_end = datetime.combine(
            month_start.date().replace(day=last_day), time.max, tzinfo=timezone.utc
        )
        return Window(period=period, start=month_start, end=month_end, year=year, month=month)

    # Anything unrecognised is treated as all time.
    return Window(period=period, start=None, end=end_of_today, year=year, month=month)


def _start_of_day(value: datetime) -> datetime:
    return datetime.combine(value.date(), time.min, tzinfo=timezone.utc)


def _end_of_day(value: datetime) -> datetime:
    return datetime.combine(value.date(), time.max, tzinfo=timezone.utc)


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
