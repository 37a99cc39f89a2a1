from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Iterable, Optional

from ledger import TransactionRecord

END_OF_DAY = time(23, 59, 59, 999000)


@dataclass(frozen=True)
class TimeWindow:
    label: str
    start: Optional[datetime]
    end: Optional[datetime]

    def contains(self, moment: datetime) -> bool:
        if self.start is not None and moment < self.start:
            return False
        if self.end is not None and moment > self.end:
            return False
        return True


def start_of_day(moment: datetime) -> datetime:
    return datetime.combine(moment.date(), time.min)


def end_of_day(day: date) -> datetime:
    return datetime.combine(day, END_OF_DAY)


def month_key(day: date) -> str:
    return f"{day.year:04d}-{day.month:02d}"


def add_months(day: date, count: int) -> date:
    month_index = (day.year * 12) + (day.month - 1) + count
    year = month_index // 12
    month = (month_index % 12) + 1
    return date(year, month, 1)


def month_end(year: int, month: int) -> date:
    return add_months(date(year, month, 1), 1) - date.resolution


def start_of_this_month(now: datetime) -> datetime:
    return datetime.combine(now.date().replace(day=1), time.min)


def start_of_last_month(now: datetime) -> datetime:
    return datetime.combine(add_months(now.date(), -1), time.min)


def end_of_last_month(now: datetime) -> datetime:
    return end_of_day(now.date().replace(day=1) - date.resolution)


def start_of_this_week(now: datetime) -> datetime:
    # weeks start on Sunday; date.weekday() puts Monday at 0
    days_since_sunday = (now.weekday() + 1) % 7
    return start_of_day(now) - timedelta(days=days_since_sunday)


def start_of_last_week(now: datetime) -> datetime:
    return start_of_this_week(now) - timedelta(days=7)


def end_of_last_week(now: datetime) -> datetime:
    return end_of_day((start_of_this_week(now) - timedelta(days=1)).date())


def last_completed_month_key(now: datetime) -> str:
    return month_key(add_months(now.date(), -1))


def this_month(now: datetime) -> TimeWindow:
    return TimeWindow("this month", start_of_this_month(now), now)


def last_month(now: datetime) -> TimeWindow:
    return TimeWindow("last month", start_of_last_month(now), end_of_last_month(now))


def this_week(now: datetime) -> TimeWindow:
    return TimeWindow("this week", start_of_this_week(now), now)


def last_week(now: datetime) -> TimeWindow:
    return TimeWindow("last week", start_of_last_week(now), end_of_last_week(now))


def today(now: datetime) -> TimeWindow:
    return TimeWindow("today", start_of_day(now), now)


def yesterday(now: datetime) -> TimeWindow:
    day = now.date() - timedelta(days=1)
    return TimeWindow("yesterday", datetime.combine(day, time.min), end_of_day(day))


def all_time(now: Optional[datetime] = None) -> TimeWindow:
    return TimeWindow("all time", None, None)


def calendar_month(year: int, month: int) -> TimeWindow:
    first = date(year, month, 1)
    return TimeWindow(
        month_key(first),
        datetime.combine(first, time.min),
        end_of_day(month_end(year, month)),
    )


def window_between(
    start: datetime,
    end: Optional[datetime] = None,
    *,
    now: datetime,
    label: str = "custom",
) -> TimeWindow:
    return TimeWindow(label, start, end if end is not None else now)


def filter_by_window(
    transactions: Iterable[TransactionRecord], window: TimeWindow
) -> list[TransactionRecord]:
    if window.start and window.end and window.start > window.end:
        return []
    return [
        t
        for t in transactions
        if window.contains(datetime.combine(t.date, time.min))
    ]


NAMED_WINDOWS = {
    "all": all_time,
    "this_month": this_month,
    "last_month": last_month,
    "this_week": this_week,
    "last_week": last_week,
    "today": today,
    "yesterday": yesterday,
}


def resolve_window(
    period: Optional[str],
    start: Optional[str],
    end: Optional[str],
    *,
    now: datetime,
) -> TimeWindow:
    if not period:
        return all_time(now)
    if period == "custom":
        if not start or not end:
            raise ValueError("Custom period requires start and end dates")
        start_date = date.fromisoformat(start)
        end_date = date.fromisoformat(end)
        if start_date > end_date:
            raise ValueError("Start date must be before end date")
        return TimeWindow(
            "custom", datetime.combine(start_date, time.min), end_of_day(end_date)
        )
    builder = NAMED_WINDOWS.get(period)
    if builder is None:
        raise ValueError(f"Unknown period: {period}")
    return builder(now)
