from datetime import date, datetime
from decimal import Decimal

import pytest

from ledger import TransactionRecord, TransactionType
from periods import (
    TimeWindow,
    add_months,
    calendar_month,
    end_of_last_month,
    filter_by_window,
    last_completed_month_key,
    last_month,
    last_week,
    resolve_window,
    start_of_last_month,
    start_of_this_month,
    start_of_this_week,
    this_month,
    this_week,
    today,
    window_between,
    yesterday,
)

# a Wednesday
NOW = datetime(2025, 3, 19, 14, 30)


def _txn(day: date, txn_id: str = "t") -> TransactionRecord:
    return TransactionRecord(
        id=txn_id,
        date=day,
        amount=Decimal("10"),
        type=TransactionType.expense,
        category="food",
    )


def test_month_boundaries() -> None:
    assert start_of_this_month(NOW) == datetime(2025, 3, 1)
    assert start_of_last_month(NOW) == datetime(2025, 2, 1)
    assert end_of_last_month(NOW).date() == date(2025, 2, 28)


def test_last_month_rolls_back_year_in_january() -> None:
    now = datetime(2025, 1, 10, 9, 0)
    window = last_month(now)
    assert window.start == datetime(2024, 12, 1)
    assert window.end.date() == date(2024, 12, 31)


def test_week_starts_on_sunday() -> None:
    assert start_of_this_week(NOW) == datetime(2025, 3, 16)
    window = last_week(NOW)
    assert window.start == datetime(2025, 3, 9)
    assert window.end.date() == date(2025, 3, 15)


def test_week_start_on_a_sunday_is_that_day() -> None:
    sunday = datetime(2025, 3, 16, 8, 0)
    assert start_of_this_week(sunday) == datetime(2025, 3, 16)


def test_today_and_yesterday_windows() -> None:
    assert today(NOW).start == datetime(2025, 3, 19)
    assert today(NOW).end == NOW
    window = yesterday(NOW)
    assert window.start == datetime(2025, 3, 18)
    assert window.end.date() == date(2025, 3, 18)
    assert window.end.hour == 23 and window.end.minute == 59


def test_filter_is_inclusive_on_both_ends() -> None:
    txns = [
        _txn(date(2025, 2, 28), "before"),
        _txn(date(2025, 3, 1), "first"),
        _txn(date(2025, 3, 19), "today"),
        _txn(date(2025, 3, 20), "future"),
    ]
    ids = [t.id for t in filter_by_window(txns, this_month(NOW))]
    assert ids == ["first", "today"]


def test_last_month_includes_its_final_day() -> None:
    txns = [_txn(date(2025, 2, 28), "last-day"), _txn(date(2025, 3, 1), "next")]
    ids = [t.id for t in filter_by_window(txns, last_month(NOW))]
    assert ids == ["last-day"]


def test_inverted_window_is_empty_not_an_error() -> None:
    window = TimeWindow("broken", datetime(2025, 3, 10), datetime(2025, 3, 1))
    assert filter_by_window([_txn(date(2025, 3, 5))], window) == []


def test_window_between_defaults_end_to_now() -> None:
    window = window_between(datetime(2025, 3, 1), now=NOW)
    assert window.end == NOW


def test_this_week_is_subset_of_this_month() -> None:
    txns = [_txn(date(2025, 3, d), f"t{d}") for d in range(1, 29)]
    week = {t.id for t in filter_by_window(txns, this_week(NOW))}
    month = {t.id for t in filter_by_window(txns, this_month(NOW))}
    assert week <= month
    assert week == {"t16", "t17", "t18", "t19"}


def test_calendar_month_covers_whole_month() -> None:
    window = calendar_month(2024, 2)
    assert window.label == "2024-02"
    assert window.start == datetime(2024, 2, 1)
    assert window.end.date() == date(2024, 2, 29)


def test_month_arithmetic() -> None:
    assert add_months(date(2025, 1, 31), -1) == date(2024, 12, 1)
    assert add_months(date(2025, 11, 5), 3) == date(2026, 2, 1)
    assert last_completed_month_key(NOW) == "2025-02"


def test_resolve_window_named_and_custom() -> None:
    assert resolve_window(None, None, None, now=NOW).start is None
    assert resolve_window("this_week", None, None, now=NOW).label == "this week"
    custom = resolve_window("custom", "2025-01-01", "2025-01-31", now=NOW)
    assert custom.start == datetime(2025, 1, 1)
    assert custom.end.date() == date(2025, 1, 31)


def test_resolve_window_rejects_bad_input() -> None:
    with pytest.raises(ValueError, match="requires start and end"):
        resolve_window("custom", "2025-01-01", None, now=NOW)
    with pytest.raises(ValueError, match="before end"):
        resolve_window("custom", "2025-02-01", "2025-01-01", now=NOW)
    with pytest.raises(ValueError, match="Unknown period"):
        resolve_window("fortnight", None, None, now=NOW)
