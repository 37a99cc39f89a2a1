from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Optional, Sequence

import aggregation
import periods
from formatting import to_cents
from ledger import CategoryLookup, TransactionRecord

logger = logging.getLogger(__name__)

HISTORY_MONTHS = 6
HORIZON_MONTHS = 3
MIN_HISTORY_MONTHS = 2
TOP_EXPECTED_LIMIT = 5
OTHER_CATEGORY = "Other"


@dataclass(frozen=True)
class PredictionPoint:
    month_key: str
    month_label: str
    predicted_income: Decimal
    predicted_expenses: Decimal
    confidence: int

    @property
    def projected_savings(self) -> Decimal:
        return self.predicted_income - self.predicted_expenses


@dataclass(frozen=True)
class ExpectedExpense:
    category: str
    name: str
    amount: Decimal


@dataclass(frozen=True)
class Forecast:
    predictions: tuple[PredictionPoint, ...]
    top_expected_expenses: tuple[ExpectedExpense, ...]
    history: tuple[aggregation.MonthlyAggregate, ...]

    @property
    def insufficient_data(self) -> bool:
        return not self.predictions

    @property
    def next_month(self) -> Optional[PredictionPoint]:
        return self.predictions[0] if self.predictions else None


def trend_slope(values: Sequence[Decimal]) -> Decimal:
    """Least-squares slope of ``values`` against their index 0..n-1."""
    n = len(values)
    if n < 2:
        return Decimal(0)
    x_mean = Decimal(n - 1) / 2
    y_mean = sum(values, Decimal(0)) / n
    numerator = Decimal(0)
    denominator = Decimal(0)
    for i, y in enumerate(values):
        dx = i - x_mean
        numerator += dx * (y - y_mean)
        denominator += dx * dx
    if denominator == 0:
        return Decimal(0)
    return numerator / denominator


def project(values: Sequence[Decimal], months_ahead: int) -> Decimal:
    """Read the fitted line ``months_ahead`` steps past the last observation."""
    n = len(values)
    x_mean = Decimal(n - 1) / 2
    y_mean = sum(values, Decimal(0)) / n
    x = Decimal(n - 1 + months_ahead)
    predicted = y_mean + trend_slope(values) * (x - x_mean)
    return to_cents(max(Decimal(0), predicted))


def confidence_for(months_ahead: int) -> int:
    return max(50, 95 - 10 * months_ahead)


def top_expected_expenses(
    transactions: Sequence[TransactionRecord],
    categories: CategoryLookup,
    now: datetime,
) -> tuple[ExpectedExpense, ...]:
    # raw category ids, no parent roll-up
    key = periods.last_completed_month_key(now)
    totals: dict[str, Decimal] = {}
    for t in aggregation.expenses(transactions):
        if periods.month_key(t.date) != key:
            continue
        category_id = t.category or OTHER_CATEGORY
        totals[category_id] = totals.get(category_id, Decimal(0)) + t.amount

    ranked = sorted(totals.items(), key=lambda item: item[1], reverse=True)
    out = []
    for category_id, amount in ranked[:TOP_EXPECTED_LIMIT]:
        category = categories.get_category_by_id(category_id)
        name = category.name if category is not None else category_id
        out.append(ExpectedExpense(category_id, name, amount))
    return tuple(out)


def compute_forecast(
    transactions: Sequence[TransactionRecord],
    categories: CategoryLookup,
    now: datetime,
) -> Forecast:
    history = tuple(aggregation.monthly_series(transactions)[-HISTORY_MONTHS:])
    expected = top_expected_expenses(transactions, categories, now)
    if len(history) < MIN_HISTORY_MONTHS:
        logger.info(f"forecast_skipped: months={len(history)} reason=insufficient_data")
        return Forecast((), expected, history)

    income_values = [m.income for m in history]
    expense_values = [m.expenses for m in history]
    predictions = []
    for i in range(1, HORIZON_MONTHS + 1):
        month = periods.add_months(now.date(), i)
        predictions.append(
            PredictionPoint(
                month_key=periods.month_key(month),
                month_label=month.strftime("%B %Y"),
                predicted_income=project(income_values, i),
                predicted_expenses=project(expense_values, i),
                confidence=confidence_for(i),
            )
        )
    logger.info(
        f"forecast_computed: months={len(history)} "
        f"next_expenses={predictions[0].predicted_expenses}"
    )
    return Forecast(tuple(predictions), expected, history)
