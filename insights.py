from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Callable, Optional, Sequence

import aggregation
import periods
from formatting import fixed, percent_of
from ledger import CategoryLookup, TransactionRecord

logger = logging.getLogger(__name__)

SPENDING_INCREASE_PCT = Decimal(20)
SPENDING_DECREASE_PCT = Decimal(-10)
GOOD_SAVINGS_RATE = Decimal(20)
LOW_SAVINGS_RATE = Decimal(10)
UNUSUAL_CATEGORY_FACTOR = Decimal("1.5")
HIGH_DAILY_FREQUENCY = Decimal(5)
WEEKEND_SHARE_PCT = Decimal(40)
INCOME_GROWTH_FACTOR = Decimal("1.1")


class InsightKind(str, Enum):
    warning = "warning"
    success = "success"
    info = "info"
    tip = "tip"


@dataclass(frozen=True)
class Insight:
    id: str
    kind: InsightKind
    title: str
    description: str
    value: Optional[str] = None


NO_DATA_INSIGHT = Insight(
    id="no-data",
    kind=InsightKind.info,
    title="Start Tracking",
    description=(
        "Add more transactions to get personalized spending insights "
        "and recommendations."
    ),
)


@dataclass(frozen=True)
class MonthComparison:
    """Current vs previous calendar month, as read by every insight rule."""

    now: datetime
    this_month: Sequence[TransactionRecord]
    last_month: Sequence[TransactionRecord]
    categories: CategoryLookup
    symbol: str

    @property
    def this_expenses(self) -> Decimal:
        return aggregation.sum_amounts(aggregation.expenses(self.this_month))

    @property
    def last_expenses(self) -> Decimal:
        return aggregation.sum_amounts(aggregation.expenses(self.last_month))

    @property
    def this_income(self) -> Decimal:
        return aggregation.sum_amounts(aggregation.income(self.this_month))

    @property
    def last_income(self) -> Decimal:
        return aggregation.sum_amounts(aggregation.income(self.last_month))


def build_comparison(
    transactions: Sequence[TransactionRecord],
    categories: CategoryLookup,
    now: datetime,
    symbol: str,
) -> MonthComparison:
    previous = periods.add_months(now.date(), -1)
    current_window = periods.calendar_month(now.year, now.month)
    previous_window = periods.calendar_month(previous.year, previous.month)
    return MonthComparison(
        now=now,
        this_month=periods.filter_by_window(transactions, current_window),
        last_month=periods.filter_by_window(transactions, previous_window),
        categories=categories,
        symbol=symbol,
    )


def spending_change(cmp: MonthComparison) -> list[Insight]:
    last = cmp.last_expenses
    if last <= 0:
        return []
    change = (cmp.this_expenses - last) / last * 100
    if change > SPENDING_INCREASE_PCT:
        return [
            Insight(
                id="spending-increase",
                kind=InsightKind.warning,
                title="Spending Increased",
                description=(
                    f"Your spending is up {fixed(change, 0)}% compared to last "
                    "month. Consider reviewing your expenses."
                ),
                value=f"+{fixed(change, 0)}%",
            )
        ]
    if change < SPENDING_DECREASE_PCT:
        return [
            Insight(
                id="spending-decrease",
                kind=InsightKind.success,
                title="Great Job Saving!",
                description=(
                    f"You've reduced spending by {fixed(abs(change), 0)}% compared "
                    "to last month. Keep it up!"
                ),
                value=f"{fixed(change, 0)}%",
            )
        ]
    return []


def savings_rate(cmp: MonthComparison) -> list[Insight]:
    income_total = cmp.this_income
    if income_total <= 0:
        return []
    rate = (income_total - cmp.this_expenses) / income_total * 100
    if rate >= GOOD_SAVINGS_RATE:
        return [
            Insight(
                id="savings-rate-good",
                kind=InsightKind.success,
                title="Excellent Savings Rate",
                description=(
                    f"You're saving {fixed(rate, 0)}% of your income this month. "
                    "Financial experts recommend 20%+."
                ),
                value=f"{fixed(rate, 0)}%",
            )
        ]
    if 0 <= rate < LOW_SAVINGS_RATE:
        return [
            Insight(
                id="savings-rate-low",
                kind=InsightKind.warning,
                title="Low Savings Rate",
                description=(
                    f"You're only saving {fixed(rate, 0)}% of income. "
                    "Try to aim for at least 20%."
                ),
                value=f"{fixed(rate, 0)}%",
            )
        ]
    if rate < 0:
        return [
            Insight(
                id="overspending",
                kind=InsightKind.warning,
                title="Spending More Than Earning",
                description=(
                    "Your expenses exceed your income this month. "
                    "Review your budget immediately."
                ),
                value="Deficit",
            )
        ]
    return []


def top_category(cmp: MonthComparison) -> list[Insight]:
    buckets = aggregation.group_by_top_category(cmp.this_month, cmp.categories)
    if not buckets:
        return []
    top = buckets[0]
    share = percent_of(top.total, cmp.this_expenses)
    out = [
        Insight(
            id="top-category",
            kind=InsightKind.info,
            title=f"Top Spending: {top.name}",
            description=(
                f"{top.name} accounts for {fixed(share, 0)}% of your spending "
                "this month."
            ),
            value=f"{cmp.symbol}{fixed(top.total, 0)}",
        )
    ]

    previous = {
        b.category_id: b.total
        for b in aggregation.group_by_top_category(cmp.last_month, cmp.categories)
    }
    last_total = previous.get(top.category_id, Decimal(0))
    if last_total > 0 and top.total > last_total * UNUSUAL_CATEGORY_FACTOR:
        increase = (top.total - last_total) / last_total * 100
        out.append(
            Insight(
                id="unusual-spending",
                kind=InsightKind.warning,
                title=f"Unusual {top.name} Spending",
                description=(
                    f"You've spent 50%+ more on {top.name} compared to last month."
                ),
                value=f"+{fixed(increase, 0)}%",
            )
        )
    return out


def transaction_frequency(cmp: MonthComparison) -> list[Insight]:
    per_day = Decimal(len(cmp.this_month)) / cmp.now.day
    if per_day <= HIGH_DAILY_FREQUENCY:
        return []
    return [
        Insight(
            id="high-frequency",
            kind=InsightKind.tip,
            title="Many Small Transactions",
            description=(
                f"You average {fixed(per_day, 1)} transactions per day. "
                "Consider consolidating purchases to save time."
            ),
        )
    ]


def weekend_spending(cmp: MonthComparison) -> list[Insight]:
    weekend = [
        t
        for t in aggregation.expenses(cmp.this_month)
        if t.date.weekday() in (5, 6)
    ]
    share = percent_of(aggregation.sum_amounts(weekend), cmp.this_expenses)
    if share <= WEEKEND_SHARE_PCT:
        return []
    return [
        Insight(
            id="weekend-spending",
            kind=InsightKind.info,
            title="Weekend Spender",
            description=(
                f"{fixed(share, 0)}% of your spending happens on weekends. "
                "Plan your weekend activities wisely!"
            ),
            value=f"{fixed(share, 0)}%",
        )
    ]


def income_trend(cmp: MonthComparison) -> list[Insight]:
    last = cmp.last_income
    current = cmp.this_income
    if last <= 0 or current <= last * INCOME_GROWTH_FACTOR:
        return []
    growth = fixed((current - last) / last * 100, 0)
    return [
        Insight(
            id="income-increase",
            kind=InsightKind.success,
            title="Income Increased!",
            description=f"Your income is up {growth}% this month. Great progress!",
            value=f"+{growth}%",
        )
    ]


InsightRule = Callable[[MonthComparison], list[Insight]]

INSIGHT_RULES: tuple[InsightRule, ...] = (
    spending_change,
    savings_rate,
    top_category,
    transaction_frequency,
    weekend_spending,
    income_trend,
)


def compute_insights(
    transactions: Sequence[TransactionRecord],
    categories: CategoryLookup,
    now: datetime,
    symbol: str,
) -> list[Insight]:
    cmp = build_comparison(transactions, categories, now, symbol)
    insights: list[Insight] = []
    for rule in INSIGHT_RULES:
        insights.extend(rule(cmp))
    if not insights:
        insights.append(NO_DATA_INSIGHT)
    logger.info(
        f"insights_computed: count={len(insights)} "
        f"ids={','.join(i.id for i in insights)}"
    )
    return insights
