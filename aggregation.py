from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, Optional

from ledger import CategoryLookup, TransactionRecord, TransactionType
from periods import month_key

UNKNOWN_CATEGORY_ID = "unknown"
UNKNOWN_CATEGORY_NAME = "Unknown"


@dataclass(frozen=True)
class CategoryTotal:
    category_id: str
    name: str
    total: Decimal
    count: int


@dataclass(frozen=True)
class MonthlyAggregate:
    month_key: str
    income: Decimal
    expenses: Decimal

    @property
    def net(self) -> Decimal:
        return self.income - self.expenses


def sum_amounts(transactions: Iterable[TransactionRecord]) -> Decimal:
    return sum((t.amount for t in transactions), Decimal(0))


def of_type(
    transactions: Iterable[TransactionRecord], txn_type: TransactionType
) -> list[TransactionRecord]:
    return [t for t in transactions if t.type == txn_type]


def expenses(transactions: Iterable[TransactionRecord]) -> list[TransactionRecord]:
    return of_type(transactions, TransactionType.expense)


def income(transactions: Iterable[TransactionRecord]) -> list[TransactionRecord]:
    return of_type(transactions, TransactionType.income)


def sum_by_type(
    transactions: Iterable[TransactionRecord], txn_type: TransactionType
) -> Decimal:
    return sum_amounts(of_type(transactions, txn_type))


def average_amount(transactions: Iterable[TransactionRecord]) -> Optional[Decimal]:
    items = list(transactions)
    if not items:
        return None
    return sum_amounts(items) / len(items)


def filter_by_category(
    transactions: Iterable[TransactionRecord],
    category_id: str,
    categories: CategoryLookup,
) -> list[TransactionRecord]:
    """Transactions booked on ``category_id`` or on one of its children."""
    out: list[TransactionRecord] = []
    for t in transactions:
        if t.category == category_id:
            out.append(t)
            continue
        category = categories.get_category_by_id(t.category)
        if category is not None and category.parent_id == category_id:
            out.append(t)
    return out


def top_level_bucket(category_id: str, categories: CategoryLookup) -> tuple[str, str]:
    category = categories.get_category_by_id(category_id)
    if category is not None and category.parent_id:
        category = categories.get_category_by_id(category.parent_id)
    if category is None:
        return UNKNOWN_CATEGORY_ID, UNKNOWN_CATEGORY_NAME
    return category.id, category.name


def group_by_top_category(
    transactions: Iterable[TransactionRecord], categories: CategoryLookup
) -> list[CategoryTotal]:
    totals: dict[str, Decimal] = {}
    counts: dict[str, int] = {}
    names: dict[str, str] = {}
    for t in expenses(transactions):
        bucket_id, bucket_name = top_level_bucket(t.category, categories)
        if bucket_id not in totals:
            totals[bucket_id] = Decimal(0)
            counts[bucket_id] = 0
            names[bucket_id] = bucket_name
        totals[bucket_id] += t.amount
        counts[bucket_id] += 1

    buckets = [
        CategoryTotal(cid, names[cid], totals[cid], counts[cid]) for cid in totals
    ]
    # sorted() is stable, so equal totals keep first-seen order
    return sorted(buckets, key=lambda b: b.total, reverse=True)


def monthly_series(
    transactions: Iterable[TransactionRecord],
) -> list[MonthlyAggregate]:
    income_totals: dict[str, Decimal] = {}
    expense_totals: dict[str, Decimal] = {}
    for t in transactions:
        key = month_key(t.date)
        income_totals.setdefault(key, Decimal(0))
        expense_totals.setdefault(key, Decimal(0))
        if t.type == TransactionType.income:
            income_totals[key] += t.amount
        else:
            expense_totals[key] += t.amount

    return [
        MonthlyAggregate(key, income_totals[key], expense_totals[key])
        for key in sorted(income_totals)
    ]
