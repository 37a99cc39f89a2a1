from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Iterable, Optional, Protocol, Sequence


class TransactionType(str, Enum):
    income = "income"
    expense = "expense"


@dataclass(frozen=True)
class TransactionRecord:
    id: str
    date: date
    amount: Decimal
    type: TransactionType
    category: str
    description: str = ""
    account_id: Optional[str] = None
    currency_id: Optional[str] = None
    is_projected: bool = False


@dataclass(frozen=True)
class CategoryRecord:
    id: str
    name: str
    type: TransactionType
    parent_id: Optional[str] = None


class TransactionLedger(Protocol):
    def get_actual_transactions(self) -> Sequence[TransactionRecord]: ...


class CategoryLookup(Protocol):
    def get_category_by_id(self, category_id: str) -> Optional[CategoryRecord]: ...

    def get_root_categories(
        self, category_type: TransactionType
    ) -> Sequence[CategoryRecord]: ...


class CategoryIndex:
    """Read-only category lookup built from a snapshot of category records.

    Root order follows insertion order, which decides which category wins
    when several names match a chat query.
    """

    def __init__(self, categories: Iterable[CategoryRecord]) -> None:
        self._ordered = tuple(categories)
        self._by_id = {c.id: c for c in self._ordered}

    def __len__(self) -> int:
        return len(self._ordered)

    def get_category_by_id(self, category_id: str) -> Optional[CategoryRecord]:
        return self._by_id.get(category_id)

    def get_root_categories(
        self, category_type: TransactionType
    ) -> tuple[CategoryRecord, ...]:
        return tuple(
            c
            for c in self._ordered
            if c.type == category_type and c.parent_id is None
        )
