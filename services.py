from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, time
from decimal import Decimal
from typing import Callable, Optional, Sequence
from zoneinfo import ZoneInfo

from rapidfuzz.distance import Levenshtein
from sqlalchemy import func, select
from sqlalchemy.orm import Session

import aggregation
import chatbot
import forecast as forecasting
import insights as insight_rules
from config import Settings, get_settings
from csv_utils import export_transactions, parse_csv
from ledger import CategoryIndex, TransactionLedger, TransactionRecord, TransactionType
from models import (
    Account,
    Budget,
    BudgetPeriod,
    Category,
    Currency,
    Goal,
    Transaction,
)
from periods import TimeWindow, all_time
from schemas import (
    AccountIn,
    BudgetIn,
    CategoryIn,
    CurrencyIn,
    GoalIn,
    TransactionIn,
)

logger = logging.getLogger(__name__)


def current_time(settings: Optional[Settings] = None) -> datetime:
    """Wall-clock time in the configured zone, as a naive local datetime."""
    settings = settings or get_settings()
    return datetime.now(ZoneInfo(settings.timezone)).replace(tzinfo=None)


class AccountService:
    def __init__(self, session: Session) -> None:
        self.session = session

    def list_currencies(self) -> list[Currency]:
        return self.session.scalars(select(Currency).order_by(Currency.code)).all()

    def create_currency(self, data: CurrencyIn) -> Currency:
        code = data.code.upper()
        existing = self.session.scalar(select(Currency).where(Currency.code == code))
        if existing:
            raise ValueError("Currency with this code already exists")
        currency = Currency(
            id=data.id or code.lower(),
            code=code,
            symbol=data.symbol,
            name=data.name.strip(),
        )
        self.session.add(currency)
        self.session.commit()
        self.session.refresh(currency)
        logger.info(f"currency_created: id={currency.id} code={currency.code}")
        return currency

    def currency_symbol(self, currency_id: str, default: str) -> str:
        currency = self.session.get(Currency, currency_id)
        return currency.symbol if currency else default

    def list_accounts(self) -> list[Account]:
        return self.session.scalars(select(Account).order_by(Account.name)).all()

    def create_account(self, data: AccountIn) -> Account:
        if not self.session.get(Currency, data.currency_id):
            raise ValueError("Currency not found")
        account = Account(name=data.name.strip(), currency_id=data.currency_id)
        if data.id:
            account.id = data.id
        self.session.add(account)
        self.session.commit()
        self.session.refresh(account)
        logger.info(f"account_created: id={account.id}")
        return account


class CategoryService:
    def __init__(self, session: Session) -> None:
        self.session = session

    def list_all(self) -> list[Category]:
        stmt = select(Category).order_by(Category.type, Category.created_at, Category.name)
        return self.session.scalars(stmt).all()

    def get(self, category_id: str) -> Category:
        category = self.session.get(Category, category_id)
        if not category:
            raise ValueError("Category not found")
        return category

    def create(self, data: CategoryIn) -> Category:
        name = data.name.strip()
        if not name:
            raise ValueError("Category name must not be blank")
        existing = self.session.scalar(
            select(Category).where(
                Category.type == data.type,
                func.lower(Category.name) == name.lower(),
            )
        )
        if existing:
            raise ValueError("Category with this name already exists")
        if data.parent_id is not None:
            parent = self.session.get(Category, data.parent_id)
            if not parent:
                raise ValueError("Parent category not found")
            if parent.parent_id is not None:
                raise ValueError("Categories can only be nested one level deep")
            if parent.type != data.type:
                raise ValueError("Category type mismatch with parent")
        category = Category(
            name=name,
            type=data.type,
            parent_id=data.parent_id,
        )
        if data.id:
            category.id = data.id
        self.session.add(category)
        self.session.commit()
        self.session.refresh(category)
        logger.info(
            f"category_created: id={category.id} type={category.type.value} "
            f"parent={category.parent_id}"
        )
        return category

    def lookup(self) -> CategoryIndex:
        """Snapshot of every category, roots in creation order."""
        return CategoryIndex(c.to_record() for c in self.list_all())


@dataclass
class TransactionFilters:
    type: Optional[TransactionType] = None
    category_id: Optional[str] = None
    query: Optional[str] = None
    include_projected: bool = True


class TransactionService:
    def __init__(self, session: Session) -> None:
        self.session = session

    def create(self, data: TransactionIn) -> Transaction:
        category = self.session.get(Category, data.category_id)
        if not category:
            raise ValueError("Category not found")
        if category.type != data.type:
            raise ValueError("Category type mismatch")
        currency_id = data.currency_id
        if data.account_id is not None:
            account = self.session.get(Account, data.account_id)
            if not account:
                raise ValueError("Account not found")
            currency_id = currency_id or account.currency_id
        if currency_id is not None and not self.session.get(Currency, currency_id):
            raise ValueError("Currency not found")
        txn = Transaction(
            date=data.date,
            description=data.description.strip(),
            amount=data.amount,
            type=data.type,
            category_id=data.category_id,
            account_id=data.account_id,
            currency_id=currency_id,
            is_projected=data.is_projected,
        )
        self.session.add(txn)
        self.session.commit()
        self.session.refresh(txn)
        logger.info(
            f"transaction_created: id={txn.id} type={txn.type.value} "
            f"amount={txn.amount} projected={txn.is_projected}"
        )
        return txn

    def get(self, transaction_id: str) -> Transaction:
        txn = self.session.get(Transaction, transaction_id)
        if not txn:
            raise ValueError("Transaction not found")
        return txn

    def delete(self, transaction_id: str) -> None:
        txn = self.get(transaction_id)
        self.session.delete(txn)
        self.session.commit()
        logger.info(f"transaction_deleted: id={transaction_id}")

    def list(
        self,
        window: Optional[TimeWindow] = None,
        filters: Optional[TransactionFilters] = None,
        *,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> list[Transaction]:
        window = window or all_time()
        filters = filters or TransactionFilters()
        stmt = select(Transaction).order_by(Transaction.date.desc(), Transaction.id)
        if window.start is not None:
            stmt = stmt.where(Transaction.date >= window.start.date())
        if window.end is not None:
            stmt = stmt.where(Transaction.date <= window.end.date())
        if filters.type:
            stmt = stmt.where(Transaction.type == filters.type)
        if filters.category_id:
            stmt = stmt.where(Transaction.category_id == filters.category_id)
        if filters.query:
            stmt = stmt.where(Transaction.description.ilike(f"%{filters.query}%"))
        if not filters.include_projected:
            stmt = stmt.where(Transaction.is_projected.is_(False))
        if offset:
            stmt = stmt.offset(offset)
        if limit is not None:
            stmt = stmt.limit(limit)
        return self.session.scalars(stmt).all()

    def get_actual_transactions(self) -> list[TransactionRecord]:
        stmt = (
            select(Transaction)
            .where(Transaction.is_projected.is_(False))
            .order_by(Transaction.date, Transaction.created_at, Transaction.id)
        )
        return [t.to_record() for t in self.session.scalars(stmt)]


class CSVService:
    def __init__(self, session: Session) -> None:
        self.session = session

    def export(self, transactions: Sequence[Transaction]) -> str:
        return export_transactions([t.to_record() for t in transactions])

    def _resolve_category(
        self, value: str, txn_type: TransactionType
    ) -> Optional[Category]:
        category = self.session.get(Category, value)
        if category and category.type == txn_type:
            return category
        candidates = self.session.scalars(
            select(Category).where(Category.type == txn_type)
        ).all()
        wanted = value.strip().lower()
        for candidate in candidates:
            if candidate.name.lower() == wanted:
                return candidate
        close = [
            c for c in candidates if Levenshtein.distance(c.name.lower(), wanted) <= 1
        ]
        if len(close) == 1:
            return close[0]
        return None

    def import_csv(self, content: str) -> tuple[int, list[str]]:
        rows, errors = parse_csv(content)
        created = 0
        txn_service = TransactionService(self.session)
        for idx, row in rows:
            category = self._resolve_category(row.category, row.type)
            if category is None:
                errors.append(f"Row {idx}: Unknown category '{row.category}'")
                continue
            try:
                txn_service.create(
                    TransactionIn(
                        date=row.date,
                        description=row.description,
                        amount=row.amount,
                        type=row.type,
                        category_id=category.id,
                        account_id=row.account,
                        currency_id=row.currency,
                        is_projected=row.is_projected,
                    )
                )
            except ValueError as exc:
                self.session.rollback()
                errors.append(f"Row {idx}: {exc}")
                continue
            created += 1
        for error in errors:
            logger.warning(f"csv_import_error: {error}")
        logger.info(f"csv_import: created={created} errors={len(errors)}")
        return created, errors


@dataclass(frozen=True)
class BudgetStatus:
    budget_id: str
    category_id: str
    category_name: str
    period: BudgetPeriod
    limit: Decimal
    spent: Decimal
    remaining: Decimal
    percent_used: Decimal


class BudgetService:
    def __init__(self, session: Session) -> None:
        self.session = session

    def list(self) -> list[Budget]:
        return self.session.scalars(select(Budget).order_by(Budget.created_at)).all()

    def get(self, budget_id: str) -> Budget:
        budget = self.session.get(Budget, budget_id)
        if not budget:
            raise ValueError("Budget not found")
        return budget

    def delete(self, budget_id: str) -> None:
        budget = self.get(budget_id)
        self.session.delete(budget)
        self.session.commit()
        logger.info(f"budget_deleted: id={budget_id}")

    def upsert(self, data: BudgetIn) -> Budget:
        category = self.session.get(Category, data.category_id)
        if not category:
            raise ValueError("Category not found")
        if category.type != TransactionType.expense:
            raise ValueError("Budgets can only be set for expense categories")
        if data.currency_id is not None and not self.session.get(
            Currency, data.currency_id
        ):
            raise ValueError("Currency not found")

        stmt = select(Budget).where(
            Budget.category_id == data.category_id,
            Budget.currency_id.is_(None)
            if data.currency_id is None
            else Budget.currency_id == data.currency_id,
        )
        budget = self.session.scalar(stmt)
        if budget:
            budget.amount = data.amount
            budget.period = data.period
        else:
            budget = Budget(
                category_id=data.category_id,
                amount=data.amount,
                period=data.period,
                currency_id=data.currency_id,
            )
            self.session.add(budget)
        self.session.commit()
        self.session.refresh(budget)
        logger.info(
            f"budget_saved: id={budget.id} category={budget.category_id} "
            f"amount={budget.amount} period={budget.period.value}"
        )
        return budget

    @staticmethod
    def period_start(period: BudgetPeriod, now: datetime) -> date:
        if period == BudgetPeriod.yearly:
            return date(now.year, 1, 1)
        return now.date().replace(day=1)

    def spent(
        self,
        budget: Budget,
        transactions: Sequence[TransactionRecord],
        now: datetime,
    ) -> Decimal:
        start = datetime.combine(self.period_start(budget.period, now), time.min)
        matching = [
            t
            for t in aggregation.expenses(transactions)
            if t.category == budget.category_id
            and (budget.currency_id is None or t.currency_id == budget.currency_id)
            and datetime.combine(t.date, time.min) >= start
        ]
        return aggregation.sum_amounts(matching)

    def status(self, now: Optional[datetime] = None) -> list[BudgetStatus]:
        now = now or current_time()
        transactions = TransactionService(self.session).get_actual_transactions()
        out = []
        for budget in self.list():
            limit = Decimal(budget.amount)
            spent = self.spent(budget, transactions, now)
            out.append(
                BudgetStatus(
                    budget_id=budget.id,
                    category_id=budget.category_id,
                    category_name=budget.category.name,
                    period=budget.period,
                    limit=limit,
                    spent=spent,
                    remaining=limit - spent,
                    percent_used=(
                        (spent / limit * 100).quantize(Decimal("0.1"))
                        if limit > 0
                        else Decimal(0)
                    ),
                )
            )
        return out


class GoalService:
    def __init__(self, session: Session) -> None:
        self.session = session

    def list(self) -> list[Goal]:
        return self.session.scalars(select(Goal).order_by(Goal.created_at)).all()

    def get(self, goal_id: str) -> Goal:
        goal = self.session.get(Goal, goal_id)
        if not goal:
            raise ValueError("Goal not found")
        return goal

    def create(self, data: GoalIn) -> Goal:
        goal = Goal(
            name=data.name.strip(),
            target_amount=data.target_amount,
            current_amount=data.current_amount,
            deadline=data.deadline,
        )
        self.session.add(goal)
        self.session.commit()
        self.session.refresh(goal)
        logger.info(f"goal_created: id={goal.id} target={goal.target_amount}")
        return goal

    def update(self, goal_id: str, data: GoalIn) -> Goal:
        goal = self.get(goal_id)
        goal.name = data.name.strip()
        goal.target_amount = data.target_amount
        goal.current_amount = data.current_amount
        goal.deadline = data.deadline
        self.session.commit()
        self.session.refresh(goal)
        logger.info(f"goal_updated: id={goal.id} target={goal.target_amount}")
        return goal

    def delete(self, goal_id: str) -> None:
        goal = self.get(goal_id)
        self.session.delete(goal)
        self.session.commit()
        logger.info(f"goal_deleted: id={goal_id}")

    def contribute(self, goal_id: str, amount: Decimal) -> Goal:
        goal = self.get(goal_id)
        goal.current_amount = Decimal(goal.current_amount or 0) + amount
        self.session.commit()
        self.session.refresh(goal)
        logger.info(f"goal_contribution: id={goal.id} amount={amount}")
        return goal

    @staticmethod
    def progress(goal: Goal) -> Decimal:
        target = Decimal(goal.target_amount)
        if target == 0:
            return Decimal(0)
        return min(Decimal(goal.current_amount) / target * 100, Decimal(100))


class AnalyticsService:
    """Entry point for chat answers, insights and forecasts.

    Every call reads one ledger snapshot and one category snapshot, then
    hands them to the pure engine modules together with ``now``.
    """

    def __init__(
        self,
        session: Session,
        settings: Optional[Settings] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self.session = session
        self.settings = settings or get_settings()
        self.clock = clock or (lambda: current_time(self.settings))

    def _snapshot(self) -> tuple[list[TransactionRecord], CategoryIndex]:
        ledger: TransactionLedger = TransactionService(self.session)
        transactions = list(ledger.get_actual_transactions())
        categories = CategoryService(self.session).lookup()
        return transactions, categories

    def currency_symbol(self) -> str:
        return AccountService(self.session).currency_symbol(
            self.settings.reference_currency_id, self.settings.currency_symbol
        )

    def answer_query(self, text: str, now: Optional[datetime] = None) -> str:
        transactions, categories = self._snapshot()
        return chatbot.answer_query(
            text, transactions, categories, now or self.clock(), self.currency_symbol()
        )

    def compute_insights(
        self, now: Optional[datetime] = None
    ) -> list[insight_rules.Insight]:
        transactions, categories = self._snapshot()
        return insight_rules.compute_insights(
            transactions, categories, now or self.clock(), self.currency_symbol()
        )

    def compute_forecast(self, now: Optional[datetime] = None) -> forecasting.Forecast:
        transactions, categories = self._snapshot()
        return forecasting.compute_forecast(
            transactions, categories, now or self.clock()
        )

    def summary(self, now: Optional[datetime] = None) -> dict[str, object]:
        now = now or self.clock()
        transactions, categories = self._snapshot()
        total_income = aggregation.sum_by_type(transactions, TransactionType.income)
        total_expenses = aggregation.sum_by_type(transactions, TransactionType.expense)
        next_month = forecasting.compute_forecast(transactions, categories, now).next_month
        return {
            "generated_at": now,
            "symbol": self.currency_symbol(),
            "total_income": total_income,
            "total_expenses": total_expenses,
            "net_balance": total_income - total_expenses,
            "transaction_count": len(transactions),
            "next_month": next_month.month_label if next_month else None,
            "projected_savings": next_month.projected_savings if next_month else None,
        }
