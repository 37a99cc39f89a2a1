import uuid
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    Enum as SAEnum,
    ForeignKey,
    Index,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from database import Base
from ledger import CategoryRecord, TransactionRecord, TransactionType

AMOUNT = Numeric(12, 2, asdecimal=True)


def new_id() -> str:
    return str(uuid.uuid4())


class BudgetPeriod(str, Enum):
    monthly = "monthly"
    yearly = "yearly"


class TimestampMixin:
    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False
    )


class Currency(Base, TimestampMixin):
    __tablename__ = "currencies"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    code: Mapped[str] = mapped_column(String(3), nullable=False, unique=True)
    symbol: Mapped[str] = mapped_column(String(8), nullable=False)
    name: Mapped[str] = mapped_column(String(60), nullable=False)


class Account(Base, TimestampMixin):
    __tablename__ = "accounts"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    currency_id: Mapped[str] = mapped_column(
        ForeignKey("currencies.id"), nullable=False
    )

    currency: Mapped["Currency"] = relationship("Currency")


class Category(Base, TimestampMixin):
    __tablename__ = "categories"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    type: Mapped[TransactionType] = mapped_column(
        SAEnum(TransactionType), nullable=False
    )
    parent_id: Mapped[Optional[str]] = mapped_column(ForeignKey("categories.id"))

    parent: Mapped[Optional["Category"]] = relationship(
        "Category", remote_side="Category.id", back_populates="children"
    )
    children: Mapped[list["Category"]] = relationship(
        "Category", back_populates="parent"
    )
    transactions: Mapped[list["Transaction"]] = relationship(
        "Transaction", back_populates="category"
    )

    __table_args__ = (
        UniqueConstraint("type", "name", name="uq_category_type_name"),
    )

    def to_record(self) -> CategoryRecord:
        return CategoryRecord(
            id=self.id, name=self.name, type=self.type, parent_id=self.parent_id
        )


class Transaction(Base, TimestampMixin):
    __tablename__ = "transactions"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    date: Mapped[date] = mapped_column(Date, nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    amount: Mapped[Decimal] = mapped_column(AMOUNT, nullable=False)
    type: Mapped[TransactionType] = mapped_column(
        SAEnum(TransactionType), nullable=False
    )
    category_id: Mapped[str] = mapped_column(
        ForeignKey("categories.id"), nullable=False
    )
    account_id: Mapped[Optional[str]] = mapped_column(ForeignKey("accounts.id"))
    currency_id: Mapped[Optional[str]] = mapped_column(ForeignKey("currencies.id"))
    is_projected: Mapped[bool] = mapped_column(
        Boolean, default=False, nullable=False
    )

    category: Mapped["Category"] = relationship(
        "Category", back_populates="transactions"
    )
    account: Mapped[Optional["Account"]] = relationship("Account")

    __table_args__ = (
        Index("ix_transactions_date", "date"),
        Index("ix_transactions_category_date", "category_id", "date"),
        Index("ix_transactions_projected_date", "is_projected", "date"),
        CheckConstraint("amount >= 0", name="ck_transactions_amount_positive"),
    )

    def to_record(self) -> TransactionRecord:
        return TransactionRecord(
            id=self.id,
            date=self.date,
            amount=Decimal(self.amount),
            type=self.type,
            category=self.category_id,
            description=self.description or "",
            account_id=self.account_id,
            currency_id=self.currency_id,
            is_projected=self.is_projected,
        )


class Budget(Base, TimestampMixin):
    __tablename__ = "budgets"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    category_id: Mapped[str] = mapped_column(
        ForeignKey("categories.id"), nullable=False
    )
    amount: Mapped[Decimal] = mapped_column(AMOUNT, nullable=False)
    period: Mapped[BudgetPeriod] = mapped_column(
        SAEnum(BudgetPeriod), nullable=False, default=BudgetPeriod.monthly
    )
    currency_id: Mapped[Optional[str]] = mapped_column(ForeignKey("currencies.id"))

    category: Mapped["Category"] = relationship("Category")

    __table_args__ = (
        CheckConstraint("amount >= 0", name="ck_budget_amount_positive"),
        UniqueConstraint(
            "category_id", "currency_id", name="uq_budget_category_currency"
        ),
    )


class Goal(Base, TimestampMixin):
    __tablename__ = "goals"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    name: Mapped[str] = mapped_column(String(120), nullable=False)
    target_amount: Mapped[Decimal] = mapped_column(AMOUNT, nullable=False)
    current_amount: Mapped[Decimal] = mapped_column(
        AMOUNT, nullable=False, default=Decimal("0")
    )
    deadline: Mapped[Optional[date]] = mapped_column(Date)

    __table_args__ = (
        CheckConstraint("target_amount >= 0", name="ck_goal_target_positive"),
        CheckConstraint("current_amount >= 0", name="ck_goal_current_positive"),
    )
