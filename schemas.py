import datetime as dt
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from insights import InsightKind
from ledger import TransactionType
from models import BudgetPeriod


class CurrencyIn(BaseModel):
    id: Optional[str] = Field(default=None, min_length=1, max_length=36)
    code: str = Field(..., min_length=3, max_length=3)
    symbol: str = Field(..., min_length=1, max_length=8)
    name: str = Field(..., min_length=1, max_length=60)


class AccountIn(BaseModel):
    id: Optional[str] = Field(default=None, min_length=1, max_length=36)
    name: str = Field(..., min_length=1, max_length=100)
    currency_id: str


class CategoryIn(BaseModel):
    id: Optional[str] = Field(default=None, min_length=1, max_length=36)
    name: str = Field(..., min_length=1, max_length=100)
    type: TransactionType
    parent_id: Optional[str] = None


class TransactionIn(BaseModel):
    date: dt.date
    description: str = Field(default="", max_length=200)
    amount: Decimal = Field(..., ge=0, max_digits=12, decimal_places=2)
    type: TransactionType
    category_id: str
    account_id: Optional[str] = None
    currency_id: Optional[str] = None
    is_projected: bool = False


class BudgetIn(BaseModel):
    category_id: str
    amount: Decimal = Field(..., ge=0, max_digits=12, decimal_places=2)
    period: BudgetPeriod = BudgetPeriod.monthly
    currency_id: Optional[str] = None


class GoalIn(BaseModel):
    name: str = Field(..., min_length=1, max_length=120)
    target_amount: Decimal = Field(..., ge=0, max_digits=12, decimal_places=2)
    current_amount: Decimal = Field(
        default=Decimal("0"), ge=0, max_digits=12, decimal_places=2
    )
    deadline: Optional[dt.date] = None


class GoalContributionIn(BaseModel):
    amount: Decimal = Field(..., gt=0, max_digits=12, decimal_places=2)


class CSVRow(BaseModel):
    date: dt.date
    description: str
    amount: Decimal
    type: TransactionType
    category: str
    account: Optional[str] = None
    currency: Optional[str] = None
    is_projected: bool = False


class ChatIn(BaseModel):
    message: str = Field(..., min_length=1, max_length=500)


class ChatOut(BaseModel):
    answer: str


class CategoryOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    type: TransactionType
    parent_id: Optional[str] = None


class TransactionOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    date: dt.date
    description: str
    amount: Decimal
    type: TransactionType
    category_id: str
    account_id: Optional[str] = None
    currency_id: Optional[str] = None
    is_projected: bool


class InsightOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    kind: InsightKind
    title: str
    description: str
    value: Optional[str] = None


class PredictionPointOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    month_key: str
    month_label: str
    predicted_income: Decimal
    predicted_expenses: Decimal
    confidence: int
    projected_savings: Decimal


class ExpectedExpenseOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    category: str
    name: str
    amount: Decimal


class MonthlyAggregateOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    month_key: str
    income: Decimal
    expenses: Decimal
    net: Decimal


class ForecastOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    insufficient_data: bool
    predictions: list[PredictionPointOut]
    top_expected_expenses: list[ExpectedExpenseOut]
    history: list[MonthlyAggregateOut]


class BudgetStatusOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    budget_id: str
    category_id: str
    category_name: str
    period: BudgetPeriod
    limit: Decimal
    spent: Decimal
    remaining: Decimal
    percent_used: Decimal


class GoalOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    target_amount: Decimal
    current_amount: Decimal
    deadline: Optional[dt.date] = None
