"""Keyword-driven answers to free-form finance questions.

The classifier works on three ordered tables: window triggers, category
aliases and intent rules. Each table is scanned top to bottom and the
first hit wins, so the order of the entries is part of the behaviour.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Callable, Optional, Sequence

import aggregation
import periods
from formatting import fixed, money, plural
from ledger import CategoryLookup, CategoryRecord, TransactionRecord, TransactionType

logger = logging.getLogger(__name__)

WELCOME_MESSAGE = (
    "Hi! I'm your Finance Assistant. Ask me about your spending, income, or "
    "financial habits. Try questions like:\n\n"
    '- "How much did I spend on food this month?"\n'
    '- "What\'s my total income?"\n'
    '- "Show my top spending categories"\n'
    '- "How much did I spend last week?"'
)

HELP_MESSAGE = (
    "I can help you with:\n\n"
    '- **Spending**: "How much did I spend this month?"\n'
    '- **Income**: "What\'s my total income?"\n'
    '- **Categories**: "How much on food this week?"\n'
    '- **Top spending**: "Show my top categories"\n'
    '- **Savings**: "How much did I save?"\n'
    '- **Balance**: "What\'s my net balance?"\n'
    '- **Comparisons**: Add "this month", "last week", etc.'
)

FALLBACK_MESSAGE = (
    "I'm not sure how to answer that. Try asking about your spending, income, "
    'savings, or specific categories. Type "help" for examples!'
)

TOP_CATEGORY_LIMIT = 5

WindowBuilder = Callable[[datetime], periods.TimeWindow]

WINDOW_TRIGGERS: tuple[tuple[tuple[str, ...], WindowBuilder], ...] = (
    (("this month", "current month"), periods.this_month),
    (("last month", "previous month"), periods.last_month),
    (("this week",), periods.this_week),
    (("last week", "previous week"), periods.last_week),
    (("today",), periods.today),
    (("yesterday",), periods.yesterday),
)

CATEGORY_ALIASES: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("food", ("food", "groceries", "grocery", "eating", "restaurant", "dining")),
    (
        "transport",
        ("transport", "transportation", "travel", "uber", "gas", "fuel"),
    ),
    ("shopping", ("shopping", "clothes", "clothing", "amazon")),
    (
        "entertainment",
        ("entertainment", "movies", "games", "netflix", "spotify"),
    ),
    ("utilities", ("utilities", "bills", "electricity", "water", "internet")),
    ("health", ("health", "medical", "doctor", "medicine", "hospital")),
)

SPEND_TRIGGERS = ("total spend", "how much did i spend", "total expense")
INCOME_TRIGGERS = ("income", "earn", "salary")
SAVINGS_TRIGGERS = ("saving", "saved", "save")
TOP_TRIGGERS = ("top", "highest", "most")
BALANCE_TRIGGERS = ("balance", "net")
COUNT_TRIGGERS = ("how many", "count", "number of")
AVERAGE_TRIGGERS = ("average", "avg")
HELP_TRIGGERS = ("help", "what can you do")


def _mentions(query: str, phrases: Sequence[str]) -> bool:
    return any(phrase in query for phrase in phrases)


def resolve_window(query: str, now: datetime) -> periods.TimeWindow:
    for phrases, builder in WINDOW_TRIGGERS:
        if _mentions(query, phrases):
            return builder(now)
    return periods.all_time(now)


def resolve_category(
    query: str, categories: CategoryLookup
) -> Optional[CategoryRecord]:
    candidates = [
        *categories.get_root_categories(TransactionType.expense),
        *categories.get_root_categories(TransactionType.income),
    ]
    for category in candidates:
        name = category.name.lower()
        if name and name in query:
            return category
    for token, words in CATEGORY_ALIASES:
        if _mentions(query, words):
            for category in candidates:
                if token in category.name.lower():
                    return category
    return None


@dataclass(frozen=True)
class QueryContext:
    query: str
    window: periods.TimeWindow
    transactions: Sequence[TransactionRecord]
    category: Optional[CategoryRecord]
    categories: CategoryLookup
    symbol: str

    @property
    def period(self) -> str:
        return self.window.label

    def money(self, value: Decimal) -> str:
        return money(value, self.symbol)

    def expenses(self) -> list[TransactionRecord]:
        return aggregation.expenses(self.transactions)

    def income(self) -> list[TransactionRecord]:
        return aggregation.income(self.transactions)

    def category_expenses(self, category: CategoryRecord) -> list[TransactionRecord]:
        return aggregation.filter_by_category(
            self.expenses(), category.id, self.categories
        )


def _answer_category_total(ctx: QueryContext, category: CategoryRecord) -> str:
    txns = ctx.category_expenses(category)
    total = aggregation.sum_amounts(txns)
    return (
        f"You spent **{ctx.money(total)}** on **{category.name}** "
        f"{ctx.period}.\n\nThis includes {plural(len(txns), 'transaction')}."
    )


def _answer_total_spend(ctx: QueryContext) -> str:
    txns = ctx.expenses()
    total = aggregation.sum_amounts(txns)
    return (
        f"Your total spending {ctx.period} is **{ctx.money(total)}** "
        f"across {len(txns)} transactions."
    )


def _answer_income(ctx: QueryContext) -> str:
    txns = ctx.income()
    total = aggregation.sum_amounts(txns)
    return (
        f"Your total income {ctx.period} is **{ctx.money(total)}** "
        f"from {plural(len(txns), 'transaction')}."
    )


def _answer_savings(ctx: QueryContext) -> str:
    if not ctx.transactions:
        return f"No transactions found {ctx.period}, so there are no savings to report yet."
    income_total = aggregation.sum_amounts(ctx.income())
    expense_total = aggregation.sum_amounts(ctx.expenses())
    savings = income_total - expense_total
    rate = fixed(savings / income_total * 100, 1) if income_total > 0 else "0"
    if savings > 0:
        return (
            f"Great job! You saved **{ctx.money(savings)}** {ctx.period}. "
            f"That's a {rate}% savings rate!"
        )
    return (
        f"You spent **{ctx.money(abs(savings))}** more than you earned "
        f"{ctx.period}. Consider reviewing your expenses."
    )


def _answer_top_categories(ctx: QueryContext) -> str:
    buckets = aggregation.group_by_top_category(ctx.transactions, ctx.categories)
    if not buckets:
        return "No expenses found for the selected period."
    lines = [f"Your top spending categories {ctx.period}:", ""]
    for rank, bucket in enumerate(buckets[:TOP_CATEGORY_LIMIT], start=1):
        lines.append(f"{rank}. **{bucket.name}**: {ctx.money(bucket.total)}")
    return "\n".join(lines)


def _answer_balance(ctx: QueryContext) -> str:
    income_total = aggregation.sum_amounts(ctx.income())
    expense_total = aggregation.sum_amounts(ctx.expenses())
    balance = income_total - expense_total
    status = "Net" if balance >= 0 else "Net (deficit)"
    return (
        f"Your financial summary {ctx.period}:\n\n"
        f"Income: {ctx.money(income_total)}\n"
        f"Expenses: {ctx.money(expense_total)}\n"
        f"{status}: {ctx.money(balance)}"
    )


def _answer_category_spend(ctx: QueryContext, category: CategoryRecord) -> str:
    txns = ctx.category_expenses(category)
    total = aggregation.sum_amounts(txns)
    return (
        f"Your **{category.name}** spending {ctx.period}: "
        f"**{ctx.money(total)}** ({plural(len(txns), 'transaction')})"
    )


def _answer_count(ctx: QueryContext) -> str:
    expense_count = len(ctx.expenses())
    income_count = len(ctx.income())
    if "expense" in ctx.query:
        return f"You have {expense_count} expense transactions {ctx.period}."
    if "income" in ctx.query:
        return f"You have {income_count} income transactions {ctx.period}."
    return (
        f"You have {len(ctx.transactions)} total transactions {ctx.period} "
        f"({expense_count} expenses, {income_count} income)."
    )


def _answer_average(ctx: QueryContext) -> str:
    avg = aggregation.average_amount(ctx.expenses())
    if avg is None:
        return "No expenses found to calculate average."
    return (
        f"Your average expense {ctx.period} is **{ctx.money(avg)}** "
        "per transaction."
    )


def _answer_help(ctx: QueryContext) -> str:
    return HELP_MESSAGE


@dataclass(frozen=True)
class IntentRule:
    name: str
    matches: Callable[[QueryContext], bool]
    answer: Callable[[QueryContext], str]


INTENT_RULES: tuple[IntentRule, ...] = (
    IntentRule(
        "category_total",
        lambda ctx: _mentions(ctx.query, SPEND_TRIGGERS) and ctx.category is not None,
        lambda ctx: _answer_category_total(ctx, ctx.category),
    ),
    IntentRule(
        "total_spend",
        lambda ctx: _mentions(ctx.query, SPEND_TRIGGERS),
        _answer_total_spend,
    ),
    IntentRule(
        "income", lambda ctx: _mentions(ctx.query, INCOME_TRIGGERS), _answer_income
    ),
    IntentRule(
        "savings", lambda ctx: _mentions(ctx.query, SAVINGS_TRIGGERS), _answer_savings
    ),
    IntentRule(
        "top_categories",
        lambda ctx: _mentions(ctx.query, TOP_TRIGGERS),
        _answer_top_categories,
    ),
    IntentRule(
        "balance",
        lambda ctx: _mentions(ctx.query, BALANCE_TRIGGERS),
        _answer_balance,
    ),
    IntentRule(
        "category_spend",
        lambda ctx: ctx.category is not None,
        lambda ctx: _answer_category_spend(ctx, ctx.category),
    ),
    IntentRule(
        "count", lambda ctx: _mentions(ctx.query, COUNT_TRIGGERS), _answer_count
    ),
    IntentRule(
        "average",
        lambda ctx: _mentions(ctx.query, AVERAGE_TRIGGERS),
        _answer_average,
    ),
    IntentRule("help", lambda ctx: _mentions(ctx.query, HELP_TRIGGERS), _answer_help),
)


def classify(ctx: QueryContext) -> Optional[IntentRule]:
    for rule in INTENT_RULES:
        if rule.matches(ctx):
            return rule
    return None


def build_context(
    text: str,
    transactions: Sequence[TransactionRecord],
    categories: CategoryLookup,
    now: datetime,
    symbol: str,
) -> QueryContext:
    query = text.lower()
    window = resolve_window(query, now)
    return QueryContext(
        query=query,
        window=window,
        transactions=periods.filter_by_window(transactions, window),
        category=resolve_category(query, categories),
        categories=categories,
        symbol=symbol,
    )


def answer_query(
    text: str,
    transactions: Sequence[TransactionRecord],
    categories: CategoryLookup,
    now: datetime,
    symbol: str,
) -> str:
    ctx = build_context(text, transactions, categories, now, symbol)
    rule = classify(ctx)
    if rule is None:
        logger.info("chat_answer: intent=fallback")
        return FALLBACK_MESSAGE
    logger.info(
        f"chat_answer: intent={rule.name} window={ctx.period} "
        f"matched={len(ctx.transactions)}"
    )
    return rule.answer(ctx)

