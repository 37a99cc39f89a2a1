from datetime import date, datetime
from decimal import Decimal

from chatbot import (
    FALLBACK_MESSAGE,
    HELP_MESSAGE,
    answer_query,
    build_context,
    classify,
    resolve_category,
)
from ledger import CategoryIndex, CategoryRecord, TransactionRecord, TransactionType

NOW = datetime(2025, 3, 19, 14, 30)

CATEGORIES = CategoryIndex(
    [
        CategoryRecord("food", "Food", TransactionType.expense),
        CategoryRecord("groceries", "Groceries", TransactionType.expense, "food"),
        CategoryRecord("transport", "Transport", TransactionType.expense),
        CategoryRecord("salary", "Salary", TransactionType.income),
    ]
)


def _txn(
    txn_id: str,
    amount: str,
    category: str,
    day: date,
    txn_type: TransactionType = TransactionType.expense,
) -> TransactionRecord:
    return TransactionRecord(
        id=txn_id, date=day, amount=Decimal(amount), type=txn_type, category=category
    )


def _ask(text: str, transactions) -> str:
    return answer_query(text, transactions, CATEGORIES, NOW, "₹")


def _intent(text: str, transactions=()) -> str:
    ctx = build_context(text, transactions, CATEGORIES, NOW, "₹")
    rule = classify(ctx)
    return rule.name if rule else "fallback"


def test_category_total_for_this_month() -> None:
    txns = [
        _txn("a", "100", "food", date(2025, 3, 5)),
        _txn("b", "50", "food", date(2025, 2, 10)),
    ]
    answer = _ask("How much did I spend on food this month?", txns)
    assert answer == (
        "You spent **₹100.00** on **Food** this month.\n\n"
        "This includes 1 transaction."
    )


def test_category_total_rolls_up_subcategories() -> None:
    txns = [
        _txn("a", "100", "food", date(2025, 3, 5)),
        _txn("b", "30.50", "groceries", date(2025, 3, 6)),
        _txn("c", "40", "transport", date(2025, 3, 6)),
    ]
    answer = _ask("how much did i spend on food this month", txns)
    assert "**₹130.50**" in answer
    assert "2 transactions" in answer


def test_alias_resolves_to_root_category() -> None:
    assert resolve_category("what about groceries", CATEGORIES).id == "food"
    assert resolve_category("uber rides", CATEGORIES).id == "transport"
    assert resolve_category("netflix", CATEGORIES) is None


def test_total_spend_last_month() -> None:
    txns = [
        _txn("a", "100", "food", date(2025, 3, 5)),
        _txn("b", "50", "food", date(2025, 2, 10)),
        _txn("c", "25", "transport", date(2025, 2, 28)),
    ]
    answer = _ask("What is my total spending last month?", txns)
    assert answer == "Your total spending last month is **₹75.00** across 2 transactions."


def test_income_all_time() -> None:
    txns = [
        _txn("a", "3000", "salary", date(2025, 1, 1), TransactionType.income),
        _txn("b", "2000", "salary", date(2025, 3, 1), TransactionType.income),
        _txn("c", "25", "food", date(2025, 3, 1)),
    ]
    answer = _ask("What's my total income?", txns)
    assert answer == "Your total income all time is **₹5000.00** from 2 transactions."


def test_savings_positive_reports_rate() -> None:
    txns = [
        _txn("a", "1000", "salary", date(2025, 3, 1), TransactionType.income),
        _txn("b", "150", "food", date(2025, 3, 2)),
    ]
    answer = _ask("How much did I save this month?", txns)
    assert "**₹850.00**" in answer
    assert "85.0% savings rate" in answer


def test_savings_with_zero_income_reports_overspend() -> None:
    txns = [_txn("a", "150", "food", date(2025, 3, 2))]
    answer = _ask("how much have I saved", txns)
    assert answer == (
        "You spent **₹150.00** more than you earned all time. "
        "Consider reviewing your expenses."
    )


def test_savings_without_transactions() -> None:
    answer = _ask("savings this week", [])
    assert answer.startswith("No transactions found this week")


def test_top_categories_ranked_with_roll_up() -> None:
    txns = [
        _txn("a", "60", "food", date(2025, 3, 5)),
        _txn("b", "50", "groceries", date(2025, 3, 6)),
        _txn("c", "100", "transport", date(2025, 3, 7)),
        _txn("d", "999", "salary", date(2025, 3, 7), TransactionType.income),
    ]
    answer = _ask("show my top categories", txns)
    lines = answer.splitlines()
    assert lines[0] == "Your top spending categories all time:"
    assert lines[2] == "1. **Food**: ₹110.00"
    assert lines[3] == "2. **Transport**: ₹100.00"
    assert len(lines) == 4


def test_top_categories_empty() -> None:
    assert _ask("highest spending", []) == "No expenses found for the selected period."


def test_balance_reports_deficit() -> None:
    txns = [
        _txn("a", "100", "salary", date(2025, 3, 17), TransactionType.income),
        _txn("b", "150", "food", date(2025, 3, 18)),
    ]
    answer = _ask("what's my balance this week", txns)
    assert "Income: ₹100.00" in answer
    assert "Expenses: ₹150.00" in answer
    assert "Net (deficit): ₹-50.00" in answer


def test_bare_category_mention() -> None:
    txns = [_txn("a", "40", "transport", date(2025, 3, 18))]
    answer = _ask("transport yesterday?", txns)
    assert answer == "Your **Transport** spending yesterday: **₹40.00** (1 transaction)"


def test_count_transactions() -> None:
    txns = [
        _txn("a", "40", "transport", date(2025, 2, 3)),
        _txn("b", "900", "salary", date(2025, 2, 4), TransactionType.income),
    ]
    answer = _ask("how many transactions last month", txns)
    assert answer == "You have 2 total transactions last month (1 expenses, 1 income)."


def test_average_with_and_without_expenses() -> None:
    txns = [
        _txn("a", "10", "transport", date(2025, 3, 3)),
        _txn("b", "25", "transport", date(2025, 3, 4)),
    ]
    assert "**₹17.50**" in _ask("average expense", txns)
    assert _ask("average expense", []) == "No expenses found to calculate average."


def test_help_and_fallback() -> None:
    assert _ask("help", []) == HELP_MESSAGE
    assert _ask("tell me a joke", []) == FALLBACK_MESSAGE


def test_intent_priority_order() -> None:
    assert _intent("how much did i spend on food") == "category_total"
    assert _intent("how much did i spend") == "total_spend"
    # "save" outranks the category mention
    assert _intent("how much did i save on food") == "savings"
    assert _intent("income and savings") == "income"
    assert _intent("top food items") == "top_categories"
    assert _intent("food balance") == "balance"


def test_first_window_trigger_wins() -> None:
    ctx = build_context("this month vs last month", [], CATEGORIES, NOW, "₹")
    assert ctx.period == "this month"


def test_answers_are_deterministic() -> None:
    txns = [_txn("a", "12.345", "food", date(2025, 3, 5))]
    first = _ask("how much did I spend on food", txns)
    assert first == _ask("how much did I spend on food", txns)
    assert "**₹12.35**" in first


def test_blank_category_name_never_matches() -> None:
    categories = CategoryIndex(
        [
            CategoryRecord("blank", "", TransactionType.expense),
            CategoryRecord("transport", "Transport", TransactionType.expense),
        ]
    )
    assert resolve_category("tell me a joke", categories) is None
    assert resolve_category("transport costs", categories).id == "transport"


def test_bare_category_intent_uses_resolved_category() -> None:
    txns = [
        _txn("a", "12", "groceries", date(2025, 3, 18)),
        _txn("b", "8", "food", date(2025, 3, 18)),
    ]
    answer = _ask("groceries yesterday", txns)
    assert answer == "Your **Food** spending yesterday: **₹20.00** (2 transactions)"
