from datetime import date, datetime
from decimal import Decimal

from insights import NO_DATA_INSIGHT, InsightKind, compute_insights
from ledger import CategoryIndex, CategoryRecord, TransactionRecord, TransactionType

# a Wednesday; March 15 2025 is a Saturday
NOW = datetime(2025, 3, 19, 14, 30)

CATEGORIES = CategoryIndex(
    [
        CategoryRecord("food", "Food", TransactionType.expense),
        CategoryRecord("groceries", "Groceries", TransactionType.expense, "food"),
        CategoryRecord("transport", "Transport", TransactionType.expense),
        CategoryRecord("salary", "Salary", TransactionType.income),
    ]
)


def _expense(txn_id: str, amount: str, day: date, category: str = "food"):
    return TransactionRecord(
        id=txn_id,
        date=day,
        amount=Decimal(amount),
        type=TransactionType.expense,
        category=category,
    )


def _income(txn_id: str, amount: str, day: date):
    return TransactionRecord(
        id=txn_id,
        date=day,
        amount=Decimal(amount),
        type=TransactionType.income,
        category="salary",
    )


def _by_id(transactions, now: datetime = NOW):
    return {i.id: i for i in compute_insights(transactions, CATEGORIES, now, "₹")}


def test_no_transactions_yields_only_the_default_insight() -> None:
    assert compute_insights([], CATEGORIES, NOW, "₹") == [NO_DATA_INSIGHT]


def test_old_activity_only_yields_default_insight() -> None:
    txns = [_expense("a", "100", date(2024, 6, 3))]
    assert compute_insights(txns, CATEGORIES, NOW, "₹") == [NO_DATA_INSIGHT]


def test_twenty_five_percent_savings_rate_is_excellent() -> None:
    txns = [
        _income("i", "2000", date(2025, 3, 3)),
        _expense("a", "1500", date(2025, 3, 4)),
    ]
    insight = _by_id(txns)["savings-rate-good"]
    assert insight.kind == InsightKind.success
    assert insight.title == "Excellent Savings Rate"
    assert insight.value == "25%"


def test_savings_rate_boundaries() -> None:
    at_twenty = _by_id(
        [_income("i", "1000", date(2025, 3, 3)), _expense("a", "800", date(2025, 3, 4))]
    )
    assert "savings-rate-good" in at_twenty

    at_ten = _by_id(
        [_income("i", "1000", date(2025, 3, 3)), _expense("a", "900", date(2025, 3, 4))]
    )
    assert "savings-rate-good" not in at_ten
    assert "savings-rate-low" not in at_ten

    below_ten = _by_id(
        [_income("i", "1000", date(2025, 3, 3)), _expense("a", "950", date(2025, 3, 4))]
    )
    assert below_ten["savings-rate-low"].value == "5%"

    deficit = _by_id(
        [_income("i", "1000", date(2025, 3, 3)), _expense("a", "1200", date(2025, 3, 4))]
    )
    assert deficit["overspending"].value == "Deficit"


def test_spending_increase_and_decrease() -> None:
    up = _by_id(
        [_expense("a", "100", date(2025, 2, 10)), _expense("b", "125", date(2025, 3, 4))]
    )
    assert up["spending-increase"].value == "+25%"
    assert up["spending-increase"].kind == InsightKind.warning

    down = _by_id(
        [_expense("a", "100", date(2025, 2, 10)), _expense("b", "80", date(2025, 3, 4))]
    )
    assert down["spending-decrease"].value == "-20%"

    flat = _by_id(
        [_expense("a", "100", date(2025, 2, 10)), _expense("b", "120", date(2025, 3, 4))]
    )
    assert "spending-increase" not in flat
    assert "spending-decrease" not in flat


def test_top_category_uses_parent_roll_up() -> None:
    txns = [
        _expense("a", "30", date(2025, 3, 3)),
        _expense("b", "80", date(2025, 3, 4), "groceries"),
        _expense("c", "100", date(2025, 3, 5), "transport"),
    ]
    insight = _by_id(txns)["top-category"]
    assert insight.title == "Top Spending: Food"
    assert insight.value == "₹110"
    assert "52%" in insight.description


def test_unusual_spending_against_last_month() -> None:
    txns = [
        _expense("a", "100", date(2025, 2, 10)),
        _expense("b", "160", date(2025, 3, 4)),
    ]
    insight = _by_id(txns)["unusual-spending"]
    assert insight.title == "Unusual Food Spending"
    assert insight.value == "+60%"


def test_high_transaction_frequency() -> None:
    now = datetime(2025, 3, 1, 20, 0)
    txns = [_expense(f"t{n}", "5", date(2025, 3, 1)) for n in range(6)]
    assert "high-frequency" in _by_id(txns, now)
    assert "high-frequency" not in _by_id(txns[:5], now)


def test_weekend_spending_share() -> None:
    txns = [
        _expense("sat", "50", date(2025, 3, 15)),
        _expense("wed", "50", date(2025, 3, 12)),
    ]
    assert _by_id(txns)["weekend-spending"].value == "50%"

    mostly_weekday = [
        _expense("sat", "40", date(2025, 3, 15)),
        _expense("wed", "60", date(2025, 3, 12)),
    ]
    assert "weekend-spending" not in _by_id(mostly_weekday)


def test_income_growth() -> None:
    txns = [
        _income("a", "1000", date(2025, 2, 1)),
        _income("b", "1200", date(2025, 3, 1)),
    ]
    assert _by_id(txns)["income-increase"].value == "+20%"

    modest = [_income("a", "1000", date(2025, 2, 1)), _income("b", "1100", date(2025, 3, 1))]
    assert "income-increase" not in _by_id(modest)


def test_insights_are_repeatable() -> None:
    txns = [
        _income("i", "2000", date(2025, 3, 3)),
        _expense("a", "1500", date(2025, 3, 15)),
        _expense("b", "200", date(2025, 2, 15), "transport"),
    ]
    first = compute_insights(txns, CATEGORIES, NOW, "₹")
    assert first == compute_insights(txns, CATEGORIES, NOW, "₹")
