import csv
import re
from datetime import datetime
from decimal import Decimal, InvalidOperation
from io import StringIO
from typing import Sequence

from formatting import fixed
from ledger import TransactionRecord, TransactionType
from schemas import CSVRow

CSV_HEADERS = [
    "Date",
    "Description",
    "Amount",
    "Type",
    "Category",
    "Account",
    "Currency",
    "Projected",
]


def sanitize_csv_value(value: str) -> str:
    """
    Prefix values a spreadsheet would run as a formula with a tab.
    """
    if not value or value.strip() == "":
        return ""

    value = value.strip()

    formula_triggers = ("=", "+", "-", "@", "\t", "\r")

    if value.startswith(formula_triggers):
        return "\t" + value

    dangerous_patterns = [
        r"^cmd\s*",
        r"^powershell\s*",
        r"^http[s]?://",
    ]

    for pattern in dangerous_patterns:
        if re.match(pattern, value, re.IGNORECASE):
            return "\t" + value

    return value


def parse_date(value: str):
    value = value.strip()
    try:
        return datetime.strptime(value, "%Y-%m-%d").date()
    except ValueError:
        return datetime.strptime(value, "%d.%m.%Y").date()


def parse_amount(value: str) -> Decimal:
    clean = re.sub(r"[^\d,.\-]", "", value.strip())
    clean = clean.replace(",", ".")
    if clean.count(".") > 1:
        parts = clean.split(".")
        clean = "".join(parts[:-1]) + "." + parts[-1]
    try:
        amount = Decimal(clean)
    except InvalidOperation as exc:
        raise ValueError("Invalid amount") from exc
    if amount < 0:
        raise ValueError("Amount must be positive")
    return amount.quantize(Decimal("0.01"))


def parse_flag(value: str) -> bool:
    return value.strip().lower() in {"1", "true", "yes", "y", "on"}


def parse_csv(content: str) -> tuple[list[tuple[int, CSVRow]], list[str]]:
    """Parsed rows paired with their 1-based data row number, plus row errors."""
    reader = csv.DictReader(StringIO(content))
    rows: list[tuple[int, CSVRow]] = []
    errors: list[str] = []
    for idx, raw in enumerate(reader, start=1):
        try:
            date_value = parse_date(raw.get("Date") or "")
            type_value = TransactionType((raw.get("Type") or "").strip().lower())
            category = (raw.get("Category") or "").strip()
            if not category:
                raise ValueError("Category is required")
            rows.append(
                (
                    idx,
                    CSVRow(
                        date=date_value,
                        description=(raw.get("Description") or "").strip(),
                        amount=parse_amount(raw.get("Amount") or "0"),
                        type=type_value,
                        category=category,
                        account=(raw.get("Account") or "").strip() or None,
                        currency=(raw.get("Currency") or "").strip() or None,
                        is_projected=parse_flag(raw.get("Projected") or ""),
                    ),
                )
            )
        except Exception as exc:
            errors.append(f"Row {idx}: {exc}")
    return rows, errors


def export_transactions(transactions: Sequence[TransactionRecord]) -> str:
    output = StringIO()
    writer = csv.writer(output)
    writer.writerow(CSV_HEADERS)
    for txn in transactions:
        writer.writerow(
            [
                txn.date.isoformat(),
                sanitize_csv_value(txn.description),
                fixed(txn.amount, 2),
                txn.type.value,
                sanitize_csv_value(txn.category),
                txn.account_id or "",
                txn.currency_id or "",
                "Yes" if txn.is_projected else "No",
            ]
        )
    return output.getvalue()
