from decimal import ROUND_HALF_UP, Decimal
from typing import Union

Number = Union[Decimal, int]

CENTS = Decimal("0.01")


def fixed(value: Number, places: int = 2) -> str:
    """Render like a fixed-point display: half-up rounding, no grouping."""
    exponent = Decimal(1).scaleb(-places)
    return str(Decimal(value).quantize(exponent, rounding=ROUND_HALF_UP))


def money(value: Number, symbol: str) -> str:
    return f"{symbol}{fixed(value, 2)}"


def to_cents(value: Number) -> Decimal:
    return Decimal(value).quantize(CENTS, rounding=ROUND_HALF_UP)


def percent_of(part: Number, whole: Number) -> Decimal:
    if not whole:
        return Decimal(0)
    return Decimal(part) / Decimal(whole) * 100


def plural(count: int, word: str) -> str:
    return f"{count} {word}" if count == 1 else f"{count} {word}s"
