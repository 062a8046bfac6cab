"""
Monetary precision helpers for display-side price reconciliation.

Every amount the terminal handles is tax-inclusive and authoritative on the
server. These helpers only ever derive *display* numbers from it, so they work
in ``Decimal`` throughout and never round the authoritative total itself.

Key Principles:
1. NEVER use float for money (floats are converted through ``str`` first)
2. Round per line, never on the aggregate
3. Validate that derived parts sum back to the authoritative total
"""

from decimal import Decimal, InvalidOperation, ROUND_HALF_EVEN, ROUND_HALF_UP, getcontext
from typing import Iterable, Union

# Set high precision for intermediate calculations
getcontext().prec = 28

Number = Union[Decimal, str, int, float]

# Display tolerance for reconciliation checks (one millionth of a unit)
RECONCILIATION_TOLERANCE = Decimal("0.000001")

# Currency minor unit exponents (how many decimal places)
CURRENCY_EXPONENT = {
    "USD": 2,
    "EUR": 2,
    "GBP": 2,
    "TRY": 2,
    "AED": 2,
    "SAR": 2,
    "EGP": 2,
    # Zero-decimal currencies
    "JPY": 0,
    "KRW": 0,
    "SYP": 0,
    "IQD": 0,
    # 3-decimal currencies
    "KWD": 3,
    "BHD": 3,
    "JOD": 3,
}

CURRENCY_SYMBOLS = {
    "USD": "$",
    "EUR": "€",
    "GBP": "£",
    "JPY": "¥",
    "TRY": "₺",
}


def to_decimal(amount: Number) -> Decimal:
    """
    Coerce any numeric input into a Decimal.

    Floats go through ``str`` so ``0.1`` becomes ``Decimal('0.1')`` rather than
    its binary expansion.

    Raises:
        ValueError: If the value is not numeric (including NaN / infinity)

    Examples:
        >>> to_decimal(0.1)
        Decimal('0.1')
        >>> to_decimal("118.00")
        Decimal('118.00')
    """
    if isinstance(amount, Decimal):
        value = amount
    else:
        if isinstance(amount, bool):
            raise ValueError(f"Not a monetary amount: {amount!r}")
        try:
            value = Decimal(str(amount).strip())
        except (InvalidOperation, AttributeError) as e:
            raise ValueError(f"Not a monetary amount: {amount!r}") from e

    if not value.is_finite():
        raise ValueError(f"Not a finite monetary amount: {amount!r}")
    return value


def currency_exponent(currency: str) -> int:
    """
    Number of decimal places used when *displaying* a currency.

    Unknown codes default to 2.

    Examples:
        >>> currency_exponent("usd")
        2
        >>> currency_exponent("SYP")
        0
    """
    return CURRENCY_EXPONENT.get((currency or "").upper(), 2)


def round_to_unit(amount: Number) -> Decimal:
    """
    Round to the nearest whole currency unit, halves away from zero.

    This is the per-line rounding used when backing tax out of an inclusive
    price; it mirrors how the authoritative totals were produced.

    Examples:
        >>> round_to_unit("45.45")
        Decimal('45')
        >>> round_to_unit("42.5")
        Decimal('43')
    """
    return to_decimal(amount).quantize(Decimal("1"), rounding=ROUND_HALF_UP)


def quantize(currency: str, amount: Number) -> Decimal:
    """
    Round to the currency's display decimals using banker's rounding.

    Examples:
        >>> quantize("USD", "10.125")
        Decimal('10.12')
        >>> quantize("SYP", "1234.56")
        Decimal('1235')
    """
    places = Decimal(10) ** -currency_exponent(currency)
    return to_decimal(amount).quantize(places, rounding=ROUND_HALF_EVEN)


def reconciles(parts: Iterable[Number], expected_total: Number,
               tolerance: Decimal = RECONCILIATION_TOLERANCE) -> bool:
    """
    True when ``sum(parts)`` equals ``expected_total`` within ``tolerance``.

    Examples:
        >>> reconciles(["100", "18"], "118")
        True
        >>> reconciles(["100", "17.99"], "118")
        False
    """
    actual = sum((to_decimal(p) for p in parts), Decimal("0"))
    return abs(actual - to_decimal(expected_total)) <= tolerance


def format_money(currency: str, amount: Number) -> str:
    """
    Format an amount for display.

    Examples:
        >>> format_money("USD", "10.5")
        '$10.50'
        >>> format_money("SYP", "12100")
        'SYP 12,100'
    """
    code = (currency or "").upper()
    value = quantize(code, amount)
    symbol = CURRENCY_SYMBOLS.get(code, code + " ")
    exponent = currency_exponent(code)
    return f"{symbol}{value:,.{exponent}f}"
