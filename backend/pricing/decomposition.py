"""
Tax-inclusive price decomposition.

The server computes every order total with taxes already folded in. The
terminal still has to show "subtotal + each tax = total", so this module backs
the taxes out of the inclusive line prices and then distributes the rounding
remainder across the tax lines so the displayed parts add up to the
authoritative total exactly.

Nothing here may feed back into an order's total: the breakdown is for display
only.

Usage:
    from pricing.decomposition import decompose, Tax

    breakdown = decompose("118.00", [{"linePriceInclusive": "118.00", "quantity": 1}],
                          [Tax(name="VAT", percentage="18")])
    breakdown.subtotal      # Decimal('100')
    breakdown.per_tax       # (Decimal('18.00'),)
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Iterable, List, Mapping, Optional, Tuple
import logging

from .exceptions import InvalidAmountError, PricingError, ReconciliationError
from .money import Number, reconciles, round_to_unit, to_decimal

logger = logging.getLogger(__name__)

HUNDRED = Decimal("100")
ZERO = Decimal("0")


@dataclass(frozen=True)
class Tax:
    """A restaurant tax. Percentages of all taxes sum to the inclusive rate."""

    name: str
    percentage: Decimal
    name_ar: Optional[str] = None

    def __post_init__(self):
        try:
            object.__setattr__(self, "percentage", to_decimal(self.percentage))
        except ValueError as e:
            raise InvalidAmountError("percentage", self.percentage) from e

    @classmethod
    def from_payload(cls, data: Mapping[str, Any]) -> "Tax":
        return cls(
            name=data.get("name") or "",
            name_ar=data.get("nameAr") or data.get("name_ar"),
            percentage=data.get("percentage", 0),
        )


@dataclass(frozen=True)
class LineAmount:
    """An order line as seen by the decomposer: inclusive line price and quantity."""

    line_price_inclusive: Decimal
    quantity: int = 1


@dataclass(frozen=True)
class PriceBreakdown:
    total: Decimal
    subtotal: Decimal
    per_tax: Tuple[Decimal, ...] = ()
    taxes: Tuple[Tax, ...] = field(default=(), compare=False)
    is_fallback: bool = False

    @property
    def tax_total(self) -> Decimal:
        return sum(self.per_tax, ZERO)

    def tax_lines(self) -> List[Tuple[Tax, Decimal]]:
        """Pair each tax with its adjusted amount, in restaurant order."""
        return list(zip(self.taxes, self.per_tax))


def _line_price(item: Any) -> Decimal:
    if isinstance(item, Mapping):
        for key in ("linePriceInclusive", "line_price_inclusive", "price"):
            if key in item:
                return to_decimal(item[key])
        raise InvalidAmountError("linePriceInclusive", item)
    if hasattr(item, "line_price_inclusive"):
        return to_decimal(item.line_price_inclusive)
    return to_decimal(item.price)


def _percentage(tax: Any) -> Decimal:
    if isinstance(tax, Tax):
        return tax.percentage
    if isinstance(tax, Mapping):
        return to_decimal(tax.get("percentage", 0))
    return to_decimal(tax)


def _as_tax(tax: Any) -> Tax:
    if isinstance(tax, Tax):
        return tax
    if isinstance(tax, Mapping):
        return Tax.from_payload(tax)
    return Tax(name="", percentage=tax)


def decompose(total_price: Number, items: Iterable[Any], taxes: Iterable[Any]) -> PriceBreakdown:
    """
    Split an authoritative tax-inclusive total into subtotal and per-tax amounts.

    Algorithm:
    1. total_tax_pct = sum of all tax percentages
    2. Each line's tax-exclusive value is line / (1 + total_tax_pct/100),
       rounded to a whole unit PER LINE, then summed into the subtotal
    3. raw[i] = subtotal * pct[i] / 100
    4. difference = total - subtotal - sum(raw)  (the rounding remainder)
    5. adjusted[i] = raw[i] + difference * raw[i] / sum(raw)
       When sum(raw) is zero the remainder is folded into the subtotal instead.

    Args:
        total_price: The order's authoritative, tax-inclusive total
        items: Lines with an inclusive line price (LineAmount, order item
               snapshots, or mappings with ``linePriceInclusive``/``price``)
        taxes: Tax instances, mappings with ``percentage``, or bare percentages

    Returns:
        PriceBreakdown with ``subtotal + sum(per_tax) == total``

    Raises:
        InvalidAmountError: On non-numeric input or a total rate of -100% or less
        ReconciliationError: If the parts fail to add back up to the total
    """
    try:
        total = to_decimal(total_price)
    except ValueError as e:
        raise InvalidAmountError("totalPrice", total_price) from e

    tax_list = [_as_tax(t) for t in taxes]
    percentages = [_percentage(t) for t in tax_list]
    total_tax_pct = sum(percentages, ZERO)

    divisor = Decimal("1") + total_tax_pct / HUNDRED
    if divisor <= 0:
        raise InvalidAmountError("taxes", total_tax_pct, f"Total tax rate {total_tax_pct}% is not usable")

    subtotal = ZERO
    for item in items:
        try:
            line = _line_price(item)
        except ValueError as e:
            raise InvalidAmountError("linePriceInclusive", item) from e
        exclusive = line if total_tax_pct == 0 else line / divisor
        subtotal += round_to_unit(exclusive)

    raw = [subtotal * pct / HUNDRED for pct in percentages]
    raw_sum = sum(raw, ZERO)
    difference = total - subtotal - raw_sum

    if raw_sum == 0:
        # Nothing to spread the remainder over; it belongs to the subtotal line.
        adjusted = raw
        subtotal = total - raw_sum
    else:
        adjusted = [r + difference * r / raw_sum for r in raw]

    if not reconciles([subtotal, *adjusted], total):
        raise ReconciliationError(total, subtotal, adjusted)

    logger.debug(
        f"[PriceDecomposer] total={total} subtotal={subtotal} "
        f"taxes={[str(a) for a in adjusted]} remainder={difference}"
    )
    return PriceBreakdown(
        total=total,
        subtotal=subtotal,
        per_tax=tuple(adjusted),
        taxes=tuple(tax_list),
    )


def fallback_breakdown(total_price: Number) -> PriceBreakdown:
    """The breakdown shown when decomposition is not trustworthy: no taxes at all."""
    try:
        total = to_decimal(total_price)
    except ValueError:
        logger.error(f"[PriceDecomposer] Unreadable order total {total_price!r}, displaying 0")
        total = ZERO
    return PriceBreakdown(total=total, subtotal=total, is_fallback=True)


def safe_decompose(total_price: Number, items: Iterable[Any], taxes: Iterable[Any]) -> PriceBreakdown:
    """
    ``decompose`` for display call sites.

    A breakdown that cannot be trusted must never be displayed, so any pricing
    failure is logged and replaced by "subtotal = total, no taxes".
    """
    try:
        return decompose(total_price, items, taxes)
    except PricingError as e:
        logger.error(f"[PriceDecomposer] Falling back to untaxed display for total {total_price}: {e}")
        return fallback_breakdown(total_price)
