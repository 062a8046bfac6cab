"""
Display price block for an order: subtotal, tax lines and total, in the
user's preferred display currency.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Iterable, List, Optional, Tuple

from core_backend.config import app_settings

from .currency import convert
from .decomposition import Tax, safe_decompose
from .money import format_money


@dataclass(frozen=True)
class PriceSummary:
    currency: str
    subtotal: Decimal
    tax_lines: Tuple[Tuple[Tax, Decimal], ...]
    total: Decimal
    base_currency: str
    base_total: Decimal
    is_fallback: bool = False

    @property
    def is_converted(self) -> bool:
        return self.currency.upper() != (self.base_currency or "").upper()

    def to_dict(self) -> dict:
        return {
            "currency": self.currency,
            "subtotal": str(self.subtotal),
            "taxes": [
                {"name": tax.name, "nameAr": tax.name_ar, "percentage": str(tax.percentage), "amount": str(amount)}
                for tax, amount in self.tax_lines
            ],
            "total": str(self.total),
            "formattedSubtotal": format_money(self.currency, self.subtotal),
            "formattedTotal": format_money(self.currency, self.total),
            "baseCurrency": self.base_currency,
            "baseTotal": str(self.base_total),
            "isFallback": self.is_fallback,
        }


def build_price_summary(order: Any, taxes: Iterable[Any], rates: Iterable[Any] = (),
                        display_currency: Optional[str] = None) -> PriceSummary:
    """
    Decompose ``order.total_price`` and convert every part for display.

    The order's total is used as-is; the decomposition only explains it.
    Each part is converted on its own, so converted parts are display values
    and are not re-reconciled against the converted total. Orders without a
    currency are priced in ``POS_SYNC['BASE_CURRENCY']``.
    """
    rates = list(rates)
    base_currency = getattr(order, "currency", None) or app_settings.BASE_CURRENCY
    breakdown = safe_decompose(order.total_price, order.items, taxes)

    def _display(amount):
        return convert(amount, base_currency, display_currency, rates)

    total = _display(breakdown.total)
    tax_lines: List[Tuple[Tax, Decimal]] = [
        (tax, _display(amount).amount) for tax, amount in breakdown.tax_lines()
    ]

    return PriceSummary(
        currency=total.currency,
        subtotal=_display(breakdown.subtotal).amount,
        tax_lines=tuple(tax_lines),
        total=total.amount,
        base_currency=base_currency,
        base_total=breakdown.total,
        is_fallback=breakdown.is_fallback,
    )
