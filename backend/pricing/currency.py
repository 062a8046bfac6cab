"""
Display-currency conversion.

Restaurants price everything in a base currency and may publish exchange rates
for other currencies customers or cashiers prefer to read totals in.

Rate direction is inferred from the magnitude of the rate:

- rate >= 1: units of base per 1 unit of target (1 USD = 12100 SYP is
  stored as 12100 on an SYP-based restaurant quoting USD) -> divide
- rate < 1: units of target per 1 unit of base (0.01) -> multiply

Operators enter rates in whichever direction they naturally think in, so the
heuristic is kept exactly as is. Conversion never fails: a missing, inactive
or unusable rate returns the amount in the base currency.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Iterable, List, Mapping, Optional
import logging

from rest_framework import serializers

from .money import Number, to_decimal

logger = logging.getLogger(__name__)

ONE = Decimal("1")

# Same truthy / falsy spellings the API serializers accept ("false", "0", ...)
_IS_ACTIVE = serializers.BooleanField()


def _parse_active(value: Any) -> bool:
    try:
        return _IS_ACTIVE.to_internal_value(value)
    except serializers.ValidationError:
        logger.warning(f"Unreadable isActive flag {value!r}, treating rate as inactive")
        return False


@dataclass(frozen=True)
class ExchangeRate:
    currency: str
    exchange_rate: Decimal
    is_active: bool = True

    @classmethod
    def from_payload(cls, data: Mapping[str, Any]) -> "ExchangeRate":
        """Build from an API row; ``exchangeRate`` and ``isActive`` may arrive as strings."""
        raw_rate = data.get("exchangeRate", data.get("exchange_rate"))
        try:
            rate = to_decimal(raw_rate)
        except ValueError:
            logger.warning(f"Unreadable exchange rate for {data.get('currency')}: {raw_rate!r}")
            rate = Decimal("0")
        return cls(
            currency=str(data.get("currency") or "").upper(),
            exchange_rate=rate,
            is_active=_parse_active(data.get("isActive", data.get("is_active", True))),
        )


@dataclass(frozen=True)
class ConvertedAmount:
    amount: Decimal
    currency: str


def _as_rate(rate: Any) -> ExchangeRate:
    if isinstance(rate, ExchangeRate):
        return rate
    return ExchangeRate.from_payload(rate)


def find_rate(currency: str, rates: Iterable[Any]) -> Optional[ExchangeRate]:
    """First active rate for ``currency`` (case-insensitive), or None."""
    wanted = (currency or "").upper()
    for rate in rates:
        rate = _as_rate(rate)
        if rate.is_active and rate.currency.upper() == wanted:
            return rate
    return None


def active_currencies(rates: Iterable[Any]) -> List[str]:
    """Currency codes a user may pick as display currency, in rate order."""
    seen = []
    for rate in rates:
        rate = _as_rate(rate)
        code = rate.currency.upper()
        if rate.is_active and code and code not in seen:
            seen.append(code)
    return seen


def convert(amount_in_base: Number, base_currency: str, target_currency: Optional[str],
            rates: Iterable[Any]) -> ConvertedAmount:
    """
    Convert an amount from the base currency into ``target_currency``.

    Args:
        amount_in_base: Amount expressed in ``base_currency``
        base_currency: The restaurant's pricing currency
        target_currency: Preferred display currency, or None for base
        rates: ExchangeRate instances or API rows

    Returns:
        ConvertedAmount in the target currency, or in the base currency when
        no usable active rate exists
    """
    base = base_currency
    try:
        amount = to_decimal(amount_in_base)
    except ValueError:
        logger.warning(f"Cannot convert unreadable amount {amount_in_base!r}, showing 0 {base}")
        return ConvertedAmount(amount=Decimal("0"), currency=base)

    if not target_currency or target_currency.upper() == (base or "").upper():
        return ConvertedAmount(amount=amount, currency=base)

    rate = find_rate(target_currency, rates)
    if rate is None:
        logger.debug(f"No active rate for {target_currency}, showing {base}")
        return ConvertedAmount(amount=amount, currency=base)

    if rate.exchange_rate <= 0:
        logger.warning(f"Ignoring non-positive exchange rate {rate.exchange_rate} for {rate.currency}")
        return ConvertedAmount(amount=amount, currency=base)

    if rate.exchange_rate >= ONE:
        converted = amount / rate.exchange_rate
    else:
        converted = amount * rate.exchange_rate

    return ConvertedAmount(amount=converted, currency=rate.currency.upper())
