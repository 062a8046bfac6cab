"""
Menu rows as the order builder sees them.

Only what the draft needs is kept: price, discount and the priced extra
options. Everything else on the menu payload belongs to the browsing UI.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, List, Mapping, Optional

from pricing.money import to_decimal

ZERO = Decimal("0")


@dataclass(frozen=True)
class ExtraOption:
    id: str
    name: str = ""
    price: Decimal = ZERO


@dataclass(frozen=True)
class ExtraGroup:
    """A group of options (e.g. "size") the customer picks from."""
    name: str
    options: List[ExtraOption] = field(default_factory=list)

    def find_option(self, option_id) -> Optional[ExtraOption]:
        for option in self.options:
            if option.id == str(option_id):
                return option
        return None


@dataclass(frozen=True)
class MenuItem:
    id: str
    name: str
    price: Decimal
    currency: str = ""
    name_ar: Optional[str] = None
    discount: Decimal = ZERO  # percent
    extras: Dict[str, ExtraGroup] = field(default_factory=dict)

    @property
    def discounted_price(self) -> Decimal:
        if self.discount and self.discount > 0:
            return self.price * (Decimal("1") - self.discount / Decimal("100"))
        return self.price

    @classmethod
    def from_payload(cls, data: Mapping[str, Any]) -> "MenuItem":
        """
        Build from a menu API row.

        ``extras`` arrives as ``{group_key: {"name": ..., "options": [{"id", "price"}]}}``;
        groups without options are ignored.
        """
        groups = {}
        for key, group in (data.get("extras") or {}).items():
            if not isinstance(group, Mapping):
                continue
            options = [
                ExtraOption(
                    id=str(option.get("id")),
                    name=option.get("name") or "",
                    price=to_decimal(option.get("price") or 0),
                )
                for option in group.get("options") or []
                if isinstance(option, Mapping) and option.get("id") is not None
            ]
            groups[key] = ExtraGroup(name=group.get("name") or key, options=options)

        return cls(
            id=str(data["id"]),
            name=data.get("name") or "",
            name_ar=data.get("nameAr"),
            price=to_decimal(data.get("price", 0)),
            currency=data.get("currency") or "",
            discount=to_decimal(data.get("discount") or 0),
            extras=groups,
        )

    def extras_price(self, selection: Optional[Mapping[str, Any]]) -> Decimal:
        """
        Sum of the priced options referenced by ``selection``.

        A selected option id is looked up in every group of the item, so the
        selection's group keys do not have to match the menu's.
        """
        total = ZERO
        for selected in (selection or {}).values():
            if not isinstance(selected, (list, tuple)):
                continue
            for option_id in selected:
                for group in self.extras.values():
                    option = group.find_option(option_id)
                    if option is not None and option.price:
                        total += option.price
        return total

    def unit_price(self, selection: Optional[Mapping[str, Any]] = None) -> Decimal:
        return self.discounted_price + self.extras_price(selection)
