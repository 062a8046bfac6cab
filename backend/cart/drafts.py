"""
The order in progress on a terminal.

A draft is plain data: it round-trips through ``to_dict``/``from_dict`` into
JSON without loss, which is what lets a failed submission restore it exactly.
"""

from dataclasses import dataclass, field, replace
from decimal import Decimal
from typing import Any, Dict, List, Mapping, Optional
import uuid

from pricing.money import to_decimal


def new_line_id() -> str:
    return uuid.uuid4().hex


@dataclass(frozen=True)
class DraftLine:
    """One line of a draft. ``unit_price`` already includes discount and extras."""
    menu_item_id: str
    name: str
    unit_price: Decimal
    quantity: int = 1
    currency: str = ""
    name_ar: Optional[str] = None
    notes: Optional[str] = None
    extras: Optional[Dict[str, List[str]]] = None
    line_id: str = field(default_factory=new_line_id)

    @property
    def line_total(self) -> Decimal:
        return self.unit_price * self.quantity

    def to_dict(self) -> dict:
        return {
            "lineId": self.line_id,
            "menuItemId": self.menu_item_id,
            "name": self.name,
            "nameAr": self.name_ar,
            "price": str(self.unit_price),
            "currency": self.currency,
            "quantity": self.quantity,
            "notes": self.notes,
            "extras": self.extras,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "DraftLine":
        quantity = int(data.get("quantity", 1))
        if quantity <= 0:
            raise ValueError(f"Draft line quantity must be positive, got {quantity}")
        extras = data.get("extras")
        if extras is not None and not isinstance(extras, Mapping):
            raise ValueError(f"Draft line extras must be a mapping, got {type(extras).__name__}")
        return cls(
            line_id=data.get("lineId") or new_line_id(),
            menu_item_id=str(data["menuItemId"]),
            name=data.get("name") or "",
            name_ar=data.get("nameAr"),
            unit_price=to_decimal(data["price"]),
            currency=data.get("currency") or "",
            quantity=quantity,
            notes=data.get("notes"),
            extras=dict(extras) if extras is not None else None,
        )


@dataclass(frozen=True)
class OrderDraft:
    items: List[DraftLine] = field(default_factory=list)
    customer_name: str = ""
    customer_phone: str = ""
    customer_address: str = ""
    notes: str = ""

    @property
    def is_empty(self) -> bool:
        return not self.items

    @property
    def item_count(self) -> int:
        return sum(line.quantity for line in self.items)

    def with_items(self, items: List[DraftLine]) -> "OrderDraft":
        return replace(self, items=list(items))

    def with_customer(self, name=None, phone=None, address=None) -> "OrderDraft":
        return replace(
            self,
            customer_name=self.customer_name if name is None else name,
            customer_phone=self.customer_phone if phone is None else phone,
            customer_address=self.customer_address if address is None else address,
        )

    def with_notes(self, notes: str) -> "OrderDraft":
        return replace(self, notes=notes or "")

    def to_dict(self) -> dict:
        return {
            "items": [line.to_dict() for line in self.items],
            "customerName": self.customer_name,
            "customerPhone": self.customer_phone,
            "customerAddress": self.customer_address,
            "orderNotes": self.notes,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "OrderDraft":
        """
        Parse a stored draft.

        Raises:
            ValueError, KeyError, TypeError: If the stored shape is unusable
        """
        if not isinstance(data, Mapping):
            raise TypeError(f"Draft must be a mapping, got {type(data).__name__}")
        items = data.get("items") or []
        if not isinstance(items, list):
            raise TypeError("Draft items must be a list")
        return cls(
            items=[DraftLine.from_dict(line) for line in items],
            customer_name=data.get("customerName") or "",
            customer_phone=data.get("customerPhone") or "",
            customer_address=data.get("customerAddress") or "",
            notes=data.get("orderNotes") or "",
        )


EMPTY_DRAFT = OrderDraft()
