"""
In-memory order snapshots held by the terminal.

A snapshot is whatever the server last said about an order. The terminal
never recomputes ``total_price``; it only replaces snapshots wholesale.
"""

from dataclasses import dataclass, replace
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple

from django.db import models
from django.utils.translation import gettext_lazy as _

from core_backend.config import app_settings


class OrderStatus(models.TextChoices):
    PENDING = "PENDING", _("Pending")
    PREPARING = "PREPARING", _("Preparing")
    READY = "READY", _("Ready")
    DELIVERED = "DELIVERED", _("Delivered")  # DELIVERY orders only
    COMPLETED = "COMPLETED", _("Completed")
    CANCELLED = "CANCELLED", _("Cancelled")


class OrderType(models.TextChoices):
    DINE_IN = "DINE_IN", _("Dine In")
    DELIVERY = "DELIVERY", _("Delivery")


class UpdatedBy(models.TextChoices):
    CUSTOMER = "customer", _("Customer")
    RESTAURANT = "restaurant", _("Restaurant")
    KITCHEN = "kitchen", _("Kitchen")


TERMINAL_STATUSES = frozenset({OrderStatus.COMPLETED, OrderStatus.CANCELLED})

ALLOWED_TRANSITIONS = {
    OrderStatus.PENDING: {OrderStatus.PREPARING, OrderStatus.CANCELLED},
    OrderStatus.PREPARING: {OrderStatus.READY, OrderStatus.CANCELLED},
    OrderStatus.READY: {OrderStatus.DELIVERED, OrderStatus.COMPLETED, OrderStatus.CANCELLED},
    OrderStatus.DELIVERED: {OrderStatus.COMPLETED, OrderStatus.CANCELLED},
    OrderStatus.COMPLETED: set(),
    OrderStatus.CANCELLED: set(),
}


def is_allowed_transition(previous: str, new: str, order_type: str = OrderType.DINE_IN) -> bool:
    """
    Whether ``previous -> new`` follows the order lifecycle.

    Re-sending the same status is allowed. DELIVERED exists only for delivery
    orders; dine-in orders go straight from READY to COMPLETED.
    """
    if previous == new:
        return True
    if new == OrderStatus.DELIVERED and order_type != OrderType.DELIVERY:
        return False
    if (previous == OrderStatus.READY and new == OrderStatus.COMPLETED
            and order_type == OrderType.DELIVERY):
        return False
    return new in ALLOWED_TRANSITIONS.get(previous, set())


@dataclass(frozen=True)
class OrderItemSnapshot:
    id: str
    quantity: int
    price: Decimal  # tax-inclusive line price, after discount
    menu_item_id: Optional[str] = None
    name: Optional[str] = None
    name_ar: Optional[str] = None
    discount: Optional[Decimal] = None
    notes: Optional[str] = None
    extras: Optional[Dict[str, Any]] = None
    is_custom_item: bool = False
    is_new: bool = False
    is_modified: bool = False

    @property
    def line_price_inclusive(self) -> Decimal:
        return self.price

    def differs_from(self, other: "OrderItemSnapshot") -> bool:
        """A customer-visible change: quantity, price or notes."""
        return (
            self.quantity != other.quantity
            or self.price != other.price
            or (self.notes or "") != (other.notes or "")
        )


@dataclass(frozen=True)
class OrderSnapshot:
    id: str
    status: str
    order_type: str = OrderType.DINE_IN
    items: Tuple[OrderItemSnapshot, ...] = ()
    total_price: Decimal = Decimal("0")
    currency: str = ""
    table_number: Optional[str] = None
    restaurant_id: Optional[str] = None
    customer_name: Optional[str] = None
    customer_phone: Optional[str] = None
    customer_address: Optional[str] = None
    notes: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def is_active(self) -> bool:
        return self.status not in TERMINAL_STATUSES

    @property
    def is_quick(self) -> bool:
        return self.table_number == app_settings.QUICK_TABLE_NUMBER

    @property
    def is_delivery(self) -> bool:
        return self.order_type == OrderType.DELIVERY

    @property
    def item_ids(self) -> List[str]:
        return [item.id for item in self.items]

    def item(self, item_id: str) -> Optional[OrderItemSnapshot]:
        for item in self.items:
            if item.id == item_id:
                return item
        return None

    def with_status(self, status: str) -> "OrderSnapshot":
        return replace(self, status=status)
