"""
Order synchronization for one terminal session.

The engine keeps the active orders of a restaurant in memory and folds the
server's real-time events into them. The server is the source of truth:
every event carries a full order snapshot and the latest snapshot always
wins, so duplicated and out-of-order deliveries are harmless.

Alongside the snapshots the engine tracks which orders and items should be
highlighted as new or modified. Highlights are presentation state only.
They are derived from timestamps whenever the order list is (re)loaded,
never from timers.

Usage:
    engine = OrderSyncEngine(restaurant_id="rest-1")
    with engine.session(channel):
        engine.load_orders(snapshots)
        ...
"""

from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any, Callable, Dict, Iterable, List, Optional, Set
import logging

from django.utils import timezone

from core_backend.config import app_settings
from pricing.currency import active_currencies
from pricing.summary import build_price_summary

from ..channel import ChannelBoundService
from ..exceptions import InvalidEventPayload
from ..serializers import OrderEventSerializer, snapshot_to_payload
from ..snapshots import OrderSnapshot, OrderStatus, UpdatedBy, is_allowed_transition

logger = logging.getLogger(__name__)


@dataclass
class VisualDiffState:
    """Which orders and items to highlight. Safe to lose."""

    new_order_ids: Set[str] = field(default_factory=set)
    modified_order_ids: Set[str] = field(default_factory=set)
    new_item_ids: Set[str] = field(default_factory=set)
    modified_item_ids: Set[str] = field(default_factory=set)

    def mark_new(self, order: OrderSnapshot) -> None:
        self.new_order_ids.add(order.id)
        self.new_item_ids.update(order.item_ids)

    def mark_modified(self, order_id: str, new_item_ids: Iterable[str] = (),
                      modified_item_ids: Iterable[str] = ()) -> None:
        self.modified_order_ids.add(order_id)
        self.new_item_ids.update(new_item_ids)
        self.modified_item_ids.update(modified_item_ids)

    def forget(self, order: OrderSnapshot) -> None:
        self.new_order_ids.discard(order.id)
        self.modified_order_ids.discard(order.id)
        self.new_item_ids.difference_update(order.item_ids)
        self.modified_item_ids.difference_update(order.item_ids)

    def clear(self) -> None:
        self.new_order_ids.clear()
        self.modified_order_ids.clear()
        self.new_item_ids.clear()
        self.modified_item_ids.clear()

    def to_dict(self) -> dict:
        return {
            "newOrderIds": sorted(self.new_order_ids),
            "modifiedOrderIds": sorted(self.modified_order_ids),
            "newItemIds": sorted(self.new_item_ids),
            "modifiedItemIds": sorted(self.modified_item_ids),
        }


class OrderSyncEngine(ChannelBoundService):
    """
    Active-order state of one terminal, kept in step with the server.

    Inbound events (``new_order``, ``order_updated``, ``order_status_update``)
    arrive through the attached channel as wire payloads. The typed methods
    of the same names take snapshots and can be called directly.
    """

    def __init__(self, restaurant_id: Optional[str] = None, clock: Optional[Callable] = None):
        super().__init__()
        self.restaurant_id = restaurant_id
        self.clock = clock or timezone.now
        self.diff = VisualDiffState()
        self.new_orders_count = 0
        self.updated_orders_count = 0
        self._orders: Dict[str, OrderSnapshot] = {}
        self._selected: Optional[OrderSnapshot] = None
        # Restaurant taxes and exchange rates (objects or API rows) for price blocks
        self.taxes: List[Any] = []
        self.rates: List[Any] = []
        self.display_currency: Optional[str] = None

    # ------------------------------------------------------------------
    # Channel wiring
    # ------------------------------------------------------------------

    def event_handlers(self):
        return {
            "new_order": self.handle_new_order,
            "order_updated": self.handle_order_updated,
            "order_status_update": self.handle_order_status_update,
        }

    def _parse(self, event: str, payload: Any):
        serializer = OrderEventSerializer(data=payload)
        if not serializer.is_valid():
            raise InvalidEventPayload(event, serializer.errors)
        return serializer.to_snapshot(), serializer.validated_data.get("updated_by")

    def handle_new_order(self, payload: Dict[str, Any]) -> None:
        try:
            order, _ = self._parse("new_order", payload)
        except InvalidEventPayload as e:
            logger.warning(f"[OrderSyncEngine] Ignoring event: {e}")
            return
        self.new_order(order)

    def handle_order_updated(self, payload: Dict[str, Any]) -> None:
        self._handle_update("order_updated", payload)

    def handle_order_status_update(self, payload: Dict[str, Any]) -> None:
        self._handle_update("order_status_update", payload)

    def _handle_update(self, event: str, payload: Dict[str, Any]) -> None:
        # A cancellation removes the order even if the rest of the snapshot
        # would not validate.
        raw_order = payload.get("order") if isinstance(payload, dict) else None
        if isinstance(raw_order, dict) and raw_order.get("status") == OrderStatus.CANCELLED and raw_order.get("id"):
            self.remove_order(str(raw_order["id"]), reason="cancelled")
            return

        try:
            order, updated_by = self._parse(event, payload)
        except InvalidEventPayload as e:
            logger.warning(f"[OrderSyncEngine] Ignoring event: {e}")
            return
        self.order_updated(order, updated_by)

    # ------------------------------------------------------------------
    # Snapshot operations
    # ------------------------------------------------------------------

    @property
    def orders(self) -> List[OrderSnapshot]:
        """Active orders, most recently arrived first."""
        return list(self._orders.values())

    def get_order(self, order_id: str) -> Optional[OrderSnapshot]:
        return self._orders.get(order_id)

    def new_order(self, order: OrderSnapshot) -> bool:
        """
        Insert a newly placed order unless it is already known.

        Returns:
            True if the order was inserted
        """
        if order.id in self._orders:
            logger.debug(f"[OrderSyncEngine] Duplicate new_order {order.id} ignored")
            return False
        if not order.is_active:
            logger.debug(f"[OrderSyncEngine] new_order {order.id} already {order.status}, not tracked")
            return False

        self._orders = {order.id: order, **self._orders}
        self.diff.mark_new(order)
        self.new_orders_count += 1
        logger.info(f"[OrderSyncEngine] New order {order.id} ({len(order.items)} items)")
        return True

    def order_updated(self, order: OrderSnapshot, updated_by: Optional[str] = None) -> None:
        """
        Fold an updated snapshot into the active set.

        Customer updates are counted, and diffed against the previous snapshot
        for highlighting unless the order just became READY. Kitchen and
        restaurant updates replace the snapshot silently.
        """
        if order.status == OrderStatus.CANCELLED:
            self.remove_order(order.id, reason="cancelled")
            return

        previous = self._orders.get(order.id)
        if previous is not None and not is_allowed_transition(previous.status, order.status, order.order_type):
            logger.warning(
                f"[OrderSyncEngine] Unexpected transition {previous.status} -> {order.status} "
                f"for order {order.id}; keeping latest snapshot"
            )

        if order.status == OrderStatus.COMPLETED:
            self.remove_order(order.id, reason="completed")
            return

        if updated_by == UpdatedBy.CUSTOMER and not order.is_quick:
            self.updated_orders_count += 1
            if order.status != OrderStatus.READY:
                self._highlight_customer_changes(previous, order)

        self._store(order)

    # Both events carry the same contract.
    order_status_update = order_updated

    def _highlight_customer_changes(self, previous: Optional[OrderSnapshot], order: OrderSnapshot) -> None:
        if previous is None:
            self.diff.mark_modified(order.id)
            return

        new_items = [item.id for item in order.items if previous.item(item.id) is None]
        modified_items = [
            item.id for item in order.items
            if previous.item(item.id) is not None and item.differs_from(previous.item(item.id))
        ]
        self.diff.mark_modified(order.id, new_items, modified_items)
        logger.info(
            f"[OrderSyncEngine] Customer updated order {order.id}: "
            f"{len(new_items)} new, {len(modified_items)} modified items"
        )

    def _store(self, order: OrderSnapshot) -> None:
        if order.id in self._orders:
            self._orders[order.id] = order
        else:
            logger.info(f"[OrderSyncEngine] Update for unknown order {order.id}, adding it")
            self._orders = {order.id: order, **self._orders}

        if self._selected is not None and self._selected.id == order.id:
            self._selected = order

    def remove_order(self, order_id: str, reason: str = "") -> Optional[OrderSnapshot]:
        removed = self._orders.pop(order_id, None)
        if removed is None:
            logger.debug(f"[OrderSyncEngine] Order {order_id} {reason} but not tracked")
            return None

        self.diff.forget(removed)
        if self._selected is not None and self._selected.id == order_id:
            self._selected = None
        logger.info(f"[OrderSyncEngine] Order {order_id} {reason}, removed from active set")
        return removed

    def apply_result(self, order: OrderSnapshot) -> None:
        """
        Take in the order returned by a request made from this terminal
        (items added, status changed). Own changes are never highlighted.
        """
        self.order_updated(order, UpdatedBy.RESTAURANT)

    def load_orders(self, orders: Iterable[OrderSnapshot], taxes: Optional[Iterable[Any]] = None,
                    rates: Optional[Iterable[Any]] = None) -> None:
        """
        Replace the active set with a freshly fetched list.

        ``taxes`` and ``rates`` fetched alongside the orders replace the
        pricing context; None keeps the current one.

        Highlights are recomputed from timestamps: an order created within the
        highlight window is new (with all its items); an order updated within
        the window, but not within the grace period, is modified.
        """
        self.set_pricing(taxes, rates)
        now = self.clock()
        window = timedelta(seconds=app_settings.HIGHLIGHT_WINDOW_SECONDS)
        grace = timedelta(seconds=app_settings.MODIFIED_GRACE_SECONDS)

        self._orders = {}
        self.diff.clear()
        for order in orders:
            if not order.is_active:
                continue
            self._orders[order.id] = order

            if order.created_at is not None and now - order.created_at < window:
                self.diff.mark_new(order)
            if order.updated_at is not None and grace < now - order.updated_at < window:
                self.diff.mark_modified(order.id)

        if self._selected is not None:
            self._selected = self._orders.get(self._selected.id)

        logger.info(
            f"[OrderSyncEngine] Loaded {len(self._orders)} active orders "
            f"({len(self.diff.new_order_ids)} new, {len(self.diff.modified_order_ids)} modified)"
        )

    # ------------------------------------------------------------------
    # View state
    # ------------------------------------------------------------------

    @property
    def selected_order(self) -> Optional[OrderSnapshot]:
        return self._selected

    def select_order(self, order_id: Optional[str]) -> Optional[OrderSnapshot]:
        self._selected = self._orders.get(order_id) if order_id else None
        return self._selected

    def clear_highlights(self, order_id: Optional[str] = None) -> None:
        """Drop highlights of one order, or of everything."""
        if order_id is None:
            self.diff.clear()
            return
        order = self._orders.get(order_id)
        if order is not None:
            self.diff.forget(order)

    def clear_counters(self) -> None:
        self.new_orders_count = 0
        self.updated_orders_count = 0

    def set_pricing(self, taxes: Optional[Iterable[Any]] = None, rates: Optional[Iterable[Any]] = None) -> None:
        if taxes is not None:
            self.taxes = list(taxes)
        if rates is not None:
            self.rates = list(rates)

    def set_display_currency(self, currency: Optional[str]) -> Optional[str]:
        """Show prices in ``currency``; None shows each order in its own currency."""
        self.display_currency = currency.strip().upper() if currency and currency.strip() else None
        return self.display_currency

    def price_summary(self, order: OrderSnapshot):
        return build_price_summary(order, self.taxes, self.rates, self.display_currency)

    def _order_state(self, order: OrderSnapshot) -> dict:
        data = snapshot_to_payload(order)
        data["price"] = self.price_summary(order).to_dict()
        return data

    def to_state(self) -> dict:
        return {
            "restaurantId": self.restaurant_id,
            "orders": [self._order_state(order) for order in self._orders.values()],
            "displayCurrency": self.display_currency,
            "currencies": active_currencies(self.rates),
            "highlights": self.diff.to_dict(),
            "selectedOrderId": self._selected.id if self._selected else None,
            "newOrdersCount": self.new_orders_count,
            "updatedOrdersCount": self.updated_orders_count,
        }
