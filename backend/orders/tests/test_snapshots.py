import pytest

from orders.snapshots import OrderStatus, OrderType, is_allowed_transition
from orders.tests.factories import snapshot


class TestTransitions:

    @pytest.mark.parametrize("previous,new", [
        (OrderStatus.PENDING, OrderStatus.PREPARING),
        (OrderStatus.PREPARING, OrderStatus.READY),
        (OrderStatus.READY, OrderStatus.COMPLETED),
        (OrderStatus.PENDING, OrderStatus.CANCELLED),
        (OrderStatus.READY, OrderStatus.READY),
    ])
    def test_dine_in_lifecycle(self, previous, new):
        assert is_allowed_transition(previous, new, OrderType.DINE_IN)

    def test_delivery_goes_through_delivered(self):
        assert is_allowed_transition(OrderStatus.READY, OrderStatus.DELIVERED, OrderType.DELIVERY)
        assert is_allowed_transition(OrderStatus.DELIVERED, OrderStatus.COMPLETED, OrderType.DELIVERY)
        assert not is_allowed_transition(OrderStatus.READY, OrderStatus.COMPLETED, OrderType.DELIVERY)

    def test_dine_in_is_never_delivered(self):
        assert not is_allowed_transition(OrderStatus.READY, OrderStatus.DELIVERED, OrderType.DINE_IN)

    @pytest.mark.parametrize("terminal", [OrderStatus.COMPLETED, OrderStatus.CANCELLED])
    def test_terminal_states_are_final(self, terminal):
        assert not is_allowed_transition(terminal, OrderStatus.PENDING)

    def test_going_backwards_is_not_allowed(self):
        assert not is_allowed_transition(OrderStatus.READY, OrderStatus.PREPARING)


class TestOrderSnapshot:

    def test_active_and_quick_flags(self):
        assert snapshot(status="READY").is_active
        assert not snapshot(status="COMPLETED").is_active
        assert snapshot(tableNumber="QUICK").is_quick
        assert not snapshot(tableNumber="5").is_quick

    def test_item_lookup(self):
        order = snapshot(items=[{"id": "a", "quantity": 1, "price": "1"}])

        assert order.item("a").quantity == 1
        assert order.item("b") is None

    def test_item_change_detection(self):
        order = snapshot(items=[{"id": "a", "quantity": 1, "price": "1", "notes": None}])
        same = snapshot(items=[{"id": "a", "quantity": 1, "price": "1.00", "notes": ""}])
        changed = snapshot(items=[{"id": "a", "quantity": 1, "price": "1", "notes": "extra sauce"}])

        assert not same.item("a").differs_from(order.item("a"))
        assert changed.item("a").differs_from(order.item("a"))

    def test_with_status(self):
        assert snapshot().with_status(OrderStatus.READY).status == OrderStatus.READY
