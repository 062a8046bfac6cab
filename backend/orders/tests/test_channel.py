from unittest import mock

from orders.channel import LocalEventChannel


class TestLocalEventChannel:

    def test_dispatch_reaches_subscribers(self):
        channel = LocalEventChannel()
        handler = mock.Mock()
        channel.subscribe("new_order", handler)

        delivered = channel.dispatch("new_order", {"order": {}})

        assert delivered == 1
        handler.assert_called_once_with({"order": {}})

    def test_dispatch_without_subscribers(self):
        assert LocalEventChannel().dispatch("order_updated", {}) == 0

    def test_subscription_dispose_is_idempotent(self):
        channel = LocalEventChannel()
        handler = mock.Mock()
        subscription = channel.subscribe_many({"a": handler, "b": handler})

        subscription.dispose()
        subscription.dispose()

        assert channel.handler_count("a") == 0
        assert channel.handler_count("b") == 0
        assert subscription.active is False

    def test_subscription_as_context_manager(self):
        channel = LocalEventChannel()

        with channel.subscribe("a", mock.Mock()):
            assert channel.handler_count("a") == 1

        assert channel.handler_count("a") == 0

    def test_emit_queues_until_drained(self):
        channel = LocalEventChannel()

        channel.emit("create_order", {"items": []})

        assert channel.drain_outbox() == [("create_order", {"items": []})]
        assert channel.drain_outbox() == []
