"""
Publishing order events onto the channel layer.

Whatever receives server events for a restaurant (webhook, bridge process,
management command) hands them to ``OrderEventPublisher``; every terminal
connected for that restaurant gets them as ``order.event`` group messages.
"""

from typing import Any, Dict
import logging

from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer

logger = logging.getLogger(__name__)

INBOUND_EVENTS = (
    "new_order",
    "order_updated",
    "order_status_update",
    "order_created",
    "order_error",
)


def sanitize_group_name(value) -> str:
    """Channel-layer group names allow only ASCII alphanumerics, hyphens, underscores and periods."""
    return ''.join(c if (c.isascii() and c.isalnum()) or c in '-_.' else '_' for c in str(value))


def restaurant_group(restaurant_id) -> str:
    return f"orders_{sanitize_group_name(restaurant_id)}"


def outbound_group(restaurant_id) -> str:
    return f"{restaurant_group(restaurant_id)}_outbound"


class OrderEventPublisher:
    """Centralized publishing of inbound order events"""

    @staticmethod
    def message(event: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        return {"type": "order.event", "event": event, "payload": payload}

    @staticmethod
    def publish(restaurant_id, event: str, payload: Dict[str, Any]) -> bool:
        """
        Broadcast an event to every terminal of ``restaurant_id``.

        Returns:
            False if the event is unknown or the channel layer is unavailable
        """
        if event not in INBOUND_EVENTS:
            logger.warning(f"Refusing to publish unknown order event {event!r}")
            return False

        channel_layer = get_channel_layer()
        if channel_layer is None:
            logger.error("No channel layer configured, order event dropped")
            return False

        group_name = restaurant_group(restaurant_id)
        logger.debug(f"Publishing {event} to group: {group_name}")
        async_to_sync(channel_layer.group_send)(group_name, OrderEventPublisher.message(event, payload))
        return True
