"""
The real-time event channel as an explicit capability.

The engine never reaches for a global socket. It is handed an ``EventChannel``
and subscribes through it; every subscription is a disposable handle that
must be released when the session ends.
"""

from collections import defaultdict
from contextlib import contextmanager
from typing import Any, Callable, Dict, List, Tuple
import logging

from .exceptions import ChannelBindingError

logger = logging.getLogger(__name__)

Handler = Callable[[Dict[str, Any]], None]


class Subscription:
    """Handle for a set of handlers; ``dispose()`` removes them exactly once."""

    def __init__(self, channel: "EventChannel", entries: List[Tuple[str, Handler]]):
        self._channel = channel
        self._entries = list(entries)
        self.active = True

    def dispose(self) -> None:
        if not self.active:
            return
        for event, handler in self._entries:
            self._channel.unsubscribe(event, handler)
        self.active = False

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.dispose()
        return False


class EventChannel:
    """
    Interface of the event channel.

    ``subscribe`` registers a handler for an inbound event name; ``emit``
    sends an outbound event. Implementations decide how events travel.
    """

    def subscribe(self, event: str, handler: Handler) -> Subscription:
        raise NotImplementedError

    def subscribe_many(self, handlers: Dict[str, Handler]) -> Subscription:
        entries = []
        for event, handler in handlers.items():
            self.subscribe(event, handler)
            entries.append((event, handler))
        return Subscription(self, entries)

    def unsubscribe(self, event: str, handler: Handler) -> None:
        raise NotImplementedError

    def emit(self, event: str, payload: Dict[str, Any]) -> None:
        raise NotImplementedError


class LocalEventChannel(EventChannel):
    """
    In-process channel.

    Inbound events are delivered with ``dispatch``. Outbound emissions are
    queued in ``outbox`` until the transport drains them, which keeps every
    engine call synchronous.
    """

    def __init__(self):
        self._handlers: Dict[str, List[Handler]] = defaultdict(list)
        self.outbox: List[Tuple[str, Dict[str, Any]]] = []

    def subscribe(self, event: str, handler: Handler) -> Subscription:
        self._handlers[event].append(handler)
        return Subscription(self, [(event, handler)])

    def unsubscribe(self, event: str, handler: Handler) -> None:
        handlers = self._handlers.get(event, [])
        if handler in handlers:
            handlers.remove(handler)

    def handler_count(self, event: str) -> int:
        return len(self._handlers.get(event, []))

    def dispatch(self, event: str, payload: Dict[str, Any]) -> int:
        """Deliver an inbound event; returns how many handlers ran."""
        handlers = list(self._handlers.get(event, []))
        if not handlers:
            logger.debug(f"[LocalEventChannel] No handler for {event}")
        for handler in handlers:
            handler(payload)
        return len(handlers)

    def emit(self, event: str, payload: Dict[str, Any]) -> None:
        self.outbox.append((event, payload))

    def drain_outbox(self) -> List[Tuple[str, Dict[str, Any]]]:
        pending, self.outbox = self.outbox, []
        return pending


class ChannelBoundService:
    """
    Base for services that listen on an EventChannel.

    A service holds at most one subscription set at a time. ``attach`` while
    already bound raises ``ChannelBindingError``, so handlers are never
    registered twice; ``session`` is the scoped form and always releases.
    """

    def __init__(self):
        self.channel = None
        self._subscription = None

    def event_handlers(self) -> Dict[str, Handler]:
        raise NotImplementedError

    @property
    def is_attached(self) -> bool:
        return self._subscription is not None and self._subscription.active

    def attach(self, channel: EventChannel) -> Subscription:
        if self.is_attached:
            raise ChannelBindingError(f"{type(self).__name__} is already attached to a channel")
        self.channel = channel
        self._subscription = channel.subscribe_many(self.event_handlers())
        logger.debug(f"[{type(self).__name__}] Attached to {type(channel).__name__}")
        return self._subscription

    def detach(self) -> None:
        if self._subscription is not None:
            self._subscription.dispose()
        self._subscription = None
        self.channel = None

    @contextmanager
    def session(self, channel: EventChannel):
        self.attach(channel)
        try:
            yield self
        finally:
            self.detach()
