from channels.generic.websocket import AsyncWebsocketConsumer
from asgiref.sync import sync_to_async
import json
import logging

from cart.menu import MenuItem
from cart.sessions import DraftSession
from cart.storage import CurrencyPreferenceStore
from core_backend.config import app_settings
from pricing.currency import active_currencies
from pricing.exceptions import PricingError

from .channel import LocalEventChannel
from .exceptions import OrderSyncError
from .publishers import outbound_group, restaurant_group
from .serializers import OrderSnapshotSerializer, build_snapshot
from .services import OrderSubmissionService, OrderSyncEngine

logger = logging.getLogger(__name__)

DRAFT_ACTIONS = (
    'get_draft',
    'add_selection',
    'remove_line',
    'update_quantity',
    'set_customer',
    'set_notes',
)


class DraftActionError(ValueError):
    """A draft action whose message cannot be applied."""


class OrderSyncConsumer(AsyncWebsocketConsumer):
    """
    WebSocket consumer that hosts one OrderSyncEngine per connected terminal.

    Server events reach the restaurant's group as ``order.event`` messages and
    are dispatched into the engine; the resulting state is pushed to the
    terminal as ``sync_state``. Drafts are edited per table through the
    ``DRAFT_ACTIONS`` and answered with ``draft`` frames. Emissions from the
    terminal (``create_order``) are forwarded to the restaurant's outbound
    group.
    """

    async def connect(self):
        """Handle WebSocket connection"""
        try:
            self.restaurant_id = self.scope['url_route']['kwargs'].get('restaurant_id')

            if not self.restaurant_id:
                logger.error("No restaurant_id provided in WebSocket connection")
                await self.close()
                return

            self.group_name = restaurant_group(self.restaurant_id)
            self.outbound_group_name = outbound_group(self.restaurant_id)
            self.event_channel = LocalEventChannel()
            self.engine = OrderSyncEngine(restaurant_id=self.restaurant_id)
            self.engine.attach(self.event_channel)
            self.submission = None
            self.draft_sessions = {}
            self.currency_store = CurrencyPreferenceStore()

            preferred = await sync_to_async(self.currency_store.load)(self.restaurant_id)
            self.engine.set_display_currency(preferred)

            await self.channel_layer.group_add(self.group_name, self.channel_name)
            await self.accept()
            await self.send_sync_state()

            logger.info(f"Order sync WebSocket connected: restaurant={self.restaurant_id}")

        except Exception as e:
            logger.error(f"Error connecting WebSocket: {e}")
            await self.close()

    async def disconnect(self, close_code):
        """Handle WebSocket disconnection"""
        try:
            if hasattr(self, 'group_name'):
                await self.channel_layer.group_discard(self.group_name, self.channel_name)
            if hasattr(self, 'engine'):
                self.engine.detach()
            if getattr(self, 'submission', None) is not None:
                self.submission.detach()

            logger.info(f"Order sync WebSocket disconnected: restaurant={getattr(self, 'restaurant_id', None)}, "
                        f"code={close_code}")

        except Exception as e:
            logger.error(f"Error disconnecting WebSocket: {e}")

    async def receive(self, text_data):
        """Handle messages from WebSocket"""
        try:
            data = json.loads(text_data)
            action = data.get('action')

            logger.debug(f"Received WebSocket action: {action} for restaurant {self.restaurant_id}")

            if action == 'ping':
                await self.send(text_data=json.dumps({'type': 'pong'}))
            elif action == 'load_orders':
                await self.handle_load_orders(data)
            elif action == 'select_order':
                self.engine.select_order(data.get('order_id'))
                await self.send_sync_state()
            elif action == 'clear_highlights':
                self.engine.clear_highlights(data.get('order_id'))
                await self.send_sync_state()
            elif action == 'clear_counters':
                self.engine.clear_counters()
                await self.send_sync_state()
            elif action == 'set_currency':
                await self.handle_set_currency(data)
            elif action in DRAFT_ACTIONS:
                await self.handle_draft_action(action, data)
            elif action == 'submit_order':
                await self.handle_submit_order(data)
            else:
                await self.send_error(f"Unknown action: {action}")

        except json.JSONDecodeError:
            await self.send_error("Invalid JSON format")
        except (OrderSyncError, PricingError, DraftActionError) as e:
            await self.send_error(str(e))
        except Exception as e:
            logger.error(f"Error processing WebSocket message: {e}")
            await self.send_error(f"Error processing request: {str(e)}")

    async def handle_load_orders(self, data):
        """Replace the engine's orders (and optionally taxes / rates) with a freshly fetched list"""
        serializer = OrderSnapshotSerializer(data=data.get('orders') or [], many=True)
        if not serializer.is_valid():
            await self.send_error("Invalid orders payload", details=serializer.errors)
            return

        taxes = data.get('taxes')
        rates = data.get('rates')
        for name, rows in (('taxes', taxes), ('rates', rates)):
            if rows is not None and not (isinstance(rows, list) and all(isinstance(row, dict) for row in rows)):
                await self.send_error(f"Invalid {name} payload")
                return

        snapshots = [build_snapshot(order) for order in serializer.validated_data]
        self.engine.load_orders(snapshots, taxes=taxes, rates=rates)
        await self.send_sync_state()

    async def handle_set_currency(self, data):
        """Pick the display currency (None goes back to each order's own currency)"""
        currency = data.get('currency') or None
        if currency is not None:
            currency = str(currency).strip().upper()
            allowed = set(active_currencies(self.engine.rates))
            allowed.add(app_settings.BASE_CURRENCY.upper())
            allowed.update(order.currency.upper() for order in self.engine.orders if order.currency)
            if currency not in allowed:
                await self.send_error(f"No active exchange rate for {currency}")
                return

        await sync_to_async(self.currency_store.save)(self.restaurant_id, currency)
        self.engine.set_display_currency(currency)
        await self.send_sync_state()

    # ------------------------------------------------------------------
    # Drafts
    # ------------------------------------------------------------------

    async def get_draft_session(self, table_number):
        """The connection's DraftSession for ``table_number``, loaded on first use"""
        key = str(table_number)
        if key not in self.draft_sessions:
            self.draft_sessions[key] = await sync_to_async(DraftSession)(self.restaurant_id, key)
        return self.draft_sessions[key]

    async def handle_draft_action(self, action, data):
        table_number = data.get('table_number')
        if not table_number:
            await self.send_error("Missing table_number")
            return

        draft_session = await self.get_draft_session(table_number)
        if action != 'get_draft':
            await sync_to_async(self.apply_draft_action)(draft_session, action, data)
        await self.send_draft(draft_session)

    @staticmethod
    def _quantity(data, default=None):
        value = data.get('quantity', default)
        try:
            return int(value)
        except (TypeError, ValueError):
            raise DraftActionError(f"Invalid quantity: {value!r}")

    def apply_draft_action(self, draft_session, action, data):
        """Run one draft mutation; every mutation is persisted by the session"""
        if action == 'add_selection':
            try:
                menu_item = MenuItem.from_payload(data.get('menu_item') or {})
            except (KeyError, ValueError, TypeError, AttributeError) as e:
                raise DraftActionError(f"Invalid menu item: {e}")
            extras = data.get('extras')
            if extras is not None and not isinstance(extras, dict):
                raise DraftActionError("extras must be an object")
            quantity = self._quantity(data, 1)
            if quantity <= 0:
                raise DraftActionError(f"Quantity must be positive, got {quantity}")
            draft_session.add_selection(menu_item, quantity, notes=data.get('notes'), extras=extras)

        elif action == 'remove_line':
            draft_session.remove_line(data.get('line_id'))

        elif action == 'update_quantity':
            draft_session.update_quantity(data.get('line_id'), self._quantity(data))

        elif action == 'set_customer':
            draft_session.set_customer(
                name=data.get('customer_name'),
                phone=data.get('customer_phone'),
                address=data.get('customer_address'),
            )

        elif action == 'set_notes':
            draft_session.set_notes(data.get('notes') or "")

    async def send_draft(self, draft_session):
        await self.send(text_data=json.dumps({
            'type': 'draft',
            'table_number': draft_session.table_or_session,
            'data': {
                'draft': draft_session.draft.to_dict(),
                'total': str(draft_session.total),
                'showSummary': draft_session.show_summary,
            },
        }))

    async def handle_submit_order(self, data):
        """Place the stored draft of a table as an order"""
        table_number = data.get('table_number')
        if not table_number:
            await self.send_error("Missing table_number")
            return

        if self.submission is not None:
            if self.submission.pending is not None:
                await self.send_error("An order is already being placed")
                return
            self.submission.detach()

        draft_session = await self.get_draft_session(table_number)
        self.submission = OrderSubmissionService(draft_session)
        self.submission.attach(self.event_channel)

        client_request_id = await sync_to_async(self.submission.submit)()
        await self.flush_outbox()
        await self.send(text_data=json.dumps({
            'type': 'submission',
            'client_request_id': client_request_id,
            'status': str(self.submission.status),
        }))

    async def order_event(self, event):
        """Group message: an inbound server event for this restaurant"""
        name = event.get('event')
        payload = event.get('payload') or {}

        handled = await sync_to_async(self.event_channel.dispatch)(name, payload)
        if not handled:
            logger.debug(f"No handler for order event {name}")

        await self.flush_outbox()
        await self.send_sync_state()

    async def flush_outbox(self):
        for name, payload in self.event_channel.drain_outbox():
            await self.channel_layer.group_send(self.outbound_group_name, {
                'type': 'order.outbound',
                'event': name,
                'payload': payload,
            })

    async def send_sync_state(self):
        state = self.engine.to_state()
        if self.submission is not None:
            state['submission'] = {
                'status': str(self.submission.status),
                'error': self.submission.last_error,
            }
        await self.send(text_data=json.dumps({'type': 'sync_state', 'data': state}))

    async def send_error(self, message, details=None):
        """Send error message"""
        payload = {'type': 'error', 'message': message}
        if details is not None:
            payload['details'] = details
        await self.send(text_data=json.dumps(payload))
