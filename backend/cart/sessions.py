"""
The current draft of one terminal session, persisted on every change.
"""

from decimal import Decimal
from typing import Any, Mapping, Optional
import logging

from .drafts import EMPTY_DRAFT, OrderDraft
from .menu import MenuItem
from .services import CartService
from .storage import DraftStore

logger = logging.getLogger(__name__)


class DraftSession:
    """
    Holds the draft for ``(restaurant_id, table_or_session)``.

    The stored draft is loaded once on creation; afterwards every mutation
    writes through to the DraftStore. ``show_summary`` follows the draft: it
    turns on when an item is added and off when the draft becomes empty.
    """

    def __init__(self, restaurant_id, table_or_session, store: Optional[DraftStore] = None):
        self.restaurant_id = restaurant_id
        self.table_or_session = table_or_session
        self.store = store or DraftStore()
        self._draft = self.store.load(restaurant_id, table_or_session)
        self.show_summary = not self._draft.is_empty

    @property
    def draft(self) -> OrderDraft:
        return self._draft

    @property
    def total(self) -> Decimal:
        return CartService.calculate_total(self._draft)

    def _commit(self, draft: OrderDraft) -> OrderDraft:
        self._draft = draft
        if draft.is_empty:
            self.show_summary = False
        self.store.save(self.restaurant_id, self.table_or_session, draft)
        return draft

    def add_selection(self, menu_item: MenuItem, quantity: int = 1, notes: Optional[str] = None,
                      extras: Optional[Mapping[str, Any]] = None) -> OrderDraft:
        draft = self._commit(CartService.add_selection(self._draft, menu_item, quantity, notes, extras))
        self.show_summary = True
        return draft

    def remove_line(self, line_id: str) -> OrderDraft:
        return self._commit(CartService.remove_line(self._draft, line_id))

    def update_quantity(self, line_id: str, quantity: int) -> OrderDraft:
        return self._commit(CartService.update_quantity(self._draft, line_id, quantity))

    def set_customer(self, name=None, phone=None, address=None) -> OrderDraft:
        return self._commit(self._draft.with_customer(name=name, phone=phone, address=address))

    def set_notes(self, notes: str) -> OrderDraft:
        return self._commit(self._draft.with_notes(notes))

    def restore(self, draft: OrderDraft) -> OrderDraft:
        """Put a backed-up draft back, in memory and in the store."""
        logger.info(f"[DraftSession] Restoring draft for {self.restaurant_id}/{self.table_or_session} "
                    f"({len(draft.items)} lines)")
        self.show_summary = not draft.is_empty
        return self._commit(draft)

    def clear(self) -> None:
        self._draft = EMPTY_DRAFT
        self.show_summary = False
        self.store.clear(self.restaurant_id, self.table_or_session)
