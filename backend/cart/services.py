"""
Cart service layer for composing an order on the terminal.

This service handles:
- Adding menu selections (merging same item + same extras into one line)
- Updating quantities and removing lines
- Draft totals for display

Every operation is pure: it takes a draft and returns a new one. Persisting
the result is the caller's job (see ``cart.sessions.DraftSession``).
"""

from copy import deepcopy
from dataclasses import replace
from decimal import Decimal
from typing import Any, Mapping, Optional
import json
import logging

from .drafts import DraftLine, OrderDraft
from .menu import MenuItem

logger = logging.getLogger(__name__)


def extras_fingerprint(extras: Optional[Mapping[str, Any]]) -> str:
    """
    Canonical form of an extras selection.

    Key order does not matter and an empty selection equals no selection, so
    ``{"size": ["L"], "sauce": ["bbq"]}`` and ``{"sauce": ["bbq"], "size": ["L"]}``
    fingerprint the same.
    """
    if not extras:
        return "{}"
    return json.dumps(extras, sort_keys=True, separators=(",", ":"), default=str)


class CartService:
    """Service for draft cart operations."""

    @staticmethod
    def add_selection(
        draft: OrderDraft,
        menu_item: MenuItem,
        quantity: int = 1,
        notes: Optional[str] = None,
        extras: Optional[Mapping[str, Any]] = None,
    ) -> OrderDraft:
        """
        Add a menu selection to the draft.

        A line with the same menu item and the same extras absorbs the
        quantity (and takes the new notes, if any). Any other selection of the
        same item becomes its own line, so differently configured items never
        merge.

        Args:
            draft: Current draft
            menu_item: Menu row being added
            quantity: Quantity to add (default: 1)
            notes: Line notes; ``None`` keeps the existing line's notes
            extras: ``{group: [option_id, ...]}`` selection

        Returns:
            New OrderDraft

        Raises:
            ValueError: If quantity is not positive
        """
        if quantity <= 0:
            raise ValueError(f"Quantity must be positive, got {quantity}")

        fingerprint = extras_fingerprint(extras)
        items = list(draft.items)

        for index, line in enumerate(items):
            if line.menu_item_id == menu_item.id and extras_fingerprint(line.extras) == fingerprint:
                items[index] = replace(line, quantity=line.quantity + quantity, notes=notes or line.notes)
                logger.debug(f"[CartService] Merged {quantity} x {menu_item.id} into line {line.line_id}")
                return draft.with_items(items)

        items.append(DraftLine(
            menu_item_id=menu_item.id,
            name=menu_item.name,
            name_ar=menu_item.name_ar,
            unit_price=menu_item.unit_price(extras),
            currency=menu_item.currency,
            quantity=quantity,
            notes=notes,
            extras=deepcopy(dict(extras)) if extras else None,
        ))
        logger.debug(f"[CartService] Added {quantity} x {menu_item.id} as a new line")
        return draft.with_items(items)

    @staticmethod
    def remove_line(draft: OrderDraft, line_id: str) -> OrderDraft:
        items = [line for line in draft.items if line.line_id != line_id]
        if len(items) == len(draft.items):
            logger.warning(f"[CartService] Line {line_id} not in draft, nothing removed")
            return draft
        return draft.with_items(items)

    @staticmethod
    def update_quantity(draft: OrderDraft, line_id: str, quantity: int) -> OrderDraft:
        """Set a line's quantity; zero or less removes the line."""
        if quantity <= 0:
            return CartService.remove_line(draft, line_id)

        items = []
        found = False
        for line in draft.items:
            if line.line_id == line_id:
                found = True
                line = replace(line, quantity=quantity)
            items.append(line)

        if not found:
            logger.warning(f"[CartService] Line {line_id} not in draft, quantity unchanged")
            return draft
        return draft.with_items(items)

    @staticmethod
    def calculate_total(draft: OrderDraft) -> Decimal:
        """
        Display total of the draft.

        Only an estimate for the customer: once placed, the server's total is
        authoritative.
        """
        return sum((line.line_total for line in draft.items), Decimal("0"))
