"""
Optimistic order placement.

Placing an order emits ``create_order`` over the channel and waits for the
server's acknowledgment. The draft stays in place while the submission is in
flight; a backup taken just before the emit is what gets restored if the
server rejects the order, so the user never loses an order in progress.
"""

from copy import deepcopy
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, Optional
import logging
import uuid

from django.db import models
from django.utils import timezone
from django.utils.translation import gettext_lazy as _

from cart.drafts import OrderDraft
from cart.sessions import DraftSession
from core_backend.config import app_settings

from ..channel import ChannelBoundService
from ..exceptions import OrderValidationError, SubmissionStateError
from ..serializers import CreateOrderSerializer

logger = logging.getLogger(__name__)

DEFAULT_ERROR_MESSAGE = "The order could not be placed. Please try again."


class SubmissionStatus(models.TextChoices):
    IDLE = "IDLE", _("Idle")
    PENDING = "PENDING", _("Pending")
    STALLED = "STALLED", _("Stalled")  # no acknowledgment within the timeout
    SUCCEEDED = "SUCCEEDED", _("Succeeded")
    FAILED = "FAILED", _("Failed")


@dataclass(frozen=True)
class PendingSubmission:
    client_request_id: str
    payload: Dict[str, Any]
    backup: OrderDraft
    submitted_at: datetime


class OrderSubmissionService(ChannelBoundService):
    """
    Places the draft of a DraftSession as an order.

    Acknowledgments (``order_created`` / ``order_error``) are matched by
    ``clientRequestId``. An acknowledgment without one resolves the single
    submission in flight.
    """

    def __init__(self, draft_session: DraftSession, clock: Optional[Callable] = None):
        super().__init__()
        self.draft_session = draft_session
        self.clock = clock or timezone.now
        self.pending: Optional[PendingSubmission] = None
        self.last_status = SubmissionStatus.IDLE
        self.last_error: Optional[str] = None
        self.last_order: Optional[Dict[str, Any]] = None

    def event_handlers(self):
        return {
            "order_created": self.handle_order_created,
            "order_error": self.handle_order_error,
        }

    @property
    def status(self) -> str:
        if self.pending is None:
            return self.last_status
        timeout = timedelta(seconds=app_settings.SUBMISSION_TIMEOUT_SECONDS)
        if self.clock() - self.pending.submitted_at > timeout:
            return SubmissionStatus.STALLED
        return SubmissionStatus.PENDING

    def build_payload(self) -> Dict[str, Any]:
        """
        Validate the current draft and build the ``create_order`` payload.

        Raises:
            OrderValidationError: If the draft cannot be placed as it is
        """
        draft = self.draft_session.draft
        items = []
        for line in draft.items:
            item = line.to_dict()
            item.pop("lineId")
            items.append(item)

        serializer = CreateOrderSerializer(data={
            "restaurant_id": self.draft_session.restaurant_id,
            "table_number": self.draft_session.table_or_session,
            "items": items,
            "customer_name": draft.customer_name,
            "customer_phone": draft.customer_phone,
            "customer_address": draft.customer_address,
            "notes": draft.notes,
        })
        if not serializer.is_valid():
            raise OrderValidationError(serializer.errors)
        return serializer.to_payload()

    def submit(self) -> str:
        """
        Emit ``create_order`` for the current draft.

        Returns:
            The clientRequestId the acknowledgment will carry

        Raises:
            SubmissionStateError: If not attached or a submission is in flight
            OrderValidationError: If the draft fails validation
        """
        if not self.is_attached:
            raise SubmissionStateError("Cannot submit an order without an attached channel")
        if self.pending is not None:
            raise SubmissionStateError(
                f"Submission {self.pending.client_request_id} is still awaiting acknowledgment"
            )

        payload = self.build_payload()
        client_request_id = uuid.uuid4().hex
        payload["clientRequestId"] = client_request_id

        self.pending = PendingSubmission(
            client_request_id=client_request_id,
            payload=payload,
            backup=deepcopy(self.draft_session.draft),
            submitted_at=self.clock(),
        )
        self.last_error = None
        self.channel.emit("create_order", payload)
        logger.info(
            f"[OrderSubmission] Submitted order {client_request_id} for restaurant "
            f"{self.draft_session.restaurant_id} ({len(payload['items'])} items)"
        )
        return client_request_id

    def _claim(self, event: str, payload: Dict[str, Any]) -> Optional[PendingSubmission]:
        if self.pending is None:
            logger.debug(f"[OrderSubmission] {event} with nothing in flight, ignored")
            return None
        request_id = payload.get("clientRequestId") if isinstance(payload, dict) else None
        if request_id and request_id != self.pending.client_request_id:
            logger.debug(f"[OrderSubmission] {event} for {request_id} is not ours, ignored")
            return None
        pending, self.pending = self.pending, None
        return pending

    def handle_order_created(self, payload: Dict[str, Any]) -> None:
        pending = self._claim("order_created", payload)
        if pending is None:
            return

        self.draft_session.clear()
        self.last_status = SubmissionStatus.SUCCEEDED
        self.last_error = None
        self.last_order = payload.get("order") if isinstance(payload, dict) else None
        logger.info(f"[OrderSubmission] Order {pending.client_request_id} accepted, draft cleared")

    def handle_order_error(self, payload: Dict[str, Any]) -> None:
        pending = self._claim("order_error", payload)
        if pending is None:
            return

        self.draft_session.restore(pending.backup)
        self.last_status = SubmissionStatus.FAILED
        self.last_error = (payload.get("message") if isinstance(payload, dict) else None) or DEFAULT_ERROR_MESSAGE
        logger.warning(
            f"[OrderSubmission] Order {pending.client_request_id} rejected: {self.last_error}; draft restored"
        )

    def abandon(self) -> Optional[OrderDraft]:
        """
        Give up waiting on the submission in flight and restore its draft.

        A late acknowledgment for it is ignored afterwards.
        """
        if self.pending is None:
            return None
        pending, self.pending = self.pending, None
        self.last_status = SubmissionStatus.IDLE
        logger.warning(f"[OrderSubmission] Abandoned submission {pending.client_request_id}, draft restored")
        return self.draft_session.restore(pending.backup)
