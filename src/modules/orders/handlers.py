"""Event handlers for Orders domain events.

These run after commit, out of the outbox.  Each event class has exactly
one handler, so retrying a failed outbox row repeats only that side
effect.  A handler signals failure by raising; the relay logs it and
schedules a retry.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any, Dict

import structlog

from modules.orders.collaborators import get_notifier, get_payment_gateway
from modules.orders.constants import ActorRole
from modules.orders.events import (
    ORDER_EVENTS,
    OrderEvent,
    PaymentCaptureRequested,
    RefundRequested,
)
from modules.orders.exceptions import ExternalSideEffectFailed
from shared.domain.bus import IEventHandler
from shared.infrastructure.bus import event_bus

logger = structlog.get_logger(__name__)


class NotifyPartiesHandler(IEventHandler[OrderEvent]):
    """Tells the customer and every vendor of the order what happened.

    Each successful notification leaves a ``PartyNotification`` receipt,
    so a retry after a partial failure only reaches the recipients that
    were missed.
    """

    def handle(self, event: OrderEvent) -> None:
        from modules.orders.models import PartyNotification

        notifier = get_notifier()
        payload = event.to_payload()
        notified = set(
            PartyNotification.objects.filter(event_id=event.event_id).values_list(
                "recipient_id", "role"
            )
        )
        recipients = [(event.customer_id, ActorRole.CUSTOMER)] + [
            (vendor_id, ActorRole.VENDOR) for vendor_id in event.vendor_ids
        ]

        sent = 0
        for recipient_id, role in recipients:
            if (recipient_id, role) in notified:
                continue
            notifier.notify(recipient_id, role, event.event_name, payload)
            PartyNotification.objects.create(
                event_id=event.event_id,
                event_name=event.event_name,
                recipient_id=recipient_id,
                role=role,
            )
            sent += 1

        logger.info(
            "order.parties_notified",
            order_id=event.aggregate_id,
            notification_event=event.event_name,
            recipients=sent,
            skipped=len(recipients) - sent,
        )


class CapturePaymentHandler(IEventHandler[PaymentCaptureRequested]):
    def handle(self, event: PaymentCaptureRequested) -> None:
        outcome = get_payment_gateway().capture_payment(
            event.aggregate_id, Decimal(event.amount)
        )
        if not outcome.accepted:
            raise ExternalSideEffectFailed(
                f"Capture for {event.order_code} refused: {outcome.message}"
            )
        logger.info(
            "order.capture_initiated",
            order_id=event.aggregate_id,
            reference=outcome.reference,
        )


class InitiateRefundHandler(IEventHandler[RefundRequested]):
    def handle(self, event: RefundRequested) -> None:
        from modules.orders.models import RefundTransaction

        outcome = get_payment_gateway().initiate_refund(
            event.refund_code, Decimal(event.amount)
        )
        if not outcome.accepted:
            raise ExternalSideEffectFailed(
                f"Refund {event.refund_code} refused: {outcome.message}"
            )
        RefundTransaction.objects.filter(refund_code=event.refund_code).update(
            external_transaction_id=outcome.reference
        )
        logger.info(
            "order.refund_initiated",
            order_id=event.aggregate_id,
            refund_code=event.refund_code,
            reference=outcome.reference,
        )


notify_parties_handler = NotifyPartiesHandler()
capture_payment_handler = CapturePaymentHandler()
initiate_refund_handler = InitiateRefundHandler()


def publish_outbox_payload(payload: Dict[str, Any]) -> None:
    """Outbox handler: rebuild the stored event and publish it on the bus."""
    event_class = ORDER_EVENTS[payload["event_name"]]
    event_bus.publish(event_class.from_payload(payload))
