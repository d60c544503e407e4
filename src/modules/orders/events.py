"""Domain events for the Orders bounded context.

Every event is written to the outbox in the transaction that produced it
and published on the in-process bus after commit.  Amounts travel as
strings so payloads stay exact.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Type

from shared.domain.events import DomainEvent


@dataclass(frozen=True)
class OrderEvent(DomainEvent):
    """Base for events that concern the order's customer and vendors."""

    order_code: str = ""
    customer_id: str = ""
    vendor_ids: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class OrderCreated(OrderEvent):
    """Raised when a checkout becomes an order."""

    total: str = "0.00"
    payment_method: str = ""


@dataclass(frozen=True)
class OrderStatusChanged(OrderEvent):
    """Raised when one or more slices move along the fulfilment path."""

    status: str = ""
    order_status: str = ""
    changed_by: str = ""
    role: str = ""


@dataclass(frozen=True)
class CancellationRequested(OrderEvent):
    reason: str = ""


@dataclass(frozen=True)
class CancellationResolved(OrderEvent):
    decision: str = ""
    refund_amount: str = "0.00"
    rejection_reason: str = ""


@dataclass(frozen=True)
class ReturnRequested(OrderEvent):
    return_code: str = ""
    refund_amount: str = "0.00"


@dataclass(frozen=True)
class ReturnResolved(OrderEvent):
    return_code: str = ""
    decision: str = ""
    rejection_reason: str = ""


@dataclass(frozen=True)
class PaymentOutcomeRecorded(OrderEvent):
    kind: str = ""
    outcome: str = ""
    payment_status: str = ""


@dataclass(frozen=True)
class PaymentCaptureRequested(DomainEvent):
    """Side effect: capture the order total through the payment gateway."""

    order_code: str = ""
    amount: str = "0.00"
    payment_method: str = ""


@dataclass(frozen=True)
class RefundRequested(DomainEvent):
    """Side effect: ask the payment gateway to refund ``amount``."""

    order_code: str = ""
    refund_code: str = ""
    amount: str = "0.00"


ORDER_EVENTS: Dict[str, Type[DomainEvent]] = {
    event_class.__name__: event_class
    for event_class in (
        OrderCreated,
        OrderStatusChanged,
        CancellationRequested,
        CancellationResolved,
        ReturnRequested,
        ReturnResolved,
        PaymentOutcomeRecorded,
        PaymentCaptureRequested,
        RefundRequested,
    )
}
