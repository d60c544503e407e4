"""Cancellation workflow: ``none -> pending -> approved | rejected``.

Operates on a loaded, in-memory ``Order``; the caller persists the result.
Every check runs before the first mutation, so a raised error leaves the
aggregate untouched.

Scope of a request is one slice (``vendor_id``) or every slice that is
still in progress.  The pre-request status of each affected slice is
stored on the slice so a rejection can restore it exactly.
"""

from __future__ import annotations

from decimal import Decimal
from typing import List, Optional

import structlog
from django.utils import timezone

from modules.orders.actors import Actor
from modules.orders.calculator import ZERO
from modules.orders.constants import CancellationStatus, OrderStatus
from modules.orders.exceptions import (
    DuplicateRequest,
    Forbidden,
    InvalidRequest,
    InvalidTransition,
    NotFound,
    RequestAlreadyResolved,
)
from modules.orders.models import Order, VendorSlice
from modules.orders.state_machine import ensure_transition

logger = structlog.get_logger(__name__)


def _scope(order: Order, actor: Actor, vendor_id: Optional[str]) -> List[VendorSlice]:
    if actor.is_vendor:
        if vendor_id is not None and str(vendor_id) != actor.id:
            raise Forbidden("Vendors may only cancel their own slice.")
        vendor_id = actor.id

    if vendor_id is not None:
        vendor_slice = order.slice_for(vendor_id)
        if vendor_slice is None:
            raise NotFound(f"Order {order.order_code} has no slice for vendor {vendor_id}.")
        return [vendor_slice]

    slices = [s for s in order.vendor_slices if not s.is_terminal]
    if not slices:
        raise InvalidTransition(
            f"Order {order.order_code} has no slice left to cancel.",
            current=order.status,
            target=OrderStatus.CANCELLATION_REQUESTED,
        )
    return slices


def affected_slices(order: Order) -> List[VendorSlice]:
    return [
        s for s in order.vendor_slices if s.status == OrderStatus.CANCELLATION_REQUESTED
    ]


def _ensure_pending(order: Order) -> None:
    if order.cancellation_status is None:
        raise NotFound(f"Order {order.order_code} has no cancellation request.")
    if order.cancellation_status != CancellationStatus.PENDING:
        raise RequestAlreadyResolved(
            f"Cancellation of {order.order_code} was already "
            f"{order.cancellation_status}."
        )


def _ensure_can_resolve(actor: Actor, slices: List[VendorSlice]) -> None:
    if actor.is_privileged:
        return
    if actor.is_vendor and all(s.vendor_id == actor.id for s in slices):
        return
    raise Forbidden("Only the owning vendor or an admin can resolve this cancellation.")


def request_cancellation(
    order: Order,
    actor: Actor,
    reason: str,
    note: str = "",
    vendor_id: Optional[str] = None,
) -> List[VendorSlice]:
    """Open the order's cancellation request and flag the affected slices."""
    if not (reason or "").strip():
        raise InvalidRequest("A cancellation reason is required.")
    if actor.is_customer and order.customer_id != actor.id:
        raise Forbidden("Customers may only cancel their own orders.")
    if order.has_pending_cancellation:
        raise DuplicateRequest(
            f"Order {order.order_code} already has a pending cancellation request."
        )

    slices = _scope(order, actor, vendor_id)
    for vendor_slice in slices:
        ensure_transition(
            vendor_slice.status,
            OrderStatus.CANCELLATION_REQUESTED,
            scope=f"slice {vendor_slice.vendor_id}",
        )

    for vendor_slice in slices:
        vendor_slice.status_before_cancellation = vendor_slice.status
        vendor_slice.status = OrderStatus.CANCELLATION_REQUESTED
        order.record_status(
            OrderStatus.CANCELLATION_REQUESTED,
            actor,
            note=note or reason,
            vendor_id=vendor_slice.vendor_id,
        )

    order.cancellation_status = CancellationStatus.PENDING
    order.cancellation_reason = reason.strip()
    order.cancellation_note = note or ""
    order.cancellation_requested_at = timezone.now()
    order.cancellation_requested_by = actor.id
    order.cancellation_rejection_reason = ""
    order.cancellation_resolved_at = None
    order.cancellation_resolved_by = ""
    order.refresh_status()

    logger.info(
        "order.cancellation_requested",
        order_id=str(order.id),
        vendor_ids=[s.vendor_id for s in slices],
        actor_id=actor.id,
        role=actor.role,
    )
    return slices


def approve_cancellation(order: Order, actor: Actor, note: str = "") -> Decimal:
    """Cancel every affected slice.  Returns the amount to refund."""
    _ensure_pending(order)
    slices = affected_slices(order)
    _ensure_can_resolve(actor, slices)
    for vendor_slice in slices:
        ensure_transition(
            vendor_slice.status,
            OrderStatus.CANCELLED,
            scope=f"slice {vendor_slice.vendor_id}",
        )

    refund_amount = ZERO
    for vendor_slice in slices:
        vendor_slice.status = OrderStatus.CANCELLED
        vendor_slice.status_before_cancellation = ""
        refund_amount += vendor_slice.total
        order.record_status(
            OrderStatus.CANCELLED, actor, note=note, vendor_id=vendor_slice.vendor_id
        )

    order.cancellation_status = CancellationStatus.APPROVED
    order.cancellation_resolved_at = timezone.now()
    order.cancellation_resolved_by = actor.id
    order.refresh_status()

    logger.info(
        "order.cancellation_approved",
        order_id=str(order.id),
        order_status=order.status,
        refund_amount=str(refund_amount),
    )
    return refund_amount


def reject_cancellation(
    order: Order, actor: Actor, rejection_reason: str, note: str = ""
) -> List[VendorSlice]:
    """Restore every affected slice to the status it had before the request."""
    if not (rejection_reason or "").strip():
        raise InvalidRequest("A rejection reason is required.")
    _ensure_pending(order)
    slices = affected_slices(order)
    _ensure_can_resolve(actor, slices)

    for vendor_slice in slices:
        previous = vendor_slice.status_before_cancellation or OrderStatus.PENDING
        order.record_status(
            OrderStatus.CANCELLATION_REJECTED,
            actor,
            note=rejection_reason,
            vendor_id=vendor_slice.vendor_id,
        )
        vendor_slice.status = previous
        vendor_slice.status_before_cancellation = ""
        order.record_status(
            previous,
            actor,
            note=note or "Restored after cancellation rejection",
            vendor_id=vendor_slice.vendor_id,
        )

    order.cancellation_status = CancellationStatus.REJECTED
    order.cancellation_rejection_reason = rejection_reason.strip()
    order.cancellation_resolved_at = timezone.now()
    order.cancellation_resolved_by = actor.id
    order.refresh_status()

    logger.info(
        "order.cancellation_rejected",
        order_id=str(order.id),
        order_status=order.status,
    )
    return slices
