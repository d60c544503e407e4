"""Return workflow for delivered slices.

``pending -> approved | rejected``, then ``approved -> processing ->
completed`` as the refund settles.  Approval is a decision; completion is
a confirmed financial event recorded later from the payment outcome.
Returns never change the order's status.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Iterable, List, Optional, Tuple

import structlog
from django.utils import timezone

from modules.orders.actors import Actor
from modules.orders.calculator import ZERO, line_total
from modules.orders.constants import RETURN_TRANSITIONS, OrderStatus, ReturnStatus
from modules.orders.exceptions import (
    Forbidden,
    InvalidRequest,
    InvalidTransition,
    RequestAlreadyResolved,
    ReturnWindowExpired,
)
from modules.orders.models import Order, ReturnItem, ReturnRequest, VendorSlice

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class ReturnSelection:
    item_id: str
    quantity: int


def _ensure_can_resolve(return_request: ReturnRequest, actor: Actor) -> None:
    if actor.is_privileged:
        return
    if actor.is_vendor and return_request.vendor_id == actor.id:
        return
    raise Forbidden("Only the owning vendor or an admin can resolve this return.")


def _ensure_pending(return_request: ReturnRequest) -> None:
    if return_request.status != ReturnStatus.PENDING:
        raise RequestAlreadyResolved(
            f"Return {return_request.return_code} was already {return_request.status}."
        )


def _move(return_request: ReturnRequest, target: str) -> None:
    allowed = RETURN_TRANSITIONS.get(return_request.status, set())
    if target not in allowed:
        raise InvalidTransition(
            f"Cannot move return {return_request.return_code} "
            f"from {return_request.status} to {target}.",
            current=return_request.status,
            target=target,
        )
    return_request.status = target


def open_return(
    order: Order,
    vendor_slice: VendorSlice,
    actor: Actor,
    selections: Iterable[ReturnSelection],
    reason: str,
    description: str = "",
    window_days: int = 7,
    now: Optional[datetime] = None,
) -> Tuple[ReturnRequest, List[ReturnItem]]:
    """Build a pending return for items of a delivered slice (unsaved)."""
    now = now or timezone.now()
    if actor.is_vendor:
        raise Forbidden("Vendors cannot open returns.")
    if actor.is_customer and order.customer_id != actor.id:
        raise Forbidden("Customers may only return items of their own orders.")
    if not (reason or "").strip():
        raise InvalidRequest("A return reason is required.")
    if vendor_slice.status != OrderStatus.DELIVERED:
        raise InvalidTransition(
            f"Slice {vendor_slice.vendor_id} is {vendor_slice.status}; "
            "only delivered items can be returned.",
            current=vendor_slice.status,
        )
    if vendor_slice.delivered_at is not None:
        deadline = vendor_slice.delivered_at + timedelta(days=window_days)
        if now > deadline:
            raise ReturnWindowExpired(
                f"The {window_days}-day return window closed on {deadline:%Y-%m-%d}.",
                current=vendor_slice.status,
            )

    items_by_id = {str(item.id): item for item in vendor_slice.line_items}
    selections = list(selections)
    if not selections:
        raise InvalidRequest("Select at least one item to return.")

    seen = set()
    return_items: List[ReturnItem] = []
    refund_amount = ZERO
    for selection in selections:
        item_id = str(selection.item_id)
        if item_id in seen:
            raise InvalidRequest(f"Item {item_id} is selected more than once.")
        seen.add(item_id)
        order_item = items_by_id.get(item_id)
        if order_item is None:
            raise InvalidRequest(
                f"Item {item_id} is not part of vendor {vendor_slice.vendor_id}'s slice."
            )
        if not 1 <= selection.quantity <= order_item.quantity:
            raise InvalidRequest(
                f"Return quantity for {order_item.name} must be between 1 and "
                f"{order_item.quantity}."
            )
        amount = line_total(order_item.price, selection.quantity)
        refund_amount += amount
        return_items.append(
            ReturnItem(order_item=order_item, quantity=selection.quantity, line_total=amount)
        )

    return_request = ReturnRequest(
        order=order,
        vendor_id=vendor_slice.vendor_id,
        customer_id=order.customer_id,
        reason=reason.strip(),
        description=description or "",
        refund_amount=refund_amount,
        status=ReturnStatus.PENDING,
        requested_at=now,
    )
    return_request.set_items(return_items)
    return return_request, return_items


def approve_return(return_request: ReturnRequest, actor: Actor, note: str = "") -> None:
    _ensure_pending(return_request)
    _ensure_can_resolve(return_request, actor)
    _move(return_request, ReturnStatus.APPROVED)
    return_request.resolution_note = note or ""
    return_request.resolved_at = timezone.now()
    return_request.resolved_by = actor.id
    logger.info(
        "return.approved",
        return_id=str(return_request.id),
        refund_amount=str(return_request.refund_amount),
    )


def reject_return(
    return_request: ReturnRequest, actor: Actor, rejection_reason: str, note: str = ""
) -> None:
    if not (rejection_reason or "").strip():
        raise InvalidRequest("A rejection reason is required.")
    _ensure_pending(return_request)
    _ensure_can_resolve(return_request, actor)
    _move(return_request, ReturnStatus.REJECTED)
    return_request.rejection_reason = rejection_reason.strip()
    return_request.resolution_note = note or ""
    return_request.resolved_at = timezone.now()
    return_request.resolved_by = actor.id
    logger.info("return.rejected", return_id=str(return_request.id))


def advance_refund(return_request: ReturnRequest, outcome: str) -> bool:
    """Move an approved return along as its refund settles.

    ``outcome`` is ``processing`` or ``completed``; a completion reported
    while still ``approved`` passes through ``processing``.  Returns
    ``False`` when the return is already at or past ``outcome``.
    """
    if outcome not in (ReturnStatus.PROCESSING, ReturnStatus.COMPLETED):
        raise InvalidTransition(
            f"{outcome!r} is not a refund settlement outcome.", target=outcome
        )
    if return_request.status == outcome or (
        return_request.status == ReturnStatus.COMPLETED
        and outcome == ReturnStatus.PROCESSING
    ):
        return False

    if return_request.status == ReturnStatus.APPROVED:
        _move(return_request, ReturnStatus.PROCESSING)
    if outcome == ReturnStatus.COMPLETED:
        _move(return_request, ReturnStatus.COMPLETED)
        return_request.completed_at = timezone.now()

    logger.info(
        "return.refund_advanced",
        return_id=str(return_request.id),
        status=return_request.status,
    )
    return True
