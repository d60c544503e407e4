"""Django ORM implementation of the Order and Return repositories.

Concurrency control is optimistic: ``commit`` issues
``UPDATE orders SET version = n + 1, ... WHERE id = ? AND version = n`` and
treats zero affected rows as a lost race.  Everything else the mutation
produced (slices, history entries, refunds, outbox rows) is written in
the same transaction, after the compare-and-set succeeded.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

import structlog
from django.core.exceptions import ValidationError
from django.db import transaction
from django.db.models import Max, Prefetch
from django.utils import timezone

from modules.core.outbox import outbox_relay
from modules.orders.constants import ACTIVE_RETURN_STATUSES
from modules.orders.exceptions import Conflict
from modules.orders.filters import OrderFilter, ReturnFilter, VendorSliceFilter
from modules.orders.models import (
    Order,
    RefundTransaction,
    ReturnItem,
    ReturnRequest,
    StatusHistory,
    VendorSlice,
)
from modules.orders.repositories.interfaces import IOrderRepository, IReturnRepository

logger = structlog.get_logger(__name__)

ORDER_EVENTS_TOPIC = "orders"

SLICE_MUTABLE_FIELDS = ["status", "status_before_cancellation", "delivered_at"]


def _order_queryset():
    return Order.objects.prefetch_related(
        Prefetch("slices", queryset=VendorSlice.objects.prefetch_related("items")),
        "history",
    )


class OrderDjangoRepository(IOrderRepository):
    """Concrete Order repository backed by Django ORM."""

    # ------------------------------------------------------------------
    # Create (aggregate root + children)
    # ------------------------------------------------------------------

    @transaction.atomic
    def create(self, order: Order) -> Order:
        slices = order.vendor_slices
        order.save()
        for vendor_slice in slices:
            vendor_slice.order = order
            vendor_slice.save()
            for item in vendor_slice.line_items:
                item.vendor_slice = vendor_slice
                item.save()

        self._flush(order)
        logger.info(
            "order.persisted",
            order_id=str(order.id),
            order_code=order.order_code,
            slice_count=len(slices),
        )
        return order

    # ------------------------------------------------------------------
    # Compare-and-set commit
    # ------------------------------------------------------------------

    @transaction.atomic
    def commit(self, order: Order, expected_version: int) -> Order:
        now = timezone.now()
        changes = {field: getattr(order, field) for field in Order.MUTABLE_FIELDS}
        updated = Order.objects.filter(pk=order.pk, version=expected_version).update(
            version=expected_version + 1,
            updated_at=now,
            **changes,
        )
        if updated == 0:
            logger.warning(
                "order.version_conflict",
                order_id=str(order.id),
                expected_version=expected_version,
            )
            raise Conflict(
                f"Order {order.order_code} was modified concurrently; reload and retry.",
                expected_version=expected_version,
            )
        order.version = expected_version + 1
        order.updated_at = now

        for vendor_slice in order.vendor_slices:
            vendor_slice.save(update_fields=SLICE_MUTABLE_FIELDS)

        self._flush(order)
        logger.info("order.committed", order_id=str(order.id), version=order.version)
        return order

    def _flush(self, order: Order) -> None:
        """Write buffered history entries, refunds and domain events."""
        if order.pending_history:
            last = (
                StatusHistory.objects.filter(order=order).aggregate(last=Max("sequence"))[
                    "last"
                ]
                or 0
            )
            for offset, entry in enumerate(order.pending_history, start=1):
                entry.order = order
                entry.sequence = last + offset
                entry.save()

        for refund in order.pending_refunds:
            refund.order = order
            refund.save()

        events = order.domain_events
        for event in events:
            outbox_relay.enqueue(
                event_type=event.event_name,
                aggregate_id=str(order.id),
                payload=event.to_payload(),
                topic=ORDER_EVENTS_TOPIC,
            )
        order.clear_domain_events()
        order.clear_pending()

        # Drop the stale prefetch so the next read of ``history`` sees new rows.
        getattr(order, "_prefetched_objects_cache", {}).pop("history", None)

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def get_by_id(self, id: str) -> Optional[Order]:
        """Retrieve an order with eager-loaded slices, items and history.

        Returns ``None`` for non-existent or invalid IDs.
        """
        try:
            return _order_queryset().filter(id=id).first()
        except (ValueError, ValidationError):
            return None

    def list(self, filters: Optional[Dict[str, Any]] = None) -> List[Order]:
        queryset = _order_queryset().order_by("-created_at", "-id")
        if filters:
            queryset = OrderFilter(data=filters, queryset=queryset).qs
        return list(queryset)

    def list_slices_for_vendor(
        self, vendor_id: str, filters: Optional[Dict[str, Any]] = None
    ) -> List[VendorSlice]:
        queryset = (
            VendorSlice.objects.filter(vendor_id=str(vendor_id))
            .select_related("order")
            .prefetch_related("items", "order__history")
            .order_by("-order__created_at", "-order__id")
        )
        if filters:
            queryset = VendorSliceFilter(data=filters, queryset=queryset).qs
        return list(queryset)

    def get_by_idempotency_key(self, key: str, customer_id: str) -> Optional[Order]:
        return (
            _order_queryset()
            .filter(idempotency_key=key, customer_id=customer_id)
            .first()
        )

    # ------------------------------------------------------------------
    # Refunds
    # ------------------------------------------------------------------

    def get_refund_by_code(self, refund_code: str) -> Optional[RefundTransaction]:
        return (
            RefundTransaction.objects.select_related("return_request")
            .filter(refund_code=refund_code)
            .first()
        )

    def save_refund(self, refund: RefundTransaction) -> RefundTransaction:
        refund.save()
        return refund


class ReturnDjangoRepository(IReturnRepository):
    """Concrete ReturnRequest repository backed by Django ORM."""

    @transaction.atomic
    def create(self, return_request: ReturnRequest, items: List[ReturnItem]) -> ReturnRequest:
        return_request.save()
        for item in items:
            item.return_request = return_request
            item.save()
        return_request.set_items(items)
        logger.info(
            "return.persisted",
            return_id=str(return_request.id),
            return_code=return_request.return_code,
            item_count=len(items),
        )
        return return_request

    def save(self, return_request: ReturnRequest) -> ReturnRequest:
        return_request.save()
        return return_request

    def get_by_id(self, id: str) -> Optional[ReturnRequest]:
        try:
            return (
                ReturnRequest.objects.select_related("order")
                .prefetch_related("items__order_item")
                .filter(id=id)
                .first()
            )
        except (ValueError, ValidationError):
            return None

    def list(self, filters: Optional[Dict[str, Any]] = None) -> List[ReturnRequest]:
        queryset = (
            ReturnRequest.objects.select_related("order")
            .prefetch_related("items__order_item")
            .order_by("-requested_at", "-id")
        )
        if filters:
            queryset = ReturnFilter(data=filters, queryset=queryset).qs
        return list(queryset)

    def has_active_for_order(self, order_id: str) -> bool:
        return ReturnRequest.objects.filter(
            order_id=order_id, status__in=ACTIVE_RETURN_STATUSES
        ).exists()
