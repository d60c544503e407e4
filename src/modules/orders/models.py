"""Order aggregate: Order, VendorSlice, OrderItem and StatusHistory.

Also the separately stored ReturnRequest / ReturnItem and
RefundTransaction, which back-reference the order, and the
PartyNotification receipts written by the notification handler.

Rules implemented here:
- Line items snapshot the product (name, price, size/color) at checkout
  and are never re-read from the catalog.
- ``order.subtotal`` is always the sum of the slice subtotals and
  ``order.total == subtotal + shipping + tax - discount``.
- ``order.status`` is derived from the slice statuses, never set directly.
- ``StatusHistory`` is append-only: rows cannot be updated or deleted.
- ``order_code`` / ``return_code`` / ``refund_code`` are human readable
  identifiers generated once (``PREFIX-YYYYMMDD-XXXXXX``).
- ``version`` is the optimistic concurrency counter checked and
  incremented by the repository on every committed mutation.
"""

from __future__ import annotations

import secrets
from decimal import Decimal
from typing import TYPE_CHECKING, Any, List, Optional

from django.core.validators import MinValueValidator
from django.db import models
from django.utils import timezone

from modules.core.models import BaseModel
from modules.orders.calculator import ZERO, SliceFinancials
from modules.orders.constants import (
    ORDER_CODE_MAX_RETRIES,
    ActorRole,
    CancellationStatus,
    OrderStatus,
    PaymentMethod,
    PaymentStatus,
    RefundStatus,
    ReturnStatus,
    TERMINAL_STATES,
)
from modules.orders.state_machine import derive_aggregate_status
from shared.domain.events import DomainEventMixin

if TYPE_CHECKING:
    from modules.orders.actors import Actor


def _money_field(**kwargs: Any) -> models.DecimalField:
    return models.DecimalField(
        max_digits=12, decimal_places=2, default=Decimal("0.00"), **kwargs
    )


def generate_code(prefix: str) -> str:
    """Human readable identifier: ``PREFIX-YYYYMMDD-XXXXXX``."""
    now = timezone.now()
    suffix = secrets.token_hex(3).upper()
    return f"{prefix}-{now:%Y%m%d}-{suffix}"


def assign_unique_code(instance: models.Model, field_name: str, prefix: str) -> None:
    if getattr(instance, field_name):
        return
    model = type(instance)
    for _attempt in range(ORDER_CODE_MAX_RETRIES):
        candidate = generate_code(prefix)
        if not model.objects.filter(**{field_name: candidate}).exists():
            setattr(instance, field_name, candidate)
            return
    raise RuntimeError(
        f"Failed to generate unique {field_name} after "
        f"{ORDER_CODE_MAX_RETRIES} attempts"
    )


# ---------------------------------------------------------------------------
# Order (aggregate root)
# ---------------------------------------------------------------------------


class Order(DomainEventMixin, BaseModel):
    """Order aggregate root.

    Owns its vendor slices and status history.  The single cancellation
    request slot is embedded (``cancellation_*`` fields); returns and
    refunds are separate rows pointing back here.

    Mutations happen in memory on a loaded aggregate; slices are cached on
    the instance (``vendor_slices``) and new history entries / refunds are
    buffered until the repository commits them in one transaction.
    """

    # Fields the repository writes on a compare-and-set commit.
    MUTABLE_FIELDS = (
        "status",
        "payment_status",
        "cancellation_status",
        "cancellation_reason",
        "cancellation_note",
        "cancellation_requested_at",
        "cancellation_requested_by",
        "cancellation_rejection_reason",
        "cancellation_resolved_at",
        "cancellation_resolved_by",
    )

    order_code = models.CharField(max_length=32, unique=True, editable=False)
    customer_id = models.CharField(max_length=64, db_index=True)
    shipping_address = models.JSONField(default=dict)
    customer_snapshot = models.JSONField(default=dict, blank=True)
    payment_method = models.CharField(max_length=20, choices=PaymentMethod.choices)
    payment_status = models.CharField(
        max_length=20,
        choices=PaymentStatus.choices,
        default=PaymentStatus.PENDING,
    )
    status = models.CharField(
        max_length=32,
        choices=OrderStatus.choices,
        default=OrderStatus.PENDING,
    )
    subtotal = _money_field()
    shipping = _money_field()
    tax = _money_field()
    discount = _money_field()
    commission = _money_field()
    total = _money_field()

    cancellation_status = models.CharField(  # noqa: DJ01
        max_length=20,
        choices=CancellationStatus.choices,
        null=True,
        blank=True,
    )
    cancellation_reason = models.TextField(blank=True, default="")
    cancellation_note = models.TextField(blank=True, default="")
    cancellation_requested_at = models.DateTimeField(null=True, blank=True)
    cancellation_requested_by = models.CharField(max_length=64, blank=True, default="")
    cancellation_rejection_reason = models.TextField(blank=True, default="")
    cancellation_resolved_at = models.DateTimeField(null=True, blank=True)
    cancellation_resolved_by = models.CharField(max_length=64, blank=True, default="")

    idempotency_key = models.CharField(
        max_length=255,
        null=True,
        blank=True,
    )
    version = models.PositiveIntegerField(default=0)

    class Meta:
        db_table = "orders"
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["status"], name="orders_status_idx"),
            models.Index(fields=["-created_at"], name="orders_created_idx"),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=["customer_id", "idempotency_key"],
                name="orders_customer_idempotency_uniq",
            ),
        ]

    # ------------------------------------------------------------------
    # In-memory aggregate
    # ------------------------------------------------------------------

    @property
    def vendor_slices(self) -> List[VendorSlice]:
        cached = getattr(self, "_slice_cache", None)
        if cached is None:
            cached = list(self.slices.all()) if self.pk and not self._state.adding else []
            self._slice_cache = cached
        return cached

    def attach_slice(self, vendor_slice: VendorSlice, items: List[OrderItem]) -> None:
        """Add a slice built at checkout (before the first save)."""
        vendor_slice.position = len(self.vendor_slices)
        vendor_slice.set_items(items)
        self.vendor_slices.append(vendor_slice)

    def slice_for(self, vendor_id: str) -> Optional[VendorSlice]:
        for vendor_slice in self.vendor_slices:
            if vendor_slice.vendor_id == str(vendor_id):
                return vendor_slice
        return None

    @property
    def vendor_ids(self) -> List[str]:
        return [vendor_slice.vendor_id for vendor_slice in self.vendor_slices]

    @property
    def pending_history(self) -> List[StatusHistory]:
        if not hasattr(self, "_pending_history"):
            self._pending_history = []
        return self._pending_history

    @property
    def pending_refunds(self) -> List[RefundTransaction]:
        if not hasattr(self, "_pending_refunds"):
            self._pending_refunds = []
        return self._pending_refunds

    def record_status(
        self,
        status: str,
        actor: Actor,
        note: str = "",
        vendor_id: Optional[str] = None,
    ) -> StatusHistory:
        """Buffer a history entry; the repository writes it on commit."""
        entry = StatusHistory(
            order=self,
            vendor_id=vendor_id,
            status=status,
            note=note or "",
            changed_by=actor.id,
            role=actor.role,
        )
        self.pending_history.append(entry)
        return entry

    def add_refund(self, refund: RefundTransaction) -> RefundTransaction:
        refund.order = self
        self.pending_refunds.append(refund)
        return refund

    def clear_pending(self) -> None:
        self.pending_history.clear()
        self.pending_refunds.clear()

    # ------------------------------------------------------------------
    # Derived state
    # ------------------------------------------------------------------

    def recalculate_totals(self) -> None:
        slices = self.vendor_slices
        self.subtotal = sum((s.subtotal for s in slices), ZERO)
        self.shipping = sum((s.shipping for s in slices), ZERO)
        self.tax = sum((s.tax for s in slices), ZERO)
        self.discount = sum((s.discount for s in slices), ZERO)
        self.commission = sum((s.commission for s in slices), ZERO)
        self.total = self.subtotal + self.shipping + self.tax - self.discount

    def refresh_status(self) -> str:
        self.status = derive_aggregate_status(s.status for s in self.vendor_slices)
        return self.status

    @property
    def has_pending_cancellation(self) -> bool:
        return self.cancellation_status == CancellationStatus.PENDING

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def save(self, *args: Any, **kwargs: Any) -> None:
        assign_unique_code(self, "order_code", "ORD")
        super().save(*args, **kwargs)

    def __str__(self) -> str:
        return f"{self.order_code} ({self.status})"


# ---------------------------------------------------------------------------
# VendorSlice
# ---------------------------------------------------------------------------


class VendorSlice(BaseModel):
    """One vendor's portion of an order.

    Financials are computed once at checkout by the calculator and kept
    with the commission rate that produced them.  ``status`` moves along
    the slice state machine independently of the other slices;
    ``status_before_cancellation`` remembers where to return to if a
    cancellation request is rejected.
    """

    order = models.ForeignKey(
        Order,
        on_delete=models.CASCADE,
        related_name="slices",
    )
    vendor_id = models.CharField(max_length=64, db_index=True)
    position = models.PositiveSmallIntegerField(default=0)
    subtotal = _money_field()
    shipping = _money_field()
    tax = _money_field()
    discount = _money_field()
    commission = _money_field()
    vendor_earnings = _money_field()
    total = _money_field()
    commission_rate = models.DecimalField(
        max_digits=5, decimal_places=4, default=Decimal("0")
    )
    status = models.CharField(
        max_length=32,
        choices=OrderStatus.choices,
        default=OrderStatus.PENDING,
    )
    status_before_cancellation = models.CharField(
        max_length=32,
        choices=OrderStatus.choices,
        blank=True,
        default="",
    )
    delivered_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        db_table = "order_vendor_slices"
        ordering = ["position"]
        constraints = [
            models.UniqueConstraint(
                fields=["order", "vendor_id"], name="slice_unique_vendor_per_order"
            ),
        ]

    @property
    def line_items(self) -> List[OrderItem]:
        cached = getattr(self, "_item_cache", None)
        if cached is None:
            cached = list(self.items.all()) if not self._state.adding else []
            self._item_cache = cached
        return cached

    def set_items(self, items: List[OrderItem]) -> None:
        self._item_cache = list(items)

    def apply_financials(self, financials: SliceFinancials, commission_rate: Decimal) -> None:
        self.subtotal = financials.subtotal
        self.shipping = financials.shipping
        self.tax = financials.tax
        self.discount = financials.discount
        self.commission = financials.commission
        self.vendor_earnings = financials.vendor_earnings
        self.total = financials.total
        self.commission_rate = commission_rate

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATES

    def __str__(self) -> str:
        return f"slice {self.vendor_id} ({self.status})"


class OrderItem(BaseModel):
    """Line item snapshot.  Immutable after checkout."""

    vendor_slice = models.ForeignKey(
        VendorSlice,
        on_delete=models.CASCADE,
        related_name="items",
    )
    product_id = models.CharField(max_length=64)
    name = models.CharField(max_length=255)
    price = models.DecimalField(max_digits=10, decimal_places=2)
    quantity = models.PositiveIntegerField(validators=[MinValueValidator(1)])
    size = models.CharField(max_length=32, blank=True, default="")
    color = models.CharField(max_length=32, blank=True, default="")
    tax_included = models.BooleanField(default=False)
    line_total = models.DecimalField(max_digits=12, decimal_places=2)

    class Meta:
        db_table = "order_items"
        ordering = ["created_at", "id"]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(quantity__gte=1),
                name="order_items_quantity_positive",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.name} x{self.quantity} ({self.line_total})"


# ---------------------------------------------------------------------------
# StatusHistory (append-only)
# ---------------------------------------------------------------------------


class AppendOnlyViolation(Exception):
    """Raised on any attempt to edit or delete a status history entry."""


class StatusHistory(BaseModel):
    """Append-only audit trail of status changes.

    ``vendor_id`` scopes an entry to a slice; ``None`` marks order-scope
    entries (e.g. order placement).  ``created_at`` is the entry timestamp
    and ``sequence`` gives a stable total order within the order.
    Consecutive duplicates are kept; collapsing them is a presentation
    concern.
    """

    order = models.ForeignKey(
        Order,
        on_delete=models.CASCADE,
        related_name="history",
    )
    vendor_id = models.CharField(max_length=64, null=True, blank=True)  # noqa: DJ01
    sequence = models.PositiveIntegerField()
    status = models.CharField(max_length=32, choices=OrderStatus.choices)
    note = models.TextField(blank=True, default="")
    changed_by = models.CharField(max_length=64)
    role = models.CharField(max_length=20, choices=ActorRole.choices)

    class Meta:
        db_table = "order_status_history"
        ordering = ["sequence"]
        constraints = [
            models.UniqueConstraint(
                fields=["order", "sequence"], name="history_unique_sequence"
            ),
        ]

    def save(self, *args: Any, **kwargs: Any) -> None:
        if not self._state.adding:
            raise AppendOnlyViolation("Status history entries cannot be modified.")
        super().save(*args, **kwargs)

    def delete(self, *args: Any, **kwargs: Any) -> Any:
        raise AppendOnlyViolation("Status history entries cannot be deleted.")

    def __str__(self) -> str:
        scope = self.vendor_id or "order"
        return f"#{self.sequence} {scope} -> {self.status} by {self.role}"


# ---------------------------------------------------------------------------
# Returns and refunds
# ---------------------------------------------------------------------------


class ReturnRequest(BaseModel):
    """A customer's request to return items of one delivered slice."""

    return_code = models.CharField(max_length=32, unique=True, editable=False)
    order = models.ForeignKey(
        Order,
        on_delete=models.CASCADE,
        related_name="returns",
    )
    vendor_id = models.CharField(max_length=64, db_index=True)
    customer_id = models.CharField(max_length=64)
    reason = models.TextField()
    description = models.TextField(blank=True, default="")
    refund_amount = models.DecimalField(max_digits=12, decimal_places=2)
    status = models.CharField(
        max_length=20,
        choices=ReturnStatus.choices,
        default=ReturnStatus.PENDING,
    )
    rejection_reason = models.TextField(blank=True, default="")
    resolution_note = models.TextField(blank=True, default="")
    requested_at = models.DateTimeField(default=timezone.now)
    resolved_at = models.DateTimeField(null=True, blank=True)
    resolved_by = models.CharField(max_length=64, blank=True, default="")
    completed_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        db_table = "order_returns"
        ordering = ["-requested_at"]
        indexes = [
            models.Index(fields=["order", "status"], name="returns_order_status_idx"),
        ]

    @property
    def return_items(self) -> List[ReturnItem]:
        cached = getattr(self, "_item_cache", None)
        if cached is None:
            cached = list(self.items.all()) if not self._state.adding else []
            self._item_cache = cached
        return cached

    def set_items(self, items: List[ReturnItem]) -> None:
        self._item_cache = list(items)

    def save(self, *args: Any, **kwargs: Any) -> None:
        assign_unique_code(self, "return_code", "RET")
        super().save(*args, **kwargs)

    def __str__(self) -> str:
        return f"{self.return_code} ({self.status})"


class ReturnItem(BaseModel):
    return_request = models.ForeignKey(
        ReturnRequest,
        on_delete=models.CASCADE,
        related_name="items",
    )
    order_item = models.ForeignKey(
        OrderItem,
        on_delete=models.PROTECT,
        related_name="return_items",
    )
    quantity = models.PositiveIntegerField(validators=[MinValueValidator(1)])
    line_total = models.DecimalField(max_digits=12, decimal_places=2)

    class Meta:
        db_table = "order_return_items"
        ordering = ["created_at", "id"]


class RefundTransaction(BaseModel):
    """Money going back to the customer, driven by payment outcomes."""

    refund_code = models.CharField(max_length=32, unique=True, editable=False)
    order = models.ForeignKey(
        Order,
        on_delete=models.CASCADE,
        related_name="refunds",
    )
    return_request = models.ForeignKey(
        ReturnRequest,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="refunds",
    )
    vendor_id = models.CharField(max_length=64, blank=True, default="")
    amount = models.DecimalField(max_digits=12, decimal_places=2)
    status = models.CharField(
        max_length=20,
        choices=RefundStatus.choices,
        default=RefundStatus.PENDING,
    )
    external_transaction_id = models.CharField(max_length=128, blank=True, default="")
    failure_reason = models.TextField(blank=True, default="")
    processed_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        db_table = "order_refunds"
        ordering = ["-created_at"]

    @property
    def is_settled(self) -> bool:
        return self.status == RefundStatus.COMPLETED

    def save(self, *args: Any, **kwargs: Any) -> None:
        assign_unique_code(self, "refund_code", "RFD")
        super().save(*args, **kwargs)

    def __str__(self) -> str:
        return f"{self.refund_code} {self.amount} ({self.status})"


class PartyNotification(BaseModel):
    """Receipt for one recipient notified about one order event.

    A retried notification skips recipients that already have a receipt.
    """

    event_id = models.UUIDField()
    event_name = models.CharField(max_length=64)
    recipient_id = models.CharField(max_length=64)
    role = models.CharField(max_length=20, choices=ActorRole.choices)

    class Meta:
        db_table = "order_notifications"
        ordering = ["created_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["event_id", "recipient_id", "role"],
                name="order_notifications_recipient_uniq",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.event_name} -> {self.role}:{self.recipient_id}"
