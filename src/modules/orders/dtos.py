"""Order DTOs for the Service Layer.

Framework-agnostic data transfer objects using Pydantic v2.
These are the contracts between the API layer (DRF Serializers)
and the Service layer.  DTOs are immutable (``frozen=True``).

- ``CheckoutLineDTO`` / ``ShippingAddressDTO`` / ``CreateOrderDTO``: checkout input.
- ``ReturnLineDTO``: one selected item of a return request.
- ``SliceViewDTO`` / ``StatusHistoryDTO`` / ``VendorOrderView``: the
  vendor-scoped projection of an order.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from modules.orders.constants import PaymentMethod

if TYPE_CHECKING:
    from modules.orders.models import Order, StatusHistory, VendorSlice


# ---------------------------------------------------------------------------
# Input DTOs
# ---------------------------------------------------------------------------


class CheckoutLineDTO(BaseModel):
    """A cart line.  Price and vendor come from the catalog, not the client."""

    model_config = ConfigDict(frozen=True)

    product_id: str
    quantity: int
    size: str = ""
    color: str = ""

    @field_validator("quantity")
    @classmethod
    def quantity_must_be_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("Quantity must be at least 1.")
        return v


class ShippingAddressDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    full_name: str = Field(min_length=1)
    phone: str = ""
    line1: str = Field(min_length=1)
    line2: str = ""
    city: str = Field(min_length=1)
    state: str = ""
    postal_code: str = Field(min_length=1)
    country: str = "IN"


class CustomerSnapshotDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str = ""
    email: str = ""
    phone: str = ""


class CreateOrderDTO(BaseModel):
    """Immutable DTO for checkout.

    Validates:
    - ``items`` must contain at least one line.
    - The same product variant (product, size, color) appears once.
    - ``payment_method`` is a known method.
    - Order-level ``shipping_fee`` and ``discount`` are non-negative; they
      are split across vendor slices by subtotal.

    Both amounts are server policy.  The API never copies them from the
    request body; ``shipping_fee=None`` means the configured
    ``MARKETPLACE_SHIPPING_FEE``.
    """

    model_config = ConfigDict(frozen=True)

    customer_id: str
    items: List[CheckoutLineDTO]
    shipping_address: ShippingAddressDTO
    payment_method: str
    shipping_fee: Optional[Decimal] = None
    discount: Decimal = Decimal("0.00")
    tax_rate: Optional[Decimal] = None
    customer: Optional[CustomerSnapshotDTO] = None
    idempotency_key: Optional[str] = None

    @field_validator("items")
    @classmethod
    def items_must_not_be_empty(cls, v: List[CheckoutLineDTO]) -> List[CheckoutLineDTO]:
        if not v:
            raise ValueError("Order must have at least one item.")
        return v

    @field_validator("payment_method")
    @classmethod
    def payment_method_must_be_known(cls, v: str) -> str:
        if v not in PaymentMethod.values:
            raise ValueError(f"Unknown payment method {v!r}.")
        return v

    @field_validator("shipping_fee", "discount")
    @classmethod
    def amounts_must_not_be_negative(cls, v: Optional[Decimal]) -> Optional[Decimal]:
        if v is not None and v < 0:
            raise ValueError("Amount cannot be negative.")
        return v

    @field_validator("tax_rate")
    @classmethod
    def tax_rate_must_be_a_fraction(cls, v: Optional[Decimal]) -> Optional[Decimal]:
        if v is not None and not Decimal("0") <= v <= Decimal("1"):
            raise ValueError("Tax rate must be between 0 and 1.")
        return v

    @model_validator(mode="after")
    def no_duplicate_lines(self):
        """Prevent the same product variant twice in one checkout."""
        keys = [(item.product_id, item.size, item.color) for item in self.items]
        if len(keys) != len(set(keys)):
            raise ValueError("Duplicate product lines are not allowed in the same order.")
        return self


class ReturnLineDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    item_id: str
    quantity: int = 1


# ---------------------------------------------------------------------------
# Output DTOs
# ---------------------------------------------------------------------------


class OrderItemDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    product_id: str
    name: str
    price: Decimal
    quantity: int
    size: str
    color: str
    tax_included: bool
    line_total: Decimal


class StatusHistoryDTO(BaseModel):
    """Immutable DTO for a status history entry."""

    model_config = ConfigDict(frozen=True)

    sequence: int
    vendor_id: Optional[str]
    status: str
    note: str
    changed_by: str
    role: str
    timestamp: datetime

    @classmethod
    def from_entity(cls, entry: StatusHistory) -> StatusHistoryDTO:
        return cls(
            sequence=entry.sequence,
            vendor_id=entry.vendor_id,
            status=entry.status,
            note=entry.note,
            changed_by=entry.changed_by,
            role=entry.role,
            timestamp=entry.created_at,
        )


class SliceViewDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    vendor_id: str
    status: str
    subtotal: Decimal
    shipping: Decimal
    tax: Decimal
    discount: Decimal
    commission: Decimal
    commission_rate: Decimal
    vendor_earnings: Decimal
    total: Decimal
    delivered_at: Optional[datetime]
    items: List[OrderItemDTO]

    @classmethod
    def from_entity(cls, vendor_slice: VendorSlice) -> SliceViewDTO:
        return cls(
            vendor_id=vendor_slice.vendor_id,
            status=vendor_slice.status,
            subtotal=vendor_slice.subtotal,
            shipping=vendor_slice.shipping,
            tax=vendor_slice.tax,
            discount=vendor_slice.discount,
            commission=vendor_slice.commission,
            commission_rate=vendor_slice.commission_rate,
            vendor_earnings=vendor_slice.vendor_earnings,
            total=vendor_slice.total,
            delivered_at=vendor_slice.delivered_at,
            items=[
                OrderItemDTO(
                    id=str(item.id),
                    product_id=item.product_id,
                    name=item.name,
                    price=item.price,
                    quantity=item.quantity,
                    size=item.size,
                    color=item.color,
                    tax_included=item.tax_included,
                    line_total=item.line_total,
                )
                for item in vendor_slice.line_items
            ],
        )


class VendorOrderView(BaseModel):
    """What a vendor sees of an order: shared order info plus their own slice.

    Other vendors' slices, order-wide totals and the other vendors' history
    entries are left out.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    order_code: str
    customer_id: str
    shipping_address: dict
    payment_method: str
    payment_status: str
    cancellation_status: Optional[str]
    version: int
    created_at: datetime
    vendor_slice: SliceViewDTO
    history: List[StatusHistoryDTO]

    @classmethod
    def from_entity(cls, order: Order, vendor_slice: VendorSlice) -> VendorOrderView:
        history = [
            StatusHistoryDTO.from_entity(entry)
            for entry in order.history.all()
            if entry.vendor_id == vendor_slice.vendor_id
        ]
        return cls(
            id=str(order.id),
            order_code=order.order_code,
            customer_id=order.customer_id,
            shipping_address=order.shipping_address,
            payment_method=order.payment_method,
            payment_status=order.payment_status,
            cancellation_status=order.cancellation_status,
            version=order.version,
            created_at=order.created_at,
            vendor_slice=SliceViewDTO.from_entity(vendor_slice),
            history=history,
        )
