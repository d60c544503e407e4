"""Order DRF serializers for API input/output.

The serializer operates at the Interface layer (API Views).
Business logic lives in the Service Layer, which receives
Pydantic DTOs from ``dtos.py``.
"""

from __future__ import annotations

from rest_framework import serializers

from modules.orders.constants import (
    Decision,
    OrderStatus,
    PaymentMethod,
    PaymentOutcomeKind,
)
from modules.orders.models import (
    Order,
    OrderItem,
    RefundTransaction,
    ReturnItem,
    ReturnRequest,
    StatusHistory,
    VendorSlice,
)

# ---------------------------------------------------------------------------
# Input Serializers
# ---------------------------------------------------------------------------


class CreateOrderItemSerializer(serializers.Serializer):
    """Validates a single cart line.  Prices come from the catalog."""

    product_id = serializers.CharField(max_length=64)
    quantity = serializers.IntegerField(min_value=1)
    size = serializers.CharField(required=False, default="", allow_blank=True)
    color = serializers.CharField(required=False, default="", allow_blank=True)


class ShippingAddressSerializer(serializers.Serializer):
    full_name = serializers.CharField(max_length=255)
    phone = serializers.CharField(required=False, default="", allow_blank=True)
    line1 = serializers.CharField(max_length=255)
    line2 = serializers.CharField(required=False, default="", allow_blank=True)
    city = serializers.CharField(max_length=128)
    state = serializers.CharField(required=False, default="", allow_blank=True)
    postal_code = serializers.CharField(max_length=20)
    country = serializers.CharField(required=False, default="IN")


class CustomerSnapshotSerializer(serializers.Serializer):
    name = serializers.CharField(required=False, default="", allow_blank=True)
    email = serializers.EmailField(required=False, default="", allow_blank=True)
    phone = serializers.CharField(required=False, default="", allow_blank=True)


class CreateOrderSerializer(serializers.Serializer):
    """Validates the checkout payload.

    The customer is the authenticated user, and shipping and discount are
    server policy: none of them are read from the body.
    """

    items = CreateOrderItemSerializer(many=True, allow_empty=False)
    shipping_address = ShippingAddressSerializer()
    payment_method = serializers.ChoiceField(choices=PaymentMethod.choices)
    customer = CustomerSnapshotSerializer(required=False)


class TransitionSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=OrderStatus.choices)
    vendor_id = serializers.CharField(required=False, allow_null=True, default=None)
    note = serializers.CharField(required=False, default="", allow_blank=True)
    expected_version = serializers.IntegerField(required=False, min_value=0, allow_null=True)


class CancellationRequestSerializer(serializers.Serializer):
    reason = serializers.CharField()
    note = serializers.CharField(required=False, default="", allow_blank=True)
    vendor_id = serializers.CharField(required=False, allow_null=True, default=None)
    expected_version = serializers.IntegerField(required=False, min_value=0, allow_null=True)


class ResolveSerializer(serializers.Serializer):
    """Approve/reject payload shared by cancellations and returns."""

    decision = serializers.ChoiceField(choices=Decision.choices)
    rejection_reason = serializers.CharField(required=False, default="", allow_blank=True)
    note = serializers.CharField(required=False, default="", allow_blank=True)

    def validate(self, attrs):
        if attrs["decision"] == Decision.REJECT and not attrs["rejection_reason"].strip():
            raise serializers.ValidationError(
                {"rejection_reason": "A rejection reason is required."}
            )
        return attrs


class ResolveCancellationSerializer(ResolveSerializer):
    expected_version = serializers.IntegerField(required=False, min_value=0, allow_null=True)


class ReturnLineSerializer(serializers.Serializer):
    item_id = serializers.CharField()
    quantity = serializers.IntegerField(min_value=1, required=False, default=1)


class ReturnRequestSerializer(serializers.Serializer):
    vendor_id = serializers.CharField()
    items = ReturnLineSerializer(many=True, allow_empty=False)
    reason = serializers.CharField()
    description = serializers.CharField(required=False, default="", allow_blank=True)
    expected_version = serializers.IntegerField(required=False, min_value=0, allow_null=True)


class PaymentOutcomeSerializer(serializers.Serializer):
    kind = serializers.ChoiceField(choices=PaymentOutcomeKind.choices)
    outcome = serializers.CharField()
    reference = serializers.CharField(required=False, default="", allow_blank=True)
    external_transaction_id = serializers.CharField(
        required=False, default="", allow_blank=True
    )
    failure_reason = serializers.CharField(required=False, default="", allow_blank=True)
    expected_version = serializers.IntegerField(required=False, min_value=0, allow_null=True)

    def validate(self, attrs):
        if attrs["kind"] == PaymentOutcomeKind.REFUND and not attrs["reference"]:
            raise serializers.ValidationError(
                {"reference": "The refund code is required for refund outcomes."}
            )
        return attrs


# ---------------------------------------------------------------------------
# Output Serializers (Read)
# ---------------------------------------------------------------------------


class OrderItemSerializer(serializers.ModelSerializer):
    """Read serializer for order items (product snapshot)."""

    class Meta:
        model = OrderItem
        fields = [
            "id",
            "product_id",
            "name",
            "price",
            "quantity",
            "size",
            "color",
            "tax_included",
            "line_total",
        ]
        read_only_fields = fields


class VendorSliceSerializer(serializers.ModelSerializer):
    items = OrderItemSerializer(source="line_items", many=True, read_only=True)

    class Meta:
        model = VendorSlice
        fields = [
            "vendor_id",
            "status",
            "subtotal",
            "shipping",
            "tax",
            "discount",
            "commission",
            "commission_rate",
            "vendor_earnings",
            "total",
            "delivered_at",
            "items",
        ]
        read_only_fields = fields


class StatusHistorySerializer(serializers.ModelSerializer):
    """Read serializer for status history entries."""

    timestamp = serializers.DateTimeField(source="created_at", read_only=True)

    class Meta:
        model = StatusHistory
        fields = [
            "sequence",
            "vendor_id",
            "status",
            "note",
            "changed_by",
            "role",
            "timestamp",
        ]
        read_only_fields = fields


class CancellationSerializer(serializers.ModelSerializer):
    status = serializers.CharField(source="cancellation_status")
    reason = serializers.CharField(source="cancellation_reason")
    note = serializers.CharField(source="cancellation_note")
    requested_at = serializers.DateTimeField(source="cancellation_requested_at")
    requested_by = serializers.CharField(source="cancellation_requested_by")
    rejection_reason = serializers.CharField(source="cancellation_rejection_reason")
    resolved_at = serializers.DateTimeField(source="cancellation_resolved_at")
    resolved_by = serializers.CharField(source="cancellation_resolved_by")

    class Meta:
        model = Order
        fields = [
            "status",
            "reason",
            "note",
            "requested_at",
            "requested_by",
            "rejection_reason",
            "resolved_at",
            "resolved_by",
        ]
        read_only_fields = fields


class OrderSerializer(serializers.ModelSerializer):
    """Full order: slices with items, history and the cancellation request."""

    slices = VendorSliceSerializer(source="vendor_slices", many=True, read_only=True)
    history = StatusHistorySerializer(many=True, read_only=True)
    cancellation = serializers.SerializerMethodField()

    class Meta:
        model = Order
        fields = [
            "id",
            "order_code",
            "customer_id",
            "status",
            "payment_method",
            "payment_status",
            "shipping_address",
            "subtotal",
            "shipping",
            "tax",
            "discount",
            "commission",
            "total",
            "version",
            "created_at",
            "updated_at",
            "slices",
            "history",
            "cancellation",
        ]
        read_only_fields = fields

    def get_cancellation(self, obj: Order):
        if not obj.cancellation_status:
            return None
        return CancellationSerializer(obj).data


class OrderListSerializer(serializers.ModelSerializer):
    """Lightweight serializer for order list (no nested relations)."""

    vendor_ids = serializers.ListField(child=serializers.CharField(), read_only=True)

    class Meta:
        model = Order
        fields = [
            "id",
            "order_code",
            "customer_id",
            "status",
            "payment_status",
            "total",
            "vendor_ids",
            "created_at",
        ]
        read_only_fields = fields


class ReturnItemSerializer(serializers.ModelSerializer):
    name = serializers.CharField(source="order_item.name", read_only=True)

    class Meta:
        model = ReturnItem
        fields = ["id", "order_item_id", "name", "quantity", "line_total"]
        read_only_fields = fields


class RefundSerializer(serializers.ModelSerializer):
    class Meta:
        model = RefundTransaction
        fields = [
            "refund_code",
            "amount",
            "status",
            "external_transaction_id",
            "processed_at",
        ]
        read_only_fields = fields


class ReturnRequestOutputSerializer(serializers.ModelSerializer):
    items = ReturnItemSerializer(source="return_items", many=True, read_only=True)
    refunds = RefundSerializer(many=True, read_only=True)

    class Meta:
        model = ReturnRequest
        fields = [
            "id",
            "return_code",
            "order_id",
            "vendor_id",
            "customer_id",
            "reason",
            "description",
            "refund_amount",
            "status",
            "rejection_reason",
            "resolution_note",
            "requested_at",
            "resolved_at",
            "resolved_by",
            "completed_at",
            "items",
            "refunds",
        ]
        read_only_fields = fields
