"""Order domain constants.

Closed vocabularies for statuses and roles, and the transition tables of
the slice state machine and of the return sub-workflow.
"""

from django.db import models


class OrderStatus(models.TextChoices):
    PENDING = "pending", "Pending"
    PROCESSING = "processing", "Processing"
    READY_TO_SHIP = "ready_to_ship", "Ready to ship"
    SHIPPED_SELLER = "shipped_seller", "Shipped by seller"
    DELIVERED = "delivered", "Delivered"
    CANCELLATION_REQUESTED = "cancellation_requested", "Cancellation requested"
    CANCELLED = "cancelled", "Cancelled"
    CANCELLATION_REJECTED = "cancellation_rejected", "Cancellation rejected"


class PaymentStatus(models.TextChoices):
    PENDING = "pending", "Pending"
    COMPLETED = "completed", "Completed"
    FAILED = "failed", "Failed"
    REFUNDED = "refunded", "Refunded"


class PaymentMethod(models.TextChoices):
    CARD = "card", "Card"
    UPI = "upi", "UPI"
    WALLET = "wallet", "Wallet"
    COD = "cod", "Cash on delivery"
    RAZORPAY = "razorpay", "Razorpay"


class ActorRole(models.TextChoices):
    CUSTOMER = "customer", "Customer"
    VENDOR = "vendor", "Vendor"
    ADMIN = "admin", "Admin"
    SYSTEM = "system", "System"


class CancellationStatus(models.TextChoices):
    PENDING = "pending", "Pending"
    APPROVED = "approved", "Approved"
    REJECTED = "rejected", "Rejected"


class ReturnStatus(models.TextChoices):
    PENDING = "pending", "Pending"
    APPROVED = "approved", "Approved"
    REJECTED = "rejected", "Rejected"
    PROCESSING = "processing", "Processing"
    COMPLETED = "completed", "Completed"


class RefundStatus(models.TextChoices):
    PENDING = "pending", "Pending"
    PROCESSING = "processing", "Processing"
    COMPLETED = "completed", "Completed"
    FAILED = "failed", "Failed"


# ---------------------------------------------------------------------------
# Slice state machine
# ---------------------------------------------------------------------------

FULFILMENT_SEQUENCE: tuple[str, ...] = (
    OrderStatus.PENDING,
    OrderStatus.PROCESSING,
    OrderStatus.READY_TO_SHIP,
    OrderStatus.SHIPPED_SELLER,
    OrderStatus.DELIVERED,
)

VALID_TRANSITIONS: dict[str, set[str]] = {
    OrderStatus.PENDING: {OrderStatus.PROCESSING, OrderStatus.CANCELLATION_REQUESTED},
    OrderStatus.PROCESSING: {
        OrderStatus.READY_TO_SHIP,
        OrderStatus.CANCELLATION_REQUESTED,
    },
    OrderStatus.READY_TO_SHIP: {
        OrderStatus.SHIPPED_SELLER,
        OrderStatus.CANCELLATION_REQUESTED,
    },
    OrderStatus.SHIPPED_SELLER: {
        OrderStatus.DELIVERED,
        OrderStatus.CANCELLATION_REQUESTED,
    },
    OrderStatus.DELIVERED: set(),
    OrderStatus.CANCELLATION_REQUESTED: {OrderStatus.CANCELLED},
    OrderStatus.CANCELLED: set(),
    # Audit marker only: written to the history when a request is rejected,
    # a slice never rests in it.
    OrderStatus.CANCELLATION_REJECTED: set(),
}

TERMINAL_STATES: set[str] = {OrderStatus.DELIVERED, OrderStatus.CANCELLED}

# Reachable only through the cancellation workflow.
WORKFLOW_STATUSES: set[str] = {
    OrderStatus.CANCELLATION_REQUESTED,
    OrderStatus.CANCELLED,
    OrderStatus.CANCELLATION_REJECTED,
}

# ---------------------------------------------------------------------------
# Return sub-workflow
# ---------------------------------------------------------------------------

RETURN_TRANSITIONS: dict[str, set[str]] = {
    ReturnStatus.PENDING: {ReturnStatus.APPROVED, ReturnStatus.REJECTED},
    ReturnStatus.APPROVED: {ReturnStatus.PROCESSING},
    ReturnStatus.PROCESSING: {ReturnStatus.COMPLETED},
    ReturnStatus.REJECTED: set(),
    ReturnStatus.COMPLETED: set(),
}

ACTIVE_RETURN_STATUSES: set[str] = {
    ReturnStatus.PENDING,
    ReturnStatus.APPROVED,
    ReturnStatus.PROCESSING,
}

# ---------------------------------------------------------------------------
# Payment status
# ---------------------------------------------------------------------------

PAYMENT_TRANSITIONS: dict[str, set[str]] = {
    PaymentStatus.PENDING: {
        PaymentStatus.COMPLETED,
        PaymentStatus.FAILED,
        PaymentStatus.REFUNDED,
    },
    PaymentStatus.FAILED: {PaymentStatus.COMPLETED, PaymentStatus.FAILED},
    PaymentStatus.COMPLETED: {PaymentStatus.REFUNDED},
    PaymentStatus.REFUNDED: set(),
}

# ---------------------------------------------------------------------------
# Refunds and decisions
# ---------------------------------------------------------------------------

REFUND_TRANSITIONS: dict[str, set[str]] = {
    RefundStatus.PENDING: {
        RefundStatus.PROCESSING,
        RefundStatus.COMPLETED,
        RefundStatus.FAILED,
    },
    RefundStatus.PROCESSING: {RefundStatus.COMPLETED, RefundStatus.FAILED},
    RefundStatus.FAILED: {RefundStatus.PROCESSING, RefundStatus.COMPLETED},
    RefundStatus.COMPLETED: set(),
}


class Decision(models.TextChoices):
    APPROVE = "approve", "Approve"
    REJECT = "reject", "Reject"


class PaymentOutcomeKind(models.TextChoices):
    CAPTURE = "capture", "Capture"
    REFUND = "refund", "Refund"


ORDER_CODE_MAX_RETRIES = 5
