"""Order service layer (Use Cases).

Orchestrates checkout, slice status transitions, the cancellation and
return workflows, payment outcomes, and the actor-scoped read models.

Every mutation follows the same unit of work:

1. load the aggregate (lock-free read);
2. reject a stale ``expected_version`` with ``Conflict``;
3. validate and apply the change in memory (workflow modules);
4. ``repository.commit(order, version)`` inside ``transaction.atomic``:
   a compare-and-set on ``Order.version`` that writes slices, history,
   refunds and outbox rows together or not at all.

Side effects (notifications, capture, refunds) leave through the outbox
after commit; their failures never reach the caller.
"""

from __future__ import annotations

from decimal import Decimal
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Union

import structlog
from django.conf import settings
from django.db import transaction
from django.utils import timezone

from modules.orders import cancellation, returns
from modules.orders.actors import Actor
from modules.orders.calculator import (
    PricedLine,
    allocate,
    compute_slice,
    line_total,
    to_money,
)
from modules.orders.collaborators import validate_payment
from modules.orders.constants import (
    PAYMENT_TRANSITIONS,
    REFUND_TRANSITIONS,
    WORKFLOW_STATUSES,
    Decision,
    OrderStatus,
    PaymentMethod,
    PaymentOutcomeKind,
    PaymentStatus,
    RefundStatus,
)
from modules.orders.dtos import VendorOrderView
from modules.orders.events import (
    CancellationRequested,
    CancellationResolved,
    OrderCreated,
    OrderStatusChanged,
    PaymentCaptureRequested,
    PaymentOutcomeRecorded,
    RefundRequested,
    ReturnRequested,
    ReturnResolved,
)
from modules.orders.exceptions import (
    Conflict,
    DuplicateRequest,
    Forbidden,
    InvalidRequest,
    InvalidTransition,
    NotFound,
    ProductUnavailable,
    RequestAlreadyResolved,
)
from modules.orders.models import (
    Order,
    OrderItem,
    RefundTransaction,
    ReturnRequest,
    VendorSlice,
    assign_unique_code,
)
from modules.orders.returns import ReturnSelection
from modules.orders.state_machine import ensure_transition

if TYPE_CHECKING:
    from modules.orders.collaborators import CatalogGateway, PaymentGateway
    from modules.orders.dtos import CreateOrderDTO, ReturnLineDTO
    from modules.orders.repositories.interfaces import IOrderRepository, IReturnRepository

logger = structlog.get_logger(__name__)


class OrderService:
    """Application service for Order use-cases.

    Receives repositories and collaborators via constructor injection (DIP).
    """

    def __init__(
        self,
        order_repository: IOrderRepository,
        return_repository: IReturnRepository,
        catalog: CatalogGateway,
        payment_gateway: PaymentGateway,
    ) -> None:
        self._order_repo = order_repository
        self._return_repo = return_repository
        self._catalog = catalog
        self._payment_gateway = payment_gateway

    # ------------------------------------------------------------------
    # Checkout
    # ------------------------------------------------------------------

    def create_order(self, dto: CreateOrderDTO) -> Order:
        """Turn a checkout into an order with one slice per vendor.

        Steps:
        1. Snapshot every line from the catalog (price, vendor, tax flag).
        2. Group lines by vendor in cart order; split order-level shipping
           and discount across vendors by subtotal.
        3. Compute each slice's financials with the vendor's commission rate.
        4. Validate the payment method (bounded by a timeout).
        5. Persist order, slices, items, the first history entry and the
           creation events atomically.

        Raises:
            NotFound: a product does not exist.
            ProductUnavailable: a product is inactive or short on stock.
            InvalidFinancials: the amounts cannot form a valid slice.
            PaymentValidationFailed: the payment method was not accepted.
        """
        log = logger.bind(customer_id=dto.customer_id)
        log.info("order.creation_started", line_count=len(dto.items))

        # 0. Idempotency check (keys are per customer)
        if dto.idempotency_key:
            existing = self._order_repo.get_by_idempotency_key(
                dto.idempotency_key, customer_id=dto.customer_id
            )
            if existing:
                log.info(
                    "order.idempotency_hit",
                    order_id=str(existing.id),
                    key=dto.idempotency_key,
                )
                return existing

        # 1. Snapshot products
        groups: Dict[str, List[Any]] = {}
        requested: Dict[str, int] = {}
        for line in dto.items:
            product = self._catalog.get_product(line.product_id)
            if product is None:
                raise NotFound(f"Product {line.product_id} not found.")
            if not product.is_active:
                raise ProductUnavailable(f"Product {product.name} is not available.")
            # variants of one product draw on the same stock
            requested[product.product_id] = requested.get(product.product_id, 0) + line.quantity
            if product.stock_quantity < requested[product.product_id]:
                raise ProductUnavailable(
                    f"Product {product.name}: requested {requested[product.product_id]}, "
                    f"available {product.stock_quantity}."
                )
            groups.setdefault(product.vendor_id, []).append((line, product))

        # 2. Split order-level amounts by vendor subtotal
        vendor_ids = list(groups)
        weights = [
            sum(line_total(product.price, line.quantity) for line, product in groups[v])
            for v in vendor_ids
        ]
        shipping_fee = (
            dto.shipping_fee
            if dto.shipping_fee is not None
            else to_money(settings.MARKETPLACE_SHIPPING_FEE)
        )
        shipping_parts = allocate(shipping_fee, weights)
        discount_parts = allocate(dto.discount, weights)
        tax_rate = (
            dto.tax_rate
            if dto.tax_rate is not None
            else Decimal(str(settings.MARKETPLACE_DEFAULT_TAX_RATE))
        )

        # 3. Build the aggregate
        order = Order(
            customer_id=dto.customer_id,
            shipping_address=dto.shipping_address.model_dump(),
            customer_snapshot=dto.customer.model_dump() if dto.customer else {},
            payment_method=dto.payment_method,
            idempotency_key=dto.idempotency_key,
        )
        for index, vendor_id in enumerate(vendor_ids):
            commission_rate = self._catalog.get_commission_rate(vendor_id)
            lines = groups[vendor_id]
            financials = compute_slice(
                [
                    PricedLine(product.price, line.quantity, product.tax_included)
                    for line, product in lines
                ],
                shipping_fee=shipping_parts[index],
                tax_rate=tax_rate,
                discount=discount_parts[index],
                commission_rate=commission_rate,
            )
            vendor_slice = VendorSlice(vendor_id=vendor_id, status=OrderStatus.PENDING)
            vendor_slice.apply_financials(financials, commission_rate)
            items = [
                OrderItem(
                    product_id=product.product_id,
                    name=product.name,
                    price=product.price,
                    quantity=line.quantity,
                    size=line.size,
                    color=line.color,
                    tax_included=product.tax_included,
                    line_total=line_total(product.price, line.quantity),
                )
                for line, product in lines
            ]
            order.attach_slice(vendor_slice, items)

        order.recalculate_totals()
        order.refresh_status()

        # 4. Payment method validation (the only synchronous external call)
        validate_payment(self._payment_gateway, dto.payment_method, order.total)

        # 5. Persist
        assign_unique_code(order, "order_code", "ORD")
        order.record_status(OrderStatus.PENDING, Actor.system(), note="Order placed")
        order.add_domain_event(
            OrderCreated(
                aggregate_id=str(order.id),
                order_code=order.order_code,
                customer_id=order.customer_id,
                vendor_ids=order.vendor_ids,
                total=str(order.total),
                payment_method=order.payment_method,
            )
        )
        if order.payment_method != PaymentMethod.COD:
            order.add_domain_event(
                PaymentCaptureRequested(
                    aggregate_id=str(order.id),
                    order_code=order.order_code,
                    amount=str(order.total),
                    payment_method=order.payment_method,
                )
            )

        with transaction.atomic():
            self._order_repo.create(order)

        log.info(
            "order.created",
            order_id=str(order.id),
            order_code=order.order_code,
            vendor_count=len(vendor_ids),
            total=str(order.total),
        )
        return self._order_repo.get_by_id(str(order.id)) or order

    # ------------------------------------------------------------------
    # Status transitions
    # ------------------------------------------------------------------

    @transaction.atomic
    def apply_status_transition(
        self,
        order_id: str,
        vendor_id: Optional[str],
        new_status: str,
        actor: Actor,
        note: str = "",
        expected_version: Optional[int] = None,
    ) -> Order:
        """Move slice(s) one step along the fulfilment path.

        ``vendor_id`` selects the slice; when omitted a vendor acts on their
        own slice and an admin on every slice still in progress.  Every
        target is validated before any is changed.

        Raises:
            NotFound: unknown order, or the vendor has no slice in it.
            Forbidden: customers, or a vendor acting on another vendor's slice.
            InvalidTransition: undeclared edge, or a cancellation status.
            Conflict: stale ``expected_version`` or a concurrent commit.
        """
        log = logger.bind(
            order_id=str(order_id),
            vendor_id=vendor_id,
            new_status=new_status,
            actor_id=actor.id,
            role=actor.role,
        )
        if actor.is_customer:
            log.warning("order.transition_forbidden")
            raise Forbidden("Customers cannot set fulfilment statuses.")
        if new_status in WORKFLOW_STATUSES:
            log.warning("order.transition_rejected", reason="workflow_status")
            raise InvalidTransition(
                f"{new_status} can only be reached through the cancellation workflow.",
                target=new_status,
            )

        order = self._load(order_id)
        self._check_version(order, expected_version)
        targets = self._transition_targets(order, vendor_id, actor)

        try:
            for vendor_slice in targets:
                ensure_transition(
                    vendor_slice.status, new_status, scope=f"slice {vendor_slice.vendor_id}"
                )
        except InvalidTransition:
            log.warning(
                "order.transition_rejected",
                current_statuses=[s.status for s in targets],
            )
            raise

        now = timezone.now()
        for vendor_slice in targets:
            vendor_slice.status = new_status
            if new_status == OrderStatus.DELIVERED:
                vendor_slice.delivered_at = now
            order.record_status(new_status, actor, note=note, vendor_id=vendor_slice.vendor_id)
        order.refresh_status()

        order.add_domain_event(
            OrderStatusChanged(
                aggregate_id=str(order.id),
                order_code=order.order_code,
                customer_id=order.customer_id,
                vendor_ids=[s.vendor_id for s in targets],
                status=new_status,
                order_status=order.status,
                changed_by=actor.id,
                role=actor.role,
            )
        )
        self._commit(order)
        log.info("order.status_updated", order_status=order.status, version=order.version)
        return order

    def _transition_targets(
        self, order: Order, vendor_id: Optional[str], actor: Actor
    ) -> List[VendorSlice]:
        if actor.is_vendor:
            if vendor_id is not None and str(vendor_id) != actor.id:
                raise Forbidden("Vendors may only update their own slice.")
            vendor_id = actor.id

        if vendor_id is not None:
            vendor_slice = order.slice_for(vendor_id)
            if vendor_slice is None:
                raise NotFound(
                    f"Order {order.order_code} has no slice for vendor {vendor_id}."
                )
            return [vendor_slice]

        targets = [s for s in order.vendor_slices if not s.is_terminal]
        if not targets:
            raise InvalidTransition(
                f"Order {order.order_code} has no slice left to update.",
                current=order.status,
            )
        return targets

    # ------------------------------------------------------------------
    # Cancellation
    # ------------------------------------------------------------------

    @transaction.atomic
    def request_cancellation(
        self,
        order_id: str,
        actor: Actor,
        reason: str,
        note: str = "",
        vendor_id: Optional[str] = None,
        expected_version: Optional[int] = None,
    ) -> Order:
        order = self._load(order_id)
        self._check_version(order, expected_version)
        slices = cancellation.request_cancellation(order, actor, reason, note, vendor_id)

        order.add_domain_event(
            CancellationRequested(
                aggregate_id=str(order.id),
                order_code=order.order_code,
                customer_id=order.customer_id,
                vendor_ids=[s.vendor_id for s in slices],
                reason=order.cancellation_reason,
            )
        )
        self._commit(order)
        return order

    @transaction.atomic
    def resolve_cancellation(
        self,
        order_id: str,
        actor: Actor,
        decision: str,
        rejection_reason: str = "",
        note: str = "",
        expected_version: Optional[int] = None,
    ) -> Order:
        """Approve or reject the order's pending cancellation request.

        Approval cancels the affected slices and queues a refund of their
        totals; rejection restores each slice's previous status.

        Raises:
            NotFound: unknown order or no cancellation request.
            Forbidden: the actor cannot decide for every affected slice.
            RequestAlreadyResolved: the request was already decided.
            InvalidRequest: rejection without a reason, or unknown decision.
        """
        order = self._load(order_id)
        self._check_version(order, expected_version)
        vendor_ids = [s.vendor_id for s in cancellation.affected_slices(order)]

        refund_amount = Decimal("0.00")
        if decision == Decision.APPROVE:
            refund_amount = cancellation.approve_cancellation(order, actor, note)
            refund = self._queue_refund(
                order,
                amount=refund_amount,
                vendor_id=vendor_ids[0] if len(vendor_ids) == 1 else "",
            )
            logger.info(
                "order.cancellation_refund_queued",
                order_id=str(order.id),
                refund_code=refund.refund_code,
                amount=str(refund_amount),
            )
        elif decision == Decision.REJECT:
            cancellation.reject_cancellation(order, actor, rejection_reason, note)
        else:
            raise InvalidRequest(f"Unknown decision {decision!r}.")

        order.add_domain_event(
            CancellationResolved(
                aggregate_id=str(order.id),
                order_code=order.order_code,
                customer_id=order.customer_id,
                vendor_ids=vendor_ids,
                decision=decision,
                refund_amount=str(refund_amount),
                rejection_reason=order.cancellation_rejection_reason,
            )
        )
        self._commit(order)
        return order

    # ------------------------------------------------------------------
    # Returns
    # ------------------------------------------------------------------

    @transaction.atomic
    def request_return(
        self,
        order_id: str,
        actor: Actor,
        vendor_id: str,
        items: List[ReturnLineDTO],
        reason: str,
        description: str = "",
        expected_version: Optional[int] = None,
    ) -> ReturnRequest:
        """Open a return for items of one delivered slice.

        Raises:
            NotFound: unknown order or vendor slice.
            Forbidden: the actor is not the order's customer (or an admin).
            DuplicateRequest: the order already has an active return.
            InvalidTransition / ReturnWindowExpired: slice not returnable.
            InvalidRequest: bad item selection or missing reason.
        """
        order = self._load(order_id)
        self._check_version(order, expected_version)
        if actor.is_customer and order.customer_id != actor.id:
            raise Forbidden("Customers may only return items of their own orders.")

        vendor_slice = order.slice_for(vendor_id)
        if vendor_slice is None:
            raise NotFound(f"Order {order.order_code} has no slice for vendor {vendor_id}.")
        if self._return_repo.has_active_for_order(str(order.id)):
            raise DuplicateRequest(f"Order {order.order_code} already has an active return.")

        return_request, return_items = returns.open_return(
            order,
            vendor_slice,
            actor,
            [ReturnSelection(item_id=line.item_id, quantity=line.quantity) for line in items],
            reason,
            description,
            window_days=settings.MARKETPLACE_RETURN_WINDOW_DAYS,
        )
        self._return_repo.create(return_request, return_items)

        order.add_domain_event(
            ReturnRequested(
                aggregate_id=str(order.id),
                order_code=order.order_code,
                customer_id=order.customer_id,
                vendor_ids=[vendor_slice.vendor_id],
                return_code=return_request.return_code,
                refund_amount=str(return_request.refund_amount),
            )
        )
        self._commit(order)
        logger.info(
            "return.requested",
            order_id=str(order.id),
            return_id=str(return_request.id),
            refund_amount=str(return_request.refund_amount),
        )
        return return_request

    @transaction.atomic
    def resolve_return(
        self,
        return_id: str,
        actor: Actor,
        decision: str,
        rejection_reason: str = "",
        note: str = "",
    ) -> ReturnRequest:
        """Approve (queue the refund) or reject a pending return.

        The order's status is never changed by a return decision.
        """
        return_request = self._return_repo.get_by_id(return_id)
        if return_request is None:
            raise NotFound(f"Return {return_id} not found.")
        order = self._load(str(return_request.order_id))

        if decision == Decision.APPROVE:
            returns.approve_return(return_request, actor, note)
            self._queue_refund(
                order,
                amount=return_request.refund_amount,
                vendor_id=return_request.vendor_id,
                return_request=return_request,
            )
        elif decision == Decision.REJECT:
            returns.reject_return(return_request, actor, rejection_reason, note)
        else:
            raise InvalidRequest(f"Unknown decision {decision!r}.")

        self._return_repo.save(return_request)
        order.add_domain_event(
            ReturnResolved(
                aggregate_id=str(order.id),
                order_code=order.order_code,
                customer_id=order.customer_id,
                vendor_ids=[return_request.vendor_id],
                return_code=return_request.return_code,
                decision=decision,
                rejection_reason=return_request.rejection_reason,
            )
        )
        self._commit(order)
        return return_request

    # ------------------------------------------------------------------
    # Payment outcomes
    # ------------------------------------------------------------------

    @transaction.atomic
    def record_payment_outcome(
        self,
        order_id: str,
        actor: Actor,
        kind: str,
        outcome: str,
        reference: str = "",
        external_transaction_id: str = "",
        failure_reason: str = "",
        expected_version: Optional[int] = None,
    ) -> Order:
        """Record what the payment provider reported for a capture or refund.

        A completed refund marks the order ``refunded`` and settles the
        linked return (``approved -> processing -> completed``).
        """
        if not actor.is_privileged:
            raise Forbidden("Only admins or the system can record payment outcomes.")
        order = self._load(order_id)
        self._check_version(order, expected_version)
        log = logger.bind(order_id=str(order.id), kind=kind, outcome=outcome)

        if kind == PaymentOutcomeKind.CAPTURE:
            allowed = PAYMENT_TRANSITIONS.get(order.payment_status, set())
            if outcome not in (PaymentStatus.COMPLETED, PaymentStatus.FAILED):
                raise InvalidRequest(f"{outcome!r} is not a capture outcome.")
            if outcome not in allowed:
                raise InvalidTransition(
                    f"Payment cannot move from {order.payment_status} to {outcome}.",
                    current=order.payment_status,
                    target=outcome,
                )
            order.payment_status = outcome
        elif kind == PaymentOutcomeKind.REFUND:
            self._apply_refund_outcome(
                order, reference, outcome, external_transaction_id, failure_reason
            )
        else:
            raise InvalidRequest(f"Unknown payment outcome kind {kind!r}.")

        order.add_domain_event(
            PaymentOutcomeRecorded(
                aggregate_id=str(order.id),
                order_code=order.order_code,
                customer_id=order.customer_id,
                vendor_ids=order.vendor_ids,
                kind=kind,
                outcome=outcome,
                payment_status=order.payment_status,
            )
        )
        self._commit(order)
        log.info("order.payment_outcome_recorded", payment_status=order.payment_status)
        return order

    def _apply_refund_outcome(
        self,
        order: Order,
        reference: str,
        outcome: str,
        external_transaction_id: str,
        failure_reason: str,
    ) -> None:
        refund = self._order_repo.get_refund_by_code(reference)
        if refund is None or str(refund.order_id) != str(order.id):
            raise NotFound(f"Refund {reference!r} not found for order {order.order_code}.")
        if refund.status == RefundStatus.COMPLETED:
            raise RequestAlreadyResolved(f"Refund {refund.refund_code} already completed.")
        if outcome not in REFUND_TRANSITIONS.get(refund.status, set()):
            raise InvalidTransition(
                f"Refund {refund.refund_code} cannot move from {refund.status} to {outcome}.",
                current=refund.status,
                target=outcome,
            )

        refund.status = outcome
        if external_transaction_id:
            refund.external_transaction_id = external_transaction_id
        if outcome == RefundStatus.FAILED:
            refund.failure_reason = failure_reason or ""
        if outcome in (RefundStatus.COMPLETED, RefundStatus.FAILED):
            refund.processed_at = timezone.now()
        self._order_repo.save_refund(refund)

        if outcome == RefundStatus.COMPLETED:
            order.payment_status = PaymentStatus.REFUNDED

        return_request = refund.return_request
        if return_request is not None and outcome in (
            RefundStatus.PROCESSING,
            RefundStatus.COMPLETED,
        ):
            if returns.advance_refund(return_request, outcome):
                self._return_repo.save(return_request)

    def _queue_refund(
        self,
        order: Order,
        amount: Decimal,
        vendor_id: str = "",
        return_request: Optional[ReturnRequest] = None,
    ) -> RefundTransaction:
        refund = RefundTransaction(
            amount=amount,
            vendor_id=vendor_id,
            return_request=return_request,
            status=RefundStatus.PENDING,
        )
        assign_unique_code(refund, "refund_code", "RFD")
        order.add_refund(refund)
        order.add_domain_event(
            RefundRequested(
                aggregate_id=str(order.id),
                order_code=order.order_code,
                refund_code=refund.refund_code,
                amount=str(amount),
            )
        )
        return refund

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_order_for_customer(self, order_id: str, customer_id: str) -> Order:
        order = self._load(order_id)
        if order.customer_id != str(customer_id):
            raise Forbidden("This order belongs to another customer.")
        return order

    def get_order_for_vendor(self, order_id: str, vendor_id: str) -> VendorOrderView:
        order = self._load(order_id)
        vendor_slice = order.slice_for(vendor_id)
        if vendor_slice is None:
            raise Forbidden("This order has no items from your store.")
        return VendorOrderView.from_entity(order, vendor_slice)

    def get_order_for_admin(self, order_id: str) -> Order:
        return self._load(order_id)

    def get_order(self, order_id: str, actor: Actor) -> Union[Order, VendorOrderView]:
        """Scoped read for whoever is asking."""
        if actor.is_vendor:
            return self.get_order_for_vendor(order_id, actor.id)
        if actor.is_customer:
            return self.get_order_for_customer(order_id, actor.id)
        return self.get_order_for_admin(order_id)

    def list_orders_for_vendor(
        self, vendor_id: str, filters: Optional[Dict[str, Any]] = None
    ) -> List[VendorOrderView]:
        """A vendor's orders, newest first; ``status`` filters on their slice."""
        return [
            VendorOrderView.from_entity(vendor_slice.order, vendor_slice)
            for vendor_slice in self._order_repo.list_slices_for_vendor(vendor_id, filters)
        ]

    def list_orders_for_customer(
        self, customer_id: str, filters: Optional[Dict[str, Any]] = None
    ) -> List[Order]:
        return self._order_repo.list({**(filters or {}), "customer_id": str(customer_id)})

    def list_orders(self, filters: Optional[Dict[str, Any]] = None) -> List[Order]:
        """Every order (admin console)."""
        return self._order_repo.list(filters)

    def list_returns_for_vendor(
        self, vendor_id: str, filters: Optional[Dict[str, Any]] = None
    ) -> List[ReturnRequest]:
        return self._return_repo.list({**(filters or {}), "vendor_id": str(vendor_id)})

    def list_returns(
        self, actor: Actor, filters: Optional[Dict[str, Any]] = None
    ) -> List[ReturnRequest]:
        if actor.is_vendor:
            return self.list_returns_for_vendor(actor.id, filters)
        if actor.is_customer:
            return self._return_repo.list({**(filters or {}), "customer_id": actor.id})
        return self._return_repo.list(filters)

    def get_return(self, return_id: str, actor: Actor) -> ReturnRequest:
        return_request = self._return_repo.get_by_id(return_id)
        if return_request is None:
            raise NotFound(f"Return {return_id} not found.")
        if actor.is_vendor and return_request.vendor_id != actor.id:
            raise Forbidden("This return belongs to another vendor.")
        if actor.is_customer and return_request.customer_id != actor.id:
            raise Forbidden("This return belongs to another customer.")
        return return_request

    # ------------------------------------------------------------------
    # Unit of work helpers
    # ------------------------------------------------------------------

    def _load(self, order_id: str) -> Order:
        order = self._order_repo.get_by_id(str(order_id))
        if not order:
            raise NotFound(f"Order {order_id} not found.")
        return order

    def _check_version(self, order: Order, expected_version: Optional[int]) -> None:
        if expected_version is not None and expected_version != order.version:
            logger.warning(
                "order.stale_version",
                order_id=str(order.id),
                expected_version=expected_version,
                current_version=order.version,
            )
            raise Conflict(
                f"Order {order.order_code} is at version {order.version}, "
                f"not {expected_version}; reload and retry.",
                expected_version=expected_version,
                current_version=order.version,
            )

    def _commit(self, order: Order) -> Order:
        return self._order_repo.commit(order, expected_version=order.version)


def build_order_service() -> OrderService:
    """Service wired with the Django repositories and configured collaborators."""
    from modules.orders.collaborators import get_catalog_gateway, get_payment_gateway
    from modules.orders.repositories import OrderDjangoRepository, ReturnDjangoRepository

    return OrderService(
        order_repository=OrderDjangoRepository(),
        return_repository=ReturnDjangoRepository(),
        catalog=get_catalog_gateway(),
        payment_gateway=get_payment_gateway(),
    )
