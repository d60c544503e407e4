"""Order and return API views.

Exposes the ``OrderService`` via HTTP using DRF ViewSets.  The acting
user is mapped to an ``Actor`` once per request; every scoping and
permission decision is then taken by the service.  Domain exceptions are
left to ``api_exception_handler``, which renders the error envelope.
"""

from __future__ import annotations

from typing import Any, Dict, Union

from pydantic import ValidationError as PydanticValidationError
from rest_framework import serializers, status
from rest_framework.decorators import action
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.throttling import BaseThrottle
from rest_framework.views import APIView
from rest_framework.viewsets import GenericViewSet

from modules.core.pagination import StandardResultsSetPagination
from modules.orders.actors import Actor, resolve_actor
from modules.orders.dtos import (
    CheckoutLineDTO,
    CreateOrderDTO,
    CustomerSnapshotDTO,
    ReturnLineDTO,
    ShippingAddressDTO,
    VendorOrderView,
)
from modules.orders.exceptions import Forbidden
from modules.orders.models import Order, ReturnRequest
from modules.orders.serializers import (
    CancellationRequestSerializer,
    CreateOrderSerializer,
    OrderListSerializer,
    OrderSerializer,
    PaymentOutcomeSerializer,
    ResolveCancellationSerializer,
    ResolveSerializer,
    ReturnRequestOutputSerializer,
    ReturnRequestSerializer,
    TransitionSerializer,
)
from modules.orders.services import build_order_service

ORDER_FILTER_PARAMS = ("status", "created_from", "created_to", "customer_id")
RETURN_FILTER_PARAMS = ("status", "order_id", "vendor_id", "customer_id")


def _filters(request: Request, allowed: tuple) -> Dict[str, Any]:
    return {k: v for k, v in request.query_params.items() if k in allowed and v}


class ActorMixin:
    """Caches the acting ``Actor`` for the current request."""

    def get_actor(self) -> Actor:
        if not hasattr(self, "_actor"):
            self._actor = resolve_actor(self.request.user)
        return self._actor


class OrderViewSet(ActorMixin, GenericViewSet):
    """ViewSet for Order operations.

    Uses ``OrderService`` with injected repositories (DIP).
    Does **not** extend ``ModelViewSet``: all ORM access goes through
    the service/repository layer.
    """

    queryset = Order.objects.none()
    serializer_class = OrderSerializer

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._service = build_order_service()

    def get_throttles(self) -> list[BaseThrottle]:
        """Throttle scopes per action."""
        throttle_scope: str | None
        if self.action == "create":
            throttle_scope = "order_creation"
        elif self.action in {"list", "retrieve"}:
            throttle_scope = "order_listing"
        else:
            throttle_scope = None
        self.throttle_scope = throttle_scope
        return super().get_throttles()

    def _render(self, order: Union[Order, VendorOrderView], actor: Actor) -> Dict[str, Any]:
        """Scoped representation: vendors only ever see their own slice."""
        if isinstance(order, VendorOrderView):
            return order.model_dump(mode="json")
        if actor.is_vendor:
            vendor_slice = order.slice_for(actor.id)
            return VendorOrderView.from_entity(order, vendor_slice).model_dump(mode="json")
        return OrderSerializer(order).data

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------

    def create(self, request: Request) -> Response:
        """POST /api/v1/orders/

        Supports idempotency via the ``Idempotency-Key`` header.
        """
        actor = self.get_actor()
        if not actor.is_customer:
            raise Forbidden("Only customers can place orders.")

        create_serializer = CreateOrderSerializer(data=request.data)
        create_serializer.is_valid(raise_exception=True)
        data = create_serializer.validated_data

        try:
            dto = CreateOrderDTO(
                customer_id=actor.id,
                items=[CheckoutLineDTO(**item) for item in data["items"]],
                shipping_address=ShippingAddressDTO(**data["shipping_address"]),
                payment_method=data["payment_method"],
                customer=(
                    CustomerSnapshotDTO(**data["customer"]) if data.get("customer") else None
                ),
                idempotency_key=request.headers.get("Idempotency-Key"),
            )
        except PydanticValidationError as exc:
            raise serializers.ValidationError(
                [error["msg"] for error in exc.errors()]
            ) from exc

        order = self._service.create_order(dto)
        return Response(OrderSerializer(order).data, status=status.HTTP_201_CREATED)

    # ------------------------------------------------------------------
    # List / Retrieve
    # ------------------------------------------------------------------

    def list(self, request: Request) -> Response:
        """GET /api/v1/orders/

        Vendors list their slices (``status`` filters the slice), customers
        their own orders, admins every order.  Newest first, paginated.
        """
        actor = self.get_actor()
        filters = _filters(request, ORDER_FILTER_PARAMS)
        paginator = StandardResultsSetPagination()

        if actor.is_vendor:
            filters.pop("customer_id", None)
            views = self._service.list_orders_for_vendor(actor.id, filters)
            page = paginator.paginate_queryset(views, request)
            return paginator.get_paginated_response(
                [view.model_dump(mode="json") for view in page]
            )

        if actor.is_customer:
            orders = self._service.list_orders_for_customer(actor.id, filters)
        else:
            orders = self._service.list_orders(filters)
        page = paginator.paginate_queryset(orders, request)
        return paginator.get_paginated_response(OrderListSerializer(page, many=True).data)

    def retrieve(self, request: Request, pk: str | None = None) -> Response:
        """GET /api/v1/orders/{pk}/"""
        actor = self.get_actor()
        order = self._service.get_order(pk, actor)
        return Response(self._render(order, actor))

    # ------------------------------------------------------------------
    # Fulfilment
    # ------------------------------------------------------------------

    @action(detail=True, methods=["post"])
    def transition(self, request: Request, pk: str | None = None) -> Response:
        """POST /api/v1/orders/{pk}/transition/"""
        actor = self.get_actor()
        serializer = TransitionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        order = self._service.apply_status_transition(
            order_id=pk,
            vendor_id=data["vendor_id"],
            new_status=data["status"],
            actor=actor,
            note=data["note"],
            expected_version=data.get("expected_version"),
        )
        return Response(self._render(order, actor))

    # ------------------------------------------------------------------
    # Cancellation
    # ------------------------------------------------------------------

    @action(detail=True, methods=["post"])
    def cancellation(self, request: Request, pk: str | None = None) -> Response:
        """POST /api/v1/orders/{pk}/cancellation/"""
        actor = self.get_actor()
        serializer = CancellationRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        order = self._service.request_cancellation(
            order_id=pk,
            actor=actor,
            reason=data["reason"],
            note=data["note"],
            vendor_id=data["vendor_id"],
            expected_version=data.get("expected_version"),
        )
        return Response(self._render(order, actor), status=status.HTTP_201_CREATED)

    @action(detail=True, methods=["post"], url_path="cancellation/resolve")
    def resolve_cancellation(self, request: Request, pk: str | None = None) -> Response:
        """POST /api/v1/orders/{pk}/cancellation/resolve/"""
        actor = self.get_actor()
        serializer = ResolveCancellationSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        order = self._service.resolve_cancellation(
            order_id=pk,
            actor=actor,
            decision=data["decision"],
            rejection_reason=data["rejection_reason"],
            note=data["note"],
            expected_version=data.get("expected_version"),
        )
        return Response(self._render(order, actor))

    # ------------------------------------------------------------------
    # Returns
    # ------------------------------------------------------------------

    @action(detail=True, methods=["post"])
    def returns(self, request: Request, pk: str | None = None) -> Response:
        """POST /api/v1/orders/{pk}/returns/"""
        actor = self.get_actor()
        serializer = ReturnRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        return_request = self._service.request_return(
            order_id=pk,
            actor=actor,
            vendor_id=data["vendor_id"],
            items=[ReturnLineDTO(**line) for line in data["items"]],
            reason=data["reason"],
            description=data["description"],
            expected_version=data.get("expected_version"),
        )
        return Response(
            ReturnRequestOutputSerializer(return_request).data,
            status=status.HTTP_201_CREATED,
        )

    # ------------------------------------------------------------------
    # Payment outcomes
    # ------------------------------------------------------------------

    @action(detail=True, methods=["post"], url_path="payment-outcome")
    def payment_outcome(self, request: Request, pk: str | None = None) -> Response:
        """POST /api/v1/orders/{pk}/payment-outcome/ (admin only)"""
        actor = self.get_actor()
        serializer = PaymentOutcomeSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        order = self._service.record_payment_outcome(
            order_id=pk,
            actor=actor,
            kind=data["kind"],
            outcome=data["outcome"],
            reference=data["reference"],
            external_transaction_id=data["external_transaction_id"],
            failure_reason=data["failure_reason"],
            expected_version=data.get("expected_version"),
        )
        return Response(self._render(order, actor))


class ReturnViewSet(ActorMixin, GenericViewSet):
    """Return requests, scoped to the acting user."""

    queryset = ReturnRequest.objects.none()
    serializer_class = ReturnRequestOutputSerializer

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._service = build_order_service()

    def list(self, request: Request) -> Response:
        """GET /api/v1/returns/"""
        returns = self._service.list_returns(
            self.get_actor(), _filters(request, RETURN_FILTER_PARAMS)
        )
        paginator = StandardResultsSetPagination()
        page = paginator.paginate_queryset(returns, request)
        return paginator.get_paginated_response(
            ReturnRequestOutputSerializer(page, many=True).data
        )

    def retrieve(self, request: Request, pk: str | None = None) -> Response:
        """GET /api/v1/returns/{pk}/"""
        return_request = self._service.get_return(pk, self.get_actor())
        return Response(ReturnRequestOutputSerializer(return_request).data)

    @action(detail=True, methods=["post"])
    def resolve(self, request: Request, pk: str | None = None) -> Response:
        """POST /api/v1/returns/{pk}/resolve/"""
        serializer = ResolveSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        return_request = self._service.resolve_return(
            return_id=pk,
            actor=self.get_actor(),
            decision=data["decision"],
            rejection_reason=data["rejection_reason"],
            note=data["note"],
        )
        return Response(ReturnRequestOutputSerializer(return_request).data)


class MeView(ActorMixin, APIView):
    """GET /api/v1/me: who the API thinks you are."""

    def get(self, request: Request) -> Response:
        actor = self.get_actor()
        return Response(
            {"id": actor.id, "role": actor.role, "username": request.user.get_username()}
        )
