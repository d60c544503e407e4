"""Integration tests for placing and reading orders over HTTP.

Covers:
- POST /api/v1/orders/: 201 with slices, totals and history; idempotency;
  checkout failures mapped to their status codes.
- GET /api/v1/orders/{id}/: customer, vendor and admin projections.
- GET /api/v1/orders/: scoping per actor and filters.
"""

from __future__ import annotations

from unittest.mock import patch
from uuid import uuid4

import pytest

from modules.catalog.models import ProductStatus
from modules.orders.collaborators import LoggingPaymentGateway
from modules.orders.models import Order

pytestmark = pytest.mark.integration

ORDERS_URL = "/api/v1/orders/"


@pytest.fixture(autouse=True)
def _flat_shipping(settings):
    settings.MARKETPLACE_SHIPPING_FEE = "15.00"


@pytest.fixture()
def checkout(product_a, product_b):
    def _payload(**overrides):
        payload = {
            "items": [
                {"product_id": str(product_a.id), "quantity": 2, "size": "M"},
                {"product_id": str(product_b.id), "quantity": 1},
            ],
            "shipping_address": {
                "full_name": "Asha Rao",
                "phone": "9000000000",
                "line1": "12 MG Road",
                "city": "Bengaluru",
                "postal_code": "560001",
            },
            "payment_method": "upi",
        }
        payload.update(overrides)
        return payload

    return _payload


class TestCreateOrder:
    def test_creates_order_with_vendor_slices(self, client_for, customer_user, checkout, vendor_a, vendor_b):
        response = client_for(customer_user).post(ORDERS_URL, checkout(), format="json")

        assert response.status_code == 201
        data = response.data
        assert data["customer_id"] == str(customer_user.pk)
        assert data["status"] == "pending"
        assert data["payment_status"] == "pending"
        assert data["total"] == "265.00"
        assert data["commission"] == "22.50"
        assert data["version"] == 0
        assert data["cancellation"] is None
        assert [s["vendor_id"] for s in data["slices"]] == [str(vendor_a.pk), str(vendor_b.pk)]
        assert data["slices"][0]["items"][0]["size"] == "M"
        assert data["slices"][0]["vendor_earnings"] == "192.00"
        assert [h["status"] for h in data["history"]] == ["pending"]

    def test_client_cannot_choose_the_customer(self, client_for, customer_user, checkout):
        response = client_for(customer_user).post(
            ORDERS_URL, checkout(customer_id="someone-else"), format="json"
        )
        assert response.data["customer_id"] == str(customer_user.pk)

    def test_idempotency_key(self, client_for, customer_user, checkout):
        client = client_for(customer_user)
        first = client.post(ORDERS_URL, checkout(), format="json", HTTP_IDEMPOTENCY_KEY="abc-1")
        second = client.post(ORDERS_URL, checkout(), format="json", HTTP_IDEMPOTENCY_KEY="abc-1")

        assert first.status_code == second.status_code == 201
        assert first.data["id"] == second.data["id"]
        assert Order.objects.count() == 1

    def test_idempotency_key_of_another_customer_is_not_replayed(
        self, client_for, customer_user, other_customer_user, checkout
    ):
        first = client_for(customer_user).post(
            ORDERS_URL, checkout(), format="json", HTTP_IDEMPOTENCY_KEY="k1"
        )
        second = client_for(other_customer_user).post(
            ORDERS_URL, checkout(), format="json", HTTP_IDEMPOTENCY_KEY="k1"
        )

        assert second.status_code == 201
        assert second.data["id"] != first.data["id"]
        assert second.data["customer_id"] == str(other_customer_user.pk)
        assert Order.objects.count() == 2

    def test_vendor_cannot_place_orders(self, client_for, vendor_a_user, vendor_a, checkout):
        response = client_for(vendor_a_user).post(ORDERS_URL, checkout(), format="json")
        assert response.status_code == 403

    def test_unknown_product_is_404(self, client_for, customer_user, checkout):
        payload = checkout(items=[{"product_id": str(uuid4()), "quantity": 1}])
        response = client_for(customer_user).post(ORDERS_URL, payload, format="json")
        assert response.status_code == 404

    def test_unavailable_product_is_422(self, client_for, customer_user, checkout, product_b):
        product_b.status = ProductStatus.INACTIVE
        product_b.save()

        response = client_for(customer_user).post(ORDERS_URL, checkout(), format="json")

        assert response.status_code == 422
        assert response.data["errors"][0]["code"] == "product_unavailable"
        assert Order.objects.count() == 0

    def test_duplicate_lines_are_400(self, client_for, customer_user, checkout, product_a):
        line = {"product_id": str(product_a.id), "quantity": 1}
        response = client_for(customer_user).post(
            ORDERS_URL, checkout(items=[line, line]), format="json"
        )
        assert response.status_code == 400
        assert "Duplicate" in response.data["errors"][0]["detail"]

    def test_client_cannot_set_discount_or_shipping(self, client_for, customer_user, checkout):
        response = client_for(customer_user).post(
            ORDERS_URL, checkout(discount="85.00", shipping_fee="0.00"), format="json"
        )

        assert response.status_code == 201
        assert response.data["discount"] == "0.00"
        assert response.data["shipping"] == "15.00"
        assert response.data["total"] == "265.00"

    def test_payment_validation_failure_is_402(self, client_for, customer_user, checkout):
        with patch.object(LoggingPaymentGateway, "validate_payment_method", return_value=False):
            response = client_for(customer_user).post(ORDERS_URL, checkout(), format="json")

        assert response.status_code == 402
        assert response.data["errors"][0]["code"] == "payment_validation_failed"


class TestRetrieveOrder:
    def test_customer_sees_full_order(self, client_for, customer_user, place_order, product_a, product_b):
        order = place_order([(product_a, 1), (product_b, 1)])

        response = client_for(customer_user).get(f"{ORDERS_URL}{order.id}/")

        assert response.status_code == 200
        assert len(response.data["slices"]) == 2

    def test_other_customer_is_forbidden(self, client_for, other_customer_user, place_order, product_a):
        order = place_order([(product_a, 1)])
        response = client_for(other_customer_user).get(f"{ORDERS_URL}{order.id}/")
        assert response.status_code == 403

    def test_vendor_sees_only_their_slice(self, client_for, vendor_b_user, place_order, product_a, product_b, vendor_b):
        order = place_order([(product_a, 1), (product_b, 1)])

        response = client_for(vendor_b_user).get(f"{ORDERS_URL}{order.id}/")

        assert response.status_code == 200
        data = response.json()
        assert data["vendor_slice"]["vendor_id"] == str(vendor_b.pk)
        assert data["vendor_slice"]["total"] == "50.00"
        assert "slices" not in data
        assert "total" not in data
        assert data["history"] == []

    def test_vendor_without_items_is_forbidden(self, client_for, vendor_b_user, vendor_b, place_order, product_a):
        order = place_order([(product_a, 1)])
        response = client_for(vendor_b_user).get(f"{ORDERS_URL}{order.id}/")
        assert response.status_code == 403

    def test_admin_sees_everything(self, client_for, admin_user, place_order, product_a, product_b):
        order = place_order([(product_a, 1), (product_b, 1)])
        response = client_for(admin_user).get(f"{ORDERS_URL}{order.id}/")
        assert len(response.data["slices"]) == 2


class TestListOrders:
    def test_customer_lists_own_orders(self, client_for, customer_user, other_customer_user, place_order, product_a):
        mine = place_order([(product_a, 1)])
        place_order([(product_a, 1)], customer_id=str(other_customer_user.pk))

        response = client_for(customer_user).get(ORDERS_URL)

        assert [r["id"] for r in response.data["results"]] == [str(mine.id)]

    def test_customer_id_filter_cannot_widen_scope(self, client_for, customer_user, other_customer_user, place_order, product_a):
        place_order([(product_a, 1)], customer_id=str(other_customer_user.pk))

        response = client_for(customer_user).get(
            f"{ORDERS_URL}?customer_id={other_customer_user.pk}"
        )

        assert response.data["count"] == 0

    def test_admin_filters_by_status(self, client_for, admin_user, place_order, product_a, order_service, admin_actor):
        first = place_order([(product_a, 1)])
        place_order([(product_a, 1)])
        order_service.apply_status_transition(str(first.id), None, "processing", admin_actor)

        response = client_for(admin_user).get(f"{ORDERS_URL}?status=processing")

        assert [r["id"] for r in response.data["results"]] == [str(first.id)]

    def test_vendor_lists_slices(self, client_for, vendor_b_user, place_order, product_a, product_b):
        place_order([(product_a, 1)])
        shared = place_order([(product_a, 1), (product_b, 2)])

        response = client_for(vendor_b_user).get(ORDERS_URL)

        assert response.data["count"] == 1
        result = response.data["results"][0]
        assert result["id"] == str(shared.id)
        assert result["vendor_slice"]["subtotal"] == "100.00"
