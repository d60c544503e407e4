from __future__ import annotations

from decimal import Decimal

import pytest
from django.contrib.auth import get_user_model
from rest_framework.test import APIClient

from modules.catalog.models import Product, ProductStatus, Vendor
from modules.orders.actors import Actor
from modules.orders.constants import PaymentMethod
from modules.orders.dtos import CheckoutLineDTO, CreateOrderDTO, ShippingAddressDTO
from modules.orders.services import build_order_service

User = get_user_model()


@pytest.fixture(autouse=True)
def _use_db(db):
    """Automatically use the test database for all tests."""


@pytest.fixture()
def api_client():
    """DRF APIClient for testing API endpoints."""
    return APIClient()


@pytest.fixture()
def api_client_with_correlation(api_client):
    """APIClient pre-configured with a known correlation ID header."""
    cid = "test-correlation-id-fixture"
    api_client.defaults["HTTP_X_REQUEST_ID"] = cid
    return api_client, cid


# ---------------------------------------------------------------------------
# Users and API clients
# ---------------------------------------------------------------------------


@pytest.fixture()
def customer_user():
    return User.objects.create_user(username="customer", password="testpass123")


@pytest.fixture()
def other_customer_user():
    return User.objects.create_user(username="other-customer", password="testpass123")


@pytest.fixture()
def admin_user():
    return User.objects.create_user(
        username="ops-admin", password="testpass123", is_staff=True
    )


@pytest.fixture()
def vendor_a_user():
    return User.objects.create_user(username="vendor-a", password="testpass123")


@pytest.fixture()
def vendor_b_user():
    return User.objects.create_user(username="vendor-b", password="testpass123")


@pytest.fixture()
def client_for():
    """Factory: APIClient force-authenticated as ``user``."""

    def _make(user) -> APIClient:
        client = APIClient()
        client.force_authenticate(user=user)
        return client

    return _make


# ---------------------------------------------------------------------------
# Catalog
# ---------------------------------------------------------------------------


@pytest.fixture()
def vendor_a(vendor_a_user):
    return Vendor.objects.create(
        name="Vendor A",
        owner_id=str(vendor_a_user.pk),
        commission_rate=Decimal("0.1000"),
    )


@pytest.fixture()
def vendor_b(vendor_b_user):
    return Vendor.objects.create(
        name="Vendor B",
        owner_id=str(vendor_b_user.pk),
        commission_rate=Decimal("0.0500"),
    )


@pytest.fixture()
def product_a(vendor_a):
    return Product.objects.create(
        vendor=vendor_a,
        sku="VA-TEE",
        name="Cotton tee",
        price=Decimal("100.00"),
        stock_quantity=50,
        status=ProductStatus.ACTIVE,
    )


@pytest.fixture()
def product_a2(vendor_a):
    return Product.objects.create(
        vendor=vendor_a,
        sku="VA-CAP",
        name="Cap",
        price=Decimal("25.00"),
        stock_quantity=50,
        status=ProductStatus.ACTIVE,
    )


@pytest.fixture()
def product_b(vendor_b):
    return Product.objects.create(
        vendor=vendor_b,
        sku="VB-MUG",
        name="Mug",
        price=Decimal("50.00"),
        stock_quantity=50,
        status=ProductStatus.ACTIVE,
    )


# ---------------------------------------------------------------------------
# Orders
# ---------------------------------------------------------------------------


@pytest.fixture()
def order_service():
    return build_order_service()


@pytest.fixture()
def shipping_address():
    return ShippingAddressDTO(
        full_name="Asha Rao",
        phone="9000000000",
        line1="12 MG Road",
        city="Bengaluru",
        postal_code="560001",
    )


@pytest.fixture()
def place_order(order_service, customer_user, shipping_address):
    """Factory: place an order for ``customer_user`` through the service.

    ``lines`` is a list of ``(product, quantity)`` pairs.
    """

    def _place(lines, payment_method=PaymentMethod.CARD, customer_id=None, **kwargs):
        dto = CreateOrderDTO(
            customer_id=customer_id or str(customer_user.pk),
            items=[
                CheckoutLineDTO(product_id=str(product.id), quantity=quantity)
                for product, quantity in lines
            ],
            shipping_address=shipping_address,
            payment_method=payment_method,
            **kwargs,
        )
        return order_service.create_order(dto)

    return _place


@pytest.fixture()
def customer_actor(customer_user):
    return Actor.customer(customer_user.pk)


@pytest.fixture()
def admin_actor(admin_user):
    return Actor.admin(admin_user.pk)
