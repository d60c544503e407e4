from __future__ import annotations

from decimal import Decimal
from uuid import uuid4

import pytest

from modules.catalog.gateway import DjangoCatalogGateway
from modules.catalog.models import ProductStatus, Vendor

pytestmark = pytest.mark.unit


@pytest.fixture()
def gateway():
    return DjangoCatalogGateway()


class TestGetProduct:
    def test_snapshot(self, gateway, product_a, vendor_a):
        snapshot = gateway.get_product(str(product_a.id))

        assert snapshot.product_id == str(product_a.id)
        assert snapshot.vendor_id == str(vendor_a.pk)
        assert snapshot.price == Decimal("100.00")
        assert snapshot.stock_quantity == 50
        assert snapshot.is_active
        assert not snapshot.tax_included

    def test_inactive_product(self, gateway, product_a):
        product_a.status = ProductStatus.INACTIVE
        product_a.save()
        assert not gateway.get_product(str(product_a.id)).is_active

    @pytest.mark.parametrize("product_id", ["not-a-uuid", str(uuid4())])
    def test_missing(self, gateway, product_id):
        assert gateway.get_product(product_id) is None


class TestCommissionRate:
    def test_vendor_rate(self, gateway, vendor_b):
        assert gateway.get_commission_rate(str(vendor_b.pk)) == Decimal("0.0500")

    def test_default_when_vendor_has_none(self, gateway, settings):
        settings.MARKETPLACE_DEFAULT_COMMISSION_RATE = "0.12"
        vendor = Vendor.objects.create(name="No rate", owner_id="owner-x")

        assert gateway.get_commission_rate(str(vendor.pk)) == Decimal("0.12")

    def test_default_for_unknown_vendor(self, gateway):
        assert gateway.get_commission_rate("not-a-uuid") == Decimal("0.10")


def test_sku_is_upper_cased(vendor_a):
    from modules.catalog.models import Product

    product = Product.objects.create(vendor=vendor_a, sku="va-sock", name="Sock", price=Decimal("5.00"))
    assert product.sku == "VA-SOCK"
