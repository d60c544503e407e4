"""Catalog collaborator backed by the catalog app's models."""

from __future__ import annotations

from decimal import Decimal
from typing import Optional

import structlog
from django.conf import settings
from django.core.exceptions import ValidationError

from modules.catalog.models import Product, Vendor
from modules.orders.collaborators import CatalogGateway, ProductSnapshot

logger = structlog.get_logger(__name__)


class DjangoCatalogGateway(CatalogGateway):
    """Reads products and vendors through the Django ORM.

    Malformed ids behave like missing ones (``None`` / default rate).
    """

    def get_product(self, product_id: str) -> Optional[ProductSnapshot]:
        try:
            product = Product.objects.select_related("vendor").filter(id=product_id).first()
        except (ValueError, ValidationError):
            return None
        if product is None:
            return None
        return ProductSnapshot(
            product_id=str(product.id),
            vendor_id=str(product.vendor_id),
            name=product.name,
            price=product.price,
            is_active=product.is_sellable,
            stock_quantity=product.stock_quantity,
            tax_included=product.tax_included,
        )

    def get_commission_rate(self, vendor_id: str) -> Decimal:
        default = Decimal(str(settings.MARKETPLACE_DEFAULT_COMMISSION_RATE))
        try:
            rate = (
                Vendor.objects.filter(id=vendor_id)
                .values_list("commission_rate", flat=True)
                .first()
            )
        except (ValueError, ValidationError):
            rate = None
        if rate is None:
            logger.debug("catalog.default_commission_rate", vendor_id=vendor_id)
            return default
        return rate
