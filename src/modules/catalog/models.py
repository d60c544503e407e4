"""Vendor and Product models consulted at checkout.

The catalog is an external collaborator of the order lifecycle: orders
snapshot what they need from it once, at creation, and never read it
again.

Business rules implemented:
- SKU is unique and normalised to uppercase.
- Price must be greater than zero.
- Stock quantity cannot be negative.
- A product is sellable only while it and its vendor are active.
"""

from __future__ import annotations

from decimal import Decimal

import structlog
from django.core.exceptions import ValidationError
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models

from modules.core.models import BaseModel

logger = structlog.get_logger(__name__)


class Vendor(BaseModel):
    """A seller on the marketplace.

    ``owner_id`` is the canonical identity of the user operating the vendor
    account (the auth user's primary key as a string).  ``commission_rate``
    is the platform's cut; ``None`` falls back to
    ``MARKETPLACE_DEFAULT_COMMISSION_RATE``.
    """

    name = models.CharField(max_length=255)
    owner_id = models.CharField(max_length=64, unique=True)
    commission_rate = models.DecimalField(
        max_digits=5,
        decimal_places=4,
        null=True,
        blank=True,
        validators=[MinValueValidator(Decimal("0")), MaxValueValidator(Decimal("1"))],
    )
    is_active = models.BooleanField(default=True)

    class Meta:
        db_table = "vendors"
        ordering = ["name"]

    def __str__(self) -> str:
        return self.name


class ProductStatus(models.TextChoices):
    ACTIVE = "active", "Active"
    INACTIVE = "inactive", "Inactive"


class Product(BaseModel):
    """Sellable product owned by exactly one vendor.

    ``tax_included`` marks prices that already fold tax in; the order
    calculator excludes such lines from the taxable base.
    """

    vendor = models.ForeignKey(
        Vendor,
        on_delete=models.PROTECT,
        related_name="products",
    )
    sku = models.CharField(max_length=64, unique=True)
    name = models.CharField(max_length=255)
    description = models.TextField(blank=True, default="")
    price = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        validators=[MinValueValidator(Decimal("0.01"))],
    )
    stock_quantity = models.PositiveIntegerField(default=0)
    status = models.CharField(
        max_length=20,
        choices=ProductStatus.choices,
        default=ProductStatus.ACTIVE,
    )
    tax_included = models.BooleanField(default=False)

    class Meta:
        db_table = "products"
        ordering = ["name"]
        indexes = [
            models.Index(fields=["status"], name="products_status_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(price__gt=0),
                name="products_price_positive",
            ),
        ]

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def clean(self) -> None:
        super().clean()
        if self.sku:
            self.sku = self.sku.strip().upper()
        if self.price is not None and self.price <= 0:
            raise ValidationError({"price": "Price must be greater than zero."})

    @property
    def is_sellable(self) -> bool:
        return self.status == ProductStatus.ACTIVE and self.vendor.is_active

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def save(self, *args, **kwargs) -> None:
        is_new = self._state.adding
        if self.sku:
            self.sku = self.sku.strip().upper()
        super().save(*args, **kwargs)
        if is_new:
            logger.info(
                "product.created",
                product_id=str(self.id),
                vendor_id=str(self.vendor_id),
                sku=self.sku,
            )

    def __str__(self) -> str:
        return f"{self.sku} - {self.name}"
