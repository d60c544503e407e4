from __future__ import annotations

import random
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand

from modules.catalog.models import Product, ProductStatus, Vendor
from modules.orders.actors import Actor
from modules.orders.constants import FULFILMENT_SEQUENCE, OrderStatus, PaymentMethod
from modules.orders.dtos import CheckoutLineDTO, CreateOrderDTO, ShippingAddressDTO
from modules.orders.services import build_order_service


class Command(BaseCommand):
    help = "Seed database with realistic development data."

    def handle(self, *args, **options):
        random.seed(42)
        self.stdout.write("Seeding development data...")

        users = self._seed_users()
        vendors = self._seed_vendors()
        products = self._seed_products(vendors)
        orders_created = self._seed_orders(users["customers"], products)

        self.stdout.write(
            self.style.SUCCESS(
                "Seed completed: "
                f"customers={len(users['customers'])}, "
                f"vendors={len(vendors)}, "
                f"products={len(products)}, "
                f"orders={orders_created}"
            )
        )

    def _seed_users(self) -> dict:
        User = get_user_model()
        if not User.objects.filter(username="admin").exists():
            User.objects.create_superuser("admin", password="admin123")

        customers = []
        for username in ("asha", "ravi", "meera"):
            user = User.objects.filter(username=username).first()
            if user is None:
                user = User.objects.create_user(username, password=f"{username}123")
            customers.append(user)
        return {"customers": customers}

    def _seed_vendors(self) -> list[Vendor]:
        self.stdout.write("Creating vendors...")
        User = get_user_model()
        vendors: list[Vendor] = []
        seed_vendors = [
            ("threadline", "Threadline Apparel", Decimal("0.1200")),
            ("kora", "Kora Home", None),
            ("voltbox", "Voltbox Electronics", Decimal("0.0800")),
        ]
        for username, name, rate in seed_vendors:
            owner = User.objects.filter(username=username).first()
            if owner is None:
                owner = User.objects.create_user(username, password=f"{username}123")
            vendor, _ = Vendor.objects.get_or_create(
                owner_id=str(owner.pk),
                defaults={"name": name, "commission_rate": rate},
            )
            vendors.append(vendor)
        self.stdout.write(self.style.SUCCESS("Creating vendors... Done!"))
        return vendors

    def _seed_products(self, vendors: list[Vendor]) -> list[Product]:
        self.stdout.write("Creating products...")
        products: list[Product] = []
        catalog = [
            (0, "TL-TEE-01", "Organic cotton tee", Decimal("599.00"), False),
            (0, "TL-JKT-02", "Denim jacket", Decimal("2499.00"), False),
            (0, "TL-SCF-03", "Linen scarf", Decimal("449.00"), True),
            (1, "KH-MUG-01", "Stoneware mug", Decimal("349.00"), False),
            (1, "KH-LMP-02", "Rattan lamp", Decimal("1899.00"), False),
            (1, "KH-THR-03", "Cotton throw", Decimal("1299.00"), True),
            (2, "VB-EAR-01", "Wireless earbuds", Decimal("2999.00"), False),
            (2, "VB-CHG-02", "65W charger", Decimal("1499.00"), True),
            (2, "VB-CBL-03", "USB-C cable", Decimal("299.00"), False),
        ]
        for vendor_index, sku, name, price, tax_included in catalog:
            product, _ = Product.objects.get_or_create(
                sku=sku,
                defaults={
                    "vendor": vendors[vendor_index],
                    "name": name,
                    "price": price,
                    "tax_included": tax_included,
                    "stock_quantity": random.randint(20, 200),
                    "status": ProductStatus.ACTIVE,
                },
            )
            products.append(product)
        self.stdout.write(self.style.SUCCESS("Creating products... Done!"))
        return products

    def _seed_orders(self, customers: list, products: list[Product]) -> int:
        """Place orders through the service and walk some slices forward."""
        self.stdout.write("Creating orders...")
        if not customers or not products:
            self.stdout.write(self.style.WARNING("Skipping orders (no customers/products)."))
            return 0

        service = build_order_service()
        methods = list(PaymentMethod.values)
        orders_created = 0
        for i in range(20):
            customer = random.choice(customers)
            chosen = random.sample(products, k=random.randint(1, 4))
            dto = CreateOrderDTO(
                customer_id=str(customer.pk),
                items=[
                    CheckoutLineDTO(product_id=str(p.id), quantity=random.randint(1, 2))
                    for p in chosen
                ],
                shipping_address=ShippingAddressDTO(
                    full_name=customer.get_username().title(),
                    line1=f"{random.randint(1, 200)} MG Road",
                    city="Bengaluru",
                    postal_code="560001",
                ),
                payment_method=random.choice(methods),
                shipping_fee=Decimal("49.00"),
                idempotency_key=f"seed-order-{i + 1}",
            )
            order = service.create_order(dto)
            orders_created += 1
            if order.status != OrderStatus.PENDING:
                continue

            steps = random.randint(0, len(FULFILMENT_SEQUENCE) - 1)
            for vendor_id in order.vendor_ids:
                actor = Actor.vendor(vendor_id)
                for status in FULFILMENT_SEQUENCE[1 : steps + 1]:
                    order = service.apply_status_transition(
                        str(order.id), vendor_id, status, actor, note="Seeded"
                    )

        self.stdout.write(self.style.SUCCESS("Creating orders... Done!"))
        return orders_created
