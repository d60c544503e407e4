"""Who is acting on an order.

An ``Actor`` is a canonical identity plus a role.  For vendors the id is the
vendor id (the slice owner), for customers the customer id, for admins the
staff user id.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from modules.orders.constants import ActorRole


@dataclass(frozen=True)
class Actor:
    id: str
    role: str

    @classmethod
    def system(cls) -> Actor:
        return cls(id="system", role=ActorRole.SYSTEM)

    @classmethod
    def customer(cls, customer_id: Any) -> Actor:
        return cls(id=str(customer_id), role=ActorRole.CUSTOMER)

    @classmethod
    def vendor(cls, vendor_id: Any) -> Actor:
        return cls(id=str(vendor_id), role=ActorRole.VENDOR)

    @classmethod
    def admin(cls, admin_id: Any) -> Actor:
        return cls(id=str(admin_id), role=ActorRole.ADMIN)

    @property
    def is_customer(self) -> bool:
        return self.role == ActorRole.CUSTOMER

    @property
    def is_vendor(self) -> bool:
        return self.role == ActorRole.VENDOR

    @property
    def is_privileged(self) -> bool:
        """Admins and the system may act on any slice."""
        return self.role in (ActorRole.ADMIN, ActorRole.SYSTEM)


def resolve_actor(user: Any) -> Actor:
    """Map an authenticated user to an actor.

    Staff users are admins, users owning a vendor account act as that
    vendor, everyone else is a customer identified by their user id.
    """
    from modules.catalog.models import Vendor

    if user.is_staff:
        return Actor.admin(user.pk)
    vendor_id = (
        Vendor.objects.filter(owner_id=str(user.pk), is_active=True)
        .values_list("id", flat=True)
        .first()
    )
    if vendor_id is not None:
        return Actor.vendor(vendor_id)
    return Actor.customer(user.pk)
