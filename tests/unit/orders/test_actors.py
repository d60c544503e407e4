from __future__ import annotations

import pytest

from modules.catalog.models import Vendor
from modules.orders.actors import Actor, resolve_actor
from modules.orders.constants import ActorRole

pytestmark = pytest.mark.unit


class TestActor:
    def test_ids_are_strings(self):
        assert Actor.customer(7) == Actor(id="7", role=ActorRole.CUSTOMER)

    def test_roles(self):
        assert Actor.customer("c").is_customer
        assert Actor.vendor("v").is_vendor
        assert Actor.admin("a").is_privileged
        assert Actor.system().is_privileged
        assert not Actor.vendor("v").is_privileged
        assert Actor.system().id == "system"


class TestResolveActor:
    def test_staff_is_admin(self, admin_user):
        assert resolve_actor(admin_user) == Actor.admin(admin_user.pk)

    def test_vendor_owner_acts_as_vendor(self, vendor_a_user, vendor_a):
        assert resolve_actor(vendor_a_user) == Actor.vendor(vendor_a.pk)

    def test_inactive_vendor_owner_is_a_customer(self, vendor_a_user, vendor_a):
        Vendor.objects.filter(pk=vendor_a.pk).update(is_active=False)
        assert resolve_actor(vendor_a_user) == Actor.customer(vendor_a_user.pk)

    def test_everyone_else_is_a_customer(self, customer_user):
        assert resolve_actor(customer_user) == Actor.customer(customer_user.pk)
