"""Order and return repository interfaces.

The Service Layer depends exclusively on these contracts (DIP).

Writes to an order go through ``commit``: a compare-and-set on
``Order.version`` that persists the aggregate (order row, slices, buffered
history entries and refunds, domain events as outbox rows) or raises
``Conflict`` when another writer got there first.
"""

from __future__ import annotations

from abc import abstractmethod
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from modules.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from modules.orders.models import (
        Order,
        RefundTransaction,
        ReturnItem,
        ReturnRequest,
        VendorSlice,
    )


class IOrderRepository(IRepository["Order"]):
    """Repository contract for the Order aggregate root.

    The aggregate includes VendorSlice and OrderItem children and the
    StatusHistory ledger.  Mutations must be atomic.
    """

    @abstractmethod
    def create(self, order: Order) -> Order:
        """Persist a new order with its slices, items, history and events."""

    @abstractmethod
    def commit(self, order: Order, expected_version: int) -> Order:
        """Persist changes if the stored version still equals ``expected_version``.

        Raises:
            Conflict: the order was modified since it was loaded.
        """

    @abstractmethod
    def get_by_id(self, id: str) -> Optional[Order]:
        """Retrieve an order with prefetched slices, items and history."""

    @abstractmethod
    def list(self, filters: Optional[Dict[str, Any]] = None) -> List[Order]:
        """List orders, newest first (``status``, ``customer_id``, date range)."""

    @abstractmethod
    def list_slices_for_vendor(
        self, vendor_id: str, filters: Optional[Dict[str, Any]] = None
    ) -> List[VendorSlice]:
        """A vendor's slices with their orders, newest order first."""

    @abstractmethod
    def get_by_idempotency_key(self, key: str, customer_id: str) -> Optional[Order]:
        """Retrieve a customer's order by its idempotency key."""

    @abstractmethod
    def get_refund_by_code(self, refund_code: str) -> Optional[RefundTransaction]:
        """Retrieve a refund transaction by its code."""

    @abstractmethod
    def save_refund(self, refund: RefundTransaction) -> RefundTransaction:
        """Persist changes to an existing refund transaction."""


class IReturnRepository(IRepository["ReturnRequest"]):
    """Repository contract for return requests."""

    @abstractmethod
    def create(self, return_request: ReturnRequest, items: List[ReturnItem]) -> ReturnRequest:
        """Persist a new return with its items."""

    @abstractmethod
    def save(self, return_request: ReturnRequest) -> ReturnRequest:
        """Persist status changes of an existing return."""

    @abstractmethod
    def has_active_for_order(self, order_id: str) -> bool:
        """Whether the order has a pending, approved or processing return."""
