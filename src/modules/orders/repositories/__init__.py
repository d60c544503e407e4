"""Order repositories package."""

from modules.orders.repositories.django_repository import (
    OrderDjangoRepository,
    ReturnDjangoRepository,
)
from modules.orders.repositories.interfaces import IOrderRepository, IReturnRepository

__all__ = [
    "IOrderRepository",
    "IReturnRepository",
    "OrderDjangoRepository",
    "ReturnDjangoRepository",
]
