"""Ports to the systems the order lifecycle depends on.

- ``CatalogGateway``: product snapshots and vendor commission rates,
  consulted only at checkout.
- ``PaymentGateway``: payment-method validation (synchronous, bounded by a
  timeout), capture and refund initiation (post-commit side effects).
- ``Notifier``: fire-and-forget notifications.

Concrete classes are chosen by dotted path in settings
(``MARKETPLACE_CATALOG_GATEWAY``, ``MARKETPLACE_PAYMENT_GATEWAY``,
``MARKETPLACE_NOTIFIER``).  The logging implementations below are the
defaults for development.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeout
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, Optional
from uuid import uuid4

import structlog
from django.conf import settings
from django.utils.module_loading import import_string

from modules.orders.constants import PaymentMethod
from modules.orders.exceptions import PaymentValidationFailed

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class ProductSnapshot:
    product_id: str
    vendor_id: str
    name: str
    price: Decimal
    is_active: bool
    stock_quantity: int
    tax_included: bool = False


@dataclass(frozen=True)
class GatewayOutcome:
    accepted: bool
    reference: str = ""
    message: str = ""


# ---------------------------------------------------------------------------
# Ports
# ---------------------------------------------------------------------------


class CatalogGateway(ABC):
    @abstractmethod
    def get_product(self, product_id: str) -> Optional[ProductSnapshot]:
        """Snapshot of a product, ``None`` when it does not exist."""

    @abstractmethod
    def get_commission_rate(self, vendor_id: str) -> Decimal:
        """Platform commission rate for a vendor, between 0 and 1."""


class PaymentGateway(ABC):
    @abstractmethod
    def validate_payment_method(self, method: str, amount: Decimal) -> bool:
        """Whether ``method`` can be used to pay ``amount``."""

    @abstractmethod
    def capture_payment(self, order_id: str, amount: Decimal) -> GatewayOutcome:
        """Start capturing the order amount.  The outcome arrives later."""

    @abstractmethod
    def initiate_refund(self, reference: str, amount: Decimal) -> GatewayOutcome:
        """Start a refund identified by ``reference`` (a refund code)."""


class Notifier(ABC):
    @abstractmethod
    def notify(self, actor_id: str, role: str, event: str, payload: Dict[str, Any]) -> None:
        """Deliver a notification to one party."""


# ---------------------------------------------------------------------------
# Development defaults
# ---------------------------------------------------------------------------


class LoggingPaymentGateway(PaymentGateway):
    """Accepts every known payment method and logs every call."""

    def validate_payment_method(self, method: str, amount: Decimal) -> bool:
        valid = method in PaymentMethod.values and amount >= 0
        logger.info(
            "payment.method_validated", method=method, amount=str(amount), valid=valid
        )
        return valid

    def capture_payment(self, order_id: str, amount: Decimal) -> GatewayOutcome:
        reference = f"cap_{uuid4().hex[:16]}"
        logger.info(
            "payment.capture_requested",
            order_id=order_id,
            amount=str(amount),
            reference=reference,
        )
        return GatewayOutcome(accepted=True, reference=reference)

    def initiate_refund(self, reference: str, amount: Decimal) -> GatewayOutcome:
        external = f"rfnd_{uuid4().hex[:16]}"
        logger.info(
            "payment.refund_requested",
            refund_reference=reference,
            amount=str(amount),
            external_reference=external,
        )
        return GatewayOutcome(accepted=True, reference=external)


class LoggingNotifier(Notifier):
    def notify(self, actor_id: str, role: str, event: str, payload: Dict[str, Any]) -> None:
        logger.info(
            "notification.sent",
            recipient_id=actor_id,
            recipient_role=role,
            notification_event=event,
            order_code=payload.get("order_code"),
        )


# ---------------------------------------------------------------------------
# Factories
# ---------------------------------------------------------------------------


def get_catalog_gateway() -> CatalogGateway:
    return import_string(settings.MARKETPLACE_CATALOG_GATEWAY)()


def get_payment_gateway() -> PaymentGateway:
    return import_string(settings.MARKETPLACE_PAYMENT_GATEWAY)()


def get_notifier() -> Notifier:
    return import_string(settings.MARKETPLACE_NOTIFIER)()


def validate_payment(
    gateway: PaymentGateway,
    method: str,
    amount: Decimal,
    timeout: Optional[float] = None,
) -> None:
    """Ask the gateway to validate a payment method within ``timeout`` seconds.

    Raises:
        PaymentValidationFailed: rejection, gateway error, or no answer in time.
    """
    timeout = settings.MARKETPLACE_PAYMENT_VALIDATION_TIMEOUT if timeout is None else timeout
    log = logger.bind(method=method, amount=str(amount), timeout=timeout)

    executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="payment-validation")
    future = executor.submit(gateway.validate_payment_method, method, amount)
    try:
        valid = future.result(timeout=timeout)
    except FutureTimeout as exc:
        log.warning("payment.validation_timeout")
        raise PaymentValidationFailed(
            f"Payment validation did not answer within {timeout}s."
        ) from exc
    except Exception as exc:
        log.warning("payment.validation_error", error=str(exc))
        raise PaymentValidationFailed(f"Payment validation failed: {exc}") from exc
    finally:
        executor.shutdown(wait=False, cancel_futures=True)

    if not valid:
        log.info("payment.validation_rejected")
        raise PaymentValidationFailed(f"Payment method {method!r} was rejected.")
