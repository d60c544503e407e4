"""Unit tests for the payment collaborators and gateway factories."""

from __future__ import annotations

import threading
from decimal import Decimal
from unittest.mock import Mock

import pytest

from modules.catalog.gateway import DjangoCatalogGateway
from modules.orders.collaborators import (
    LoggingNotifier,
    LoggingPaymentGateway,
    PaymentGateway,
    get_catalog_gateway,
    get_notifier,
    get_payment_gateway,
    validate_payment,
)
from modules.orders.exceptions import PaymentValidationFailed

pytestmark = pytest.mark.unit


def _gateway(**kwargs) -> Mock:
    gateway = Mock(spec=PaymentGateway)
    gateway.validate_payment_method.configure_mock(**kwargs)
    return gateway


class TestValidatePayment:
    def test_accepted(self):
        gateway = _gateway(return_value=True)
        validate_payment(gateway, "card", Decimal("10.00"))
        gateway.validate_payment_method.assert_called_once_with("card", Decimal("10.00"))

    def test_rejected(self):
        with pytest.raises(PaymentValidationFailed, match="rejected"):
            validate_payment(_gateway(return_value=False), "card", Decimal("10.00"))

    def test_gateway_error_is_wrapped(self):
        gateway = _gateway(side_effect=ConnectionError("reset by peer"))
        with pytest.raises(PaymentValidationFailed, match="reset by peer"):
            validate_payment(gateway, "upi", Decimal("10.00"))

    def test_slow_gateway_times_out(self):
        release = threading.Event()

        def _hang(method, amount):
            release.wait(5)
            return True

        try:
            with pytest.raises(PaymentValidationFailed, match="within 0.05s"):
                validate_payment(_gateway(side_effect=_hang), "card", Decimal("1.00"), timeout=0.05)
        finally:
            release.set()


class TestLoggingPaymentGateway:
    def test_known_methods_are_valid(self):
        gateway = LoggingPaymentGateway()
        assert gateway.validate_payment_method("cod", Decimal("0.00"))
        assert not gateway.validate_payment_method("barter", Decimal("1.00"))

    def test_capture_and_refund_return_references(self):
        gateway = LoggingPaymentGateway()
        assert gateway.capture_payment("order-1", Decimal("5.00")).reference.startswith("cap_")
        refund = gateway.initiate_refund("RFD-1", Decimal("5.00"))
        assert refund.accepted
        assert refund.reference.startswith("rfnd_")


def test_factories_read_settings(settings):
    settings.MARKETPLACE_NOTIFIER = "modules.orders.collaborators.LoggingNotifier"

    assert isinstance(get_notifier(), LoggingNotifier)
    assert isinstance(get_payment_gateway(), LoggingPaymentGateway)
    assert isinstance(get_catalog_gateway(), DjangoCatalogGateway)
